from .client import LocalAccountWallet, RelayerClient, Wallet
from .config import LOCALHOST, NETWORKS, SEPOLIA, Settings
from .contract import PredictionMarketClient
from .decryption import DecryptionFlow, DecryptionRequestCoordinator, DecryptionState
from .handles import CiphertextHandle, FheType, to_handle_hex, to_hex_bytes
from .inputs import EncryptedInputBuilder
from .session import FheSession
from .types import ClientContext, EncryptedInput, HandleContractPair, UserReward

__all__ = [
    "CiphertextHandle",
    "ClientContext",
    "DecryptionFlow",
    "DecryptionRequestCoordinator",
    "DecryptionState",
    "EncryptedInput",
    "EncryptedInputBuilder",
    "FheSession",
    "FheType",
    "HandleContractPair",
    "LOCALHOST",
    "LocalAccountWallet",
    "NETWORKS",
    "PredictionMarketClient",
    "RelayerClient",
    "SEPOLIA",
    "Settings",
    "UserReward",
    "Wallet",
    "to_handle_hex",
    "to_hex_bytes",
]
