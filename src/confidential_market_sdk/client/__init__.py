from .http import RelayerClient
from .wallet import LocalAccountWallet, Wallet

__all__ = ["RelayerClient", "LocalAccountWallet", "Wallet"]
