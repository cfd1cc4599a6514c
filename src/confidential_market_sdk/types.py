"""Type definitions for the confidential market SDK."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .config import Settings
from .handles import to_handle_hex, to_hex_bytes

DecryptionResult = dict[str, Union[int, bool]]


@dataclass(frozen=True)
class NetworkPublicKey:
    key_id: str
    data: bytes  # raw X25519 public key inputs are sealed to


@dataclass(frozen=True)
class ClientContext:
    """Resolved confidential-computing client context. Immutable once created."""

    settings: Settings
    relayer: Any
    public_key: NetworkPublicKey


@dataclass(frozen=True)
class HandleContractPair:
    handle: str
    contract_address: str

    def to_dict(self) -> dict[str, str]:
        return {"handle": self.handle, "contractAddress": self.contract_address}


@dataclass(frozen=True)
class EncryptedInput:
    """Handles and the proof they were produced with. Never split across batches."""

    handles: tuple[str, ...]
    input_proof: bytes

    def handle_hex(self, index: int) -> str:
        return to_handle_hex(self.handles[index])

    @property
    def input_proof_hex(self) -> str:
        return to_hex_bytes(self.input_proof)


@dataclass
class PredictionEvent:
    id: int
    description: str
    start_time: int
    end_time: int
    price_yes: int
    price_no: int
    is_resolved: bool
    outcome: bool
    total_yes_shares: int
    total_no_shares: int
    total_pool_eth: int


@dataclass
class UserBet:
    encrypted_amount: str
    encrypted_shares: str
    is_yes_bet: str
    has_placed_bet: bool

    @property
    def handles(self) -> list[str]:
        return [self.encrypted_amount, self.encrypted_shares, self.is_yes_bet]


@dataclass
class RevealedBet:
    event_id: int
    amount: int
    shares: int
    is_yes: bool


@dataclass
class UserReward:
    """Plaintext reward state of one user on one event."""

    event_id: int
    pending_amount: int
    claimed: bool
