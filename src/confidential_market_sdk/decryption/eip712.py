"""Typed-data authorization message for user decryption.

The relayer re-derives this exact structure to verify the signature, so the
domain and field layout must not drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from web3 import Web3

from ..config import Settings

DOMAIN_NAME = "Decryption"
DOMAIN_VERSION = "1"
PRIMARY_TYPE = "UserDecryptRequestVerification"

USER_DECRYPT_TYPES: dict[str, list[dict[str, str]]] = {
    PRIMARY_TYPE: [
        {"name": "publicKey", "type": "bytes"},
        {"name": "contractAddresses", "type": "address[]"},
        {"name": "startTimestamp", "type": "uint256"},
        {"name": "durationDays", "type": "uint256"},
    ]
}

MAX_CONTRACT_ADDRESSES = 10
MAX_DURATION_DAYS = 365
SECONDS_PER_DAY = 86400


def decryption_domain(settings: Settings) -> dict[str, Any]:
    return {
        "name": DOMAIN_NAME,
        "version": DOMAIN_VERSION,
        "chainId": settings.gateway_chain_id,
        "verifyingContract": Web3.to_checksum_address(settings.verifying_contract_decryption),
    }


@dataclass(frozen=True)
class AuthorizationMessage:
    """Binds an ephemeral public key to a set of contracts and a validity window.

    The window is enforced by the relayer; ``expires_at`` is informational.
    """

    public_key: str
    contract_addresses: tuple[str, ...]
    start_timestamp: int
    duration_days: int

    def __post_init__(self) -> None:
        if not self.contract_addresses:
            raise ValueError("Authorization needs at least one contract address")
        if len(self.contract_addresses) > MAX_CONTRACT_ADDRESSES:
            raise ValueError(
                f"Authorization is limited to {MAX_CONTRACT_ADDRESSES} contract addresses"
            )
        if not 0 < self.duration_days <= MAX_DURATION_DAYS:
            raise ValueError(f"durationDays must be between 1 and {MAX_DURATION_DAYS}")

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def message(self) -> dict[str, Any]:
        return {
            "publicKey": self.public_key,
            "contractAddresses": list(self.contract_addresses),
            "startTimestamp": self.start_timestamp,
            "durationDays": self.duration_days,
        }

    def to_typed_data(self, settings: Settings) -> dict[str, Any]:
        """Full EIP-712 payload, as a wallet's ``signTypedData`` expects it."""
        return {
            "domain": decryption_domain(settings),
            "types": USER_DECRYPT_TYPES,
            "primaryType": PRIMARY_TYPE,
            "message": self.message(),
        }
