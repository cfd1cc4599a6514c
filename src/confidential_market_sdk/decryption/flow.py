"""Single-use state machine for one authenticated user decryption.

KEYPAIR_GENERATED -> MESSAGE_COMPOSED -> SIGNED -> SUBMITTED -> RESOLVED

Any failure moves the flow to FAILED. A flow never resumes: the ephemeral
keypair and the signature belong to exactly one attempt, so retrying means
building a new flow.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from enum import Enum
from typing import Any

from ..client.wallet import Wallet
from ..errors import (
    IncompleteDecryptionError,
    InvalidFlowStateError,
    MarketSDKError,
    RelayerProtocolError,
    UserRejectedSignatureError,
    WalletError,
)
from ..handles import CiphertextHandle, FheType, to_handle_hex
from ..security.keypair import DecryptionKeypair
from ..types import ClientContext, DecryptionResult, HandleContractPair
from .eip712 import USER_DECRYPT_TYPES, AuthorizationMessage, decryption_domain

logger = logging.getLogger(__name__)

MAX_DECRYPTION_BITS = 2048
# EIP-1193 "user rejected request"
_EIP1193_USER_REJECTED = 4001


class DecryptionState(str, Enum):
    KEYPAIR_GENERATED = "keypair_generated"
    MESSAGE_COMPOSED = "message_composed"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    RESOLVED = "resolved"
    FAILED = "failed"


class DecryptionFlow:
    def __init__(
        self,
        context: ClientContext,
        wallet: Wallet,
        pairs: Sequence[HandleContractPair],
        duration_days: int,
        now: int | None = None,
    ) -> None:
        if not pairs:
            raise ValueError("No handles to decrypt")
        bits = sum(
            t.bits for t in (CiphertextHandle.parse(p.handle).fhe_type for p in pairs) if t is not None
        )
        if bits > MAX_DECRYPTION_BITS:
            raise ValueError(f"Cannot decrypt more than {MAX_DECRYPTION_BITS} bits in one request")

        self._context = context
        self._wallet = wallet
        self.pairs = list(pairs)
        self.contract_addresses = tuple(dict.fromkeys(p.contract_address for p in self.pairs))
        self._duration_days = duration_days
        self._now = now
        self._keypair: DecryptionKeypair | None = DecryptionKeypair.generate()
        self.message: AuthorizationMessage | None = None
        self._signature: str | None = None
        self.state = DecryptionState.KEYPAIR_GENERATED

    def _expect(self, state: DecryptionState, step: str) -> None:
        if self.state is not state:
            raise InvalidFlowStateError(
                f"Cannot {step} in state '{self.state.value}'; start a new decryption request",
                details={"state": self.state.value, "step": step},
            )

    def compose_message(self) -> AuthorizationMessage:
        self._expect(DecryptionState.KEYPAIR_GENERATED, "compose message")
        self.message = AuthorizationMessage(
            public_key=self._keypair.public_key_hex,
            contract_addresses=self.contract_addresses,
            start_timestamp=self._now if self._now is not None else int(time.time()),
            duration_days=self._duration_days,
        )
        self.state = DecryptionState.MESSAGE_COMPOSED
        return self.message

    async def sign(self) -> str:
        self._expect(DecryptionState.MESSAGE_COMPOSED, "sign")
        domain = decryption_domain(self._context.settings)
        try:
            signature = await self._wallet.sign_typed_data(
                domain, USER_DECRYPT_TYPES, self.message.message()
            )
        except MarketSDKError:
            raise
        except Exception as e:
            if getattr(e, "code", None) == _EIP1193_USER_REJECTED:
                raise UserRejectedSignatureError() from e
            raise WalletError(f"Wallet failed to sign decryption request: {e}") from e
        self._signature = signature
        self.state = DecryptionState.SIGNED
        return signature

    def request_payload(self) -> dict[str, Any]:
        settings = self._context.settings
        return {
            "handleContractPairs": [p.to_dict() for p in self.pairs],
            "requestValidity": {
                "startTimestamp": str(self.message.start_timestamp),
                "durationDays": str(self.message.duration_days),
            },
            "contractsChainId": str(settings.chain_id),
            "contractAddresses": list(self.contract_addresses),
            "userAddress": self._wallet.address,
            "signature": self._signature.removeprefix("0x"),
            "publicKey": self.message.public_key.removeprefix("0x"),
            "extraData": "0x00",
        }

    async def submit(self) -> list[dict[str, Any]]:
        self._expect(DecryptionState.SIGNED, "submit")
        logger.info(
            f"Submitting user decryption for {len(self.pairs)} handle(s) "
            f"on {len(self.contract_addresses)} contract(s)"
        )
        response = await self._context.relayer.user_decrypt(self.request_payload())
        self.state = DecryptionState.SUBMITTED
        return response

    def resolve(self, response: list[dict[str, Any]]) -> DecryptionResult:
        self._expect(DecryptionState.SUBMITTED, "resolve")
        payloads: dict[str, bytes] = {}
        for entry in response:
            try:
                handle = to_handle_hex(entry["handle"])
                payload = bytes.fromhex(str(entry["payload"]).removeprefix("0x"))
            except (KeyError, TypeError, ValueError, MarketSDKError) as e:
                raise RelayerProtocolError("Malformed user-decrypt response entry") from e
            payloads.setdefault(handle, payload)

        requested = list(dict.fromkeys(p.handle for p in self.pairs))
        missing = [h for h in requested if h not in payloads]
        if missing:
            raise IncompleteDecryptionError(missing)

        result: DecryptionResult = {}
        for handle in requested:
            result[handle] = self._unwrap(handle, payloads[handle])
        self.state = DecryptionState.RESOLVED
        return result

    def _unwrap(self, handle: str, payload: bytes) -> int | bool:
        try:
            plaintext = self._keypair.unseal(payload)
        except ValueError as e:
            raise RelayerProtocolError(f"Could not open decrypted value for {handle}") from e
        if len(plaintext) != 32:
            raise RelayerProtocolError(f"Decrypted value for {handle} is not 32 bytes")
        value = int.from_bytes(plaintext, "big")

        fhe_type = CiphertextHandle.parse(handle).fhe_type
        if fhe_type is not None and value > fhe_type.max_value:
            raise RelayerProtocolError(f"Decrypted value for {handle} exceeds {fhe_type.label}")
        if fhe_type is FheType.EBOOL:
            return bool(value)
        return value

    async def run(self) -> DecryptionResult:
        try:
            self.compose_message()
            await self.sign()
            response = await self.submit()
            return self.resolve(response)
        except BaseException:
            if self.state is not DecryptionState.RESOLVED:
                self.state = DecryptionState.FAILED
            raise
        finally:
            # keypair is single-use
            self._keypair = None
            self._signature = None
