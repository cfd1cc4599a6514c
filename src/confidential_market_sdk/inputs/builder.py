from __future__ import annotations

import logging
from typing import Any

from web3 import Web3

from ..errors import (
    BuilderFinalizedError,
    InputCapacityError,
    InvalidHandleError,
    RelayerProtocolError,
    ValueOutOfRangeError,
    WalletNotConnectedError,
)
from ..handles import HANDLE_SIZE, CiphertextHandle, FheType, to_hex_bytes
from ..security.envelope import InputEncryption
from ..types import ClientContext, EncryptedInput

logger = logging.getLogger(__name__)

MAX_SLOTS = 255
MAX_TOTAL_BITS = 2048
PAYLOAD_VERSION = 0


def _checksum(address: str | None, role: str) -> str:
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid {role} address: {address!r}")
    return Web3.to_checksum_address(address)


class EncryptedInputBuilder:
    """Accumulates typed plaintext slots for one (contract, user) pair.

    Slot order is significant: the Nth ``add_*`` call yields the Nth handle.
    ``encrypt()`` finalizes the builder; it can be called once.
    """

    def __init__(self, context: ClientContext, contract_address: str, user_address: str | None) -> None:
        if not user_address:
            raise WalletNotConnectedError()
        self._context = context
        self.contract_address = _checksum(contract_address, "contract")
        self.user_address = _checksum(user_address, "user")
        self._slots: list[tuple[FheType, int]] = []
        self._finalized = False

    @property
    def size(self) -> int:
        return len(self._slots)

    @property
    def total_bits(self) -> int:
        return sum(fhe_type.bits for fhe_type, _ in self._slots)

    def _ensure_open(self, operation: str) -> None:
        if self._finalized:
            raise BuilderFinalizedError(operation)

    def _add(self, fhe_type: FheType, value: Any, operation: str) -> EncryptedInputBuilder:
        self._ensure_open(operation)
        if fhe_type is FheType.EBOOL:
            if value not in (True, False) or not isinstance(value, (bool, int)):
                raise ValueOutOfRangeError(value, fhe_type.label, 1)
            value = int(value)
        else:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{operation}() expects an int, got {type(value).__name__}")
            if value < 0 or value > fhe_type.max_value:
                raise ValueOutOfRangeError(value, fhe_type.label, fhe_type.bits)

        if len(self._slots) >= MAX_SLOTS:
            raise InputCapacityError(f"Encrypted input is limited to {MAX_SLOTS} values")
        if self.total_bits + fhe_type.bits > MAX_TOTAL_BITS:
            raise InputCapacityError(f"Encrypted input is limited to {MAX_TOTAL_BITS} bits")
        self._slots.append((fhe_type, value))
        return self

    def add_bool(self, value: bool | int) -> EncryptedInputBuilder:
        return self._add(FheType.EBOOL, value, "add_bool")

    def add_uint8(self, value: int) -> EncryptedInputBuilder:
        return self._add(FheType.EUINT8, value, "add_uint8")

    def add_uint16(self, value: int) -> EncryptedInputBuilder:
        return self._add(FheType.EUINT16, value, "add_uint16")

    def add_uint32(self, value: int) -> EncryptedInputBuilder:
        return self._add(FheType.EUINT32, value, "add_uint32")

    def add_uint64(self, value: int) -> EncryptedInputBuilder:
        return self._add(FheType.EUINT64, value, "add_uint64")

    def auxiliary_data(self) -> bytes:
        """Bytes the ciphertext is bound to: contract, user, ACL and chain id."""
        settings = self._context.settings
        return (
            bytes.fromhex(self.contract_address[2:])
            + bytes.fromhex(self.user_address[2:])
            + bytes.fromhex(settings.acl_contract_address[2:])
            + settings.chain_id.to_bytes(32, "big")
        )

    def _pack(self) -> bytes:
        out = bytearray([PAYLOAD_VERSION])
        out += len(self._slots).to_bytes(2, "big")
        for fhe_type, value in self._slots:
            width = max(1, fhe_type.bits // 8)
            out.append(fhe_type.value)
            out += value.to_bytes(width, "big")
        return bytes(out)

    async def encrypt(self) -> EncryptedInput:
        """Encrypt the slots and register them with the relayer.

        The builder is finalized before the first suspension point, even if
        encryption subsequently fails; build a new one to try again.
        """
        self._ensure_open("encrypt")
        if not self._slots:
            raise InputCapacityError("Encrypted input has no values")
        self._finalized = True

        settings = self._context.settings
        sealed = InputEncryption().seal(
            self._pack(), self._context.public_key.data, self.auxiliary_data()
        )
        payload = {
            "contractAddress": self.contract_address,
            "userAddress": self.user_address,
            "ciphertextWithInputVerification": sealed.to_bytes().hex(),
            "contractChainId": hex(settings.chain_id),
            "extraData": "0x00",
        }
        logger.info(
            f"Encrypting {len(self._slots)} value(s) for contract {self.contract_address}"
        )
        response = await self._context.relayer.input_proof(payload)

        handles = self._verify_handles(response.get("handles"))
        signatures = response.get("signatures")
        if not isinstance(signatures, list) or not 0 < len(signatures) < 256:
            raise RelayerProtocolError("Input proof response carries no valid signature list")
        try:
            signature_bytes = [bytes.fromhex(to_hex_bytes(s)[2:]) for s in signatures]
        except InvalidHandleError as e:
            raise RelayerProtocolError("Malformed input proof signature") from e

        input_proof = (
            bytes([len(handles), len(signature_bytes)])
            + b"".join(h.raw for h in handles)
            + b"".join(signature_bytes)
        )
        return EncryptedInput(handles=tuple(h.hex for h in handles), input_proof=input_proof)

    def _verify_handles(self, raw_handles: Any) -> list[CiphertextHandle]:
        if not isinstance(raw_handles, list) or len(raw_handles) != len(self._slots):
            got = len(raw_handles) if isinstance(raw_handles, list) else None
            raise RelayerProtocolError(
                f"Expected {len(self._slots)} handles from relayer, got {got}"
            )
        chain_id = self._context.settings.chain_id
        handles = []
        for i, (raw, (fhe_type, _)) in enumerate(zip(raw_handles, self._slots)):
            try:
                handle = CiphertextHandle.parse(raw)
            except InvalidHandleError as e:
                raise RelayerProtocolError(f"Handle {i} is not a {HANDLE_SIZE}-byte value") from e
            if handle.index != i or handle.fhe_type is not fhe_type or handle.chain_id != chain_id:
                raise RelayerProtocolError(
                    f"Handle {i} does not match the submitted input",
                    details={"index": handle.index, "fhe_type": handle.raw[30]},
                )
            handles.append(handle)
        return handles
