"""Ciphertext handle types and wire normalization.

Handles reach the SDK as hex strings (with or without ``0x``), raw bytes or
lists of byte values depending on which component produced them. They are
normalized here, at the boundary, into one canonical form: lowercase hex
with a ``0x`` prefix.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .errors import InvalidHandleError

HANDLE_SIZE = 32

# byte offsets inside a handle
_INDEX_OFFSET = 21
_CHAIN_ID_OFFSET = 22
_TYPE_OFFSET = 30
_VERSION_OFFSET = 31


class FheType(IntEnum):
    """Encrypted scalar types and their on-wire type codes."""

    EBOOL = 0
    EUINT8 = 2
    EUINT16 = 3
    EUINT32 = 4
    EUINT64 = 5

    @property
    def bits(self) -> int:
        """Plaintext bits accounted against a batch."""
        return _BITS[self]

    @property
    def max_value(self) -> int:
        if self is FheType.EBOOL:
            return 1
        return (1 << self.bits) - 1

    @property
    def label(self) -> str:
        return self.name.lower()


_BITS = {
    FheType.EBOOL: 2,
    FheType.EUINT8: 8,
    FheType.EUINT16: 16,
    FheType.EUINT32: 32,
    FheType.EUINT64: 64,
}


def _coerce_bytes(value: Any, pad_odd: bool = True) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        text = value[2:] if value[:2].lower() == "0x" else value
        if len(text) % 2:
            if not pad_odd:
                raise InvalidHandleError(f"Odd-length hex string: {value[:18]}...")
            text = "0" + text
        try:
            return bytes.fromhex(text)
        except ValueError as e:
            raise InvalidHandleError(f"Not a hex string: {value[:18]}...") from e
    if isinstance(value, dict):
        # JSON-serialized Uint8Array: {"0": 12, "1": 255, ...}
        try:
            value = [value[k] for k in sorted(value, key=int)]
        except (TypeError, ValueError) as e:
            raise InvalidHandleError("Byte object keys must be integer indexes") from e
    if isinstance(value, Sequence):
        try:
            return bytes(value)
        except (TypeError, ValueError) as e:
            raise InvalidHandleError("Byte sequence contains non-byte values") from e
    raise InvalidHandleError(f"Unsupported handle representation: {type(value).__name__}")


def to_hex_bytes(value: Any) -> str:
    """Normalize arbitrary-length binary data (e.g. an input proof) to ``0x`` hex."""
    return "0x" + _coerce_bytes(value).hex()


def to_handle_hex(value: Any) -> str:
    """Normalize a ciphertext handle to lowercase ``0x`` + 64 hex digits."""
    if isinstance(value, bool):
        raise InvalidHandleError("Boolean is not a handle")
    if isinstance(value, int):
        if value < 0 or value >= 1 << (8 * HANDLE_SIZE):
            raise InvalidHandleError("Integer handle out of bytes32 range")
        return "0x" + value.to_bytes(HANDLE_SIZE, "big").hex()
    raw = _coerce_bytes(value, pad_odd=False)
    if len(raw) != HANDLE_SIZE:
        raise InvalidHandleError(f"Handle must be {HANDLE_SIZE} bytes, got {len(raw)}")
    return "0x" + raw.hex()


@dataclass(frozen=True)
class CiphertextHandle:
    """Reference to one encrypted scalar registered with the backend."""

    raw: bytes

    @classmethod
    def parse(cls, value: Any) -> CiphertextHandle:
        if isinstance(value, CiphertextHandle):
            return value
        return cls(bytes.fromhex(to_handle_hex(value)[2:]))

    @property
    def hex(self) -> str:
        return "0x" + self.raw.hex()

    @property
    def index(self) -> int:
        return self.raw[_INDEX_OFFSET]

    @property
    def chain_id(self) -> int:
        return int.from_bytes(self.raw[_CHAIN_ID_OFFSET:_TYPE_OFFSET], "big")

    @property
    def fhe_type(self) -> FheType | None:
        try:
            return FheType(self.raw[_TYPE_OFFSET])
        except ValueError:
            return None

    @property
    def version(self) -> int:
        return self.raw[_VERSION_OFFSET]

    def __str__(self) -> str:
        return self.hex
