"""Tests for ciphertext handle normalization."""

import pytest

from confidential_market_sdk.errors import InvalidHandleError
from confidential_market_sdk.handles import CiphertextHandle, FheType, to_handle_hex, to_hex_bytes

RAW = bytes(range(21)) + bytes([3]) + (31337).to_bytes(8, "big") + bytes([FheType.EUINT32, 0])
CANONICAL = "0x" + RAW.hex()


class TestToHandleHex:
    """Tests for the canonical handle form."""

    @pytest.mark.parametrize(
        "value",
        [
            RAW,
            bytearray(RAW),
            CANONICAL,
            CANONICAL.upper().replace("0X", "0x"),
            RAW.hex(),
            list(RAW),
            {str(i): b for i, b in enumerate(RAW)},
        ],
    )
    def test_representations_normalize_to_same_string(self, value):
        """Every wire representation of a handle maps to lowercase 0x-hex."""
        assert to_handle_hex(value) == CANONICAL

    def test_integer_handle(self):
        """Integers are left-padded to 32 bytes."""
        assert to_handle_hex(1) == "0x" + "00" * 31 + "01"

    def test_wrong_length_rejected(self):
        """A handle must be exactly 32 bytes."""
        with pytest.raises(InvalidHandleError):
            to_handle_hex(RAW[:31])

    def test_bool_rejected(self):
        """Booleans are values, not handles."""
        with pytest.raises(InvalidHandleError):
            to_handle_hex(True)

    def test_non_hex_rejected(self):
        with pytest.raises(InvalidHandleError):
            to_handle_hex("0x" + "zz" * 32)

    def test_odd_length_hex_rejected(self):
        """A truncated handle is not padded into a different one."""
        with pytest.raises(InvalidHandleError):
            to_handle_hex("0x" + "1" * 63)

    def test_non_integer_object_keys_rejected(self):
        with pytest.raises(InvalidHandleError):
            to_handle_hex({"a": 1, "b": 2})

    def test_hex_bytes_any_length(self):
        """Input proofs are variable length and keep their size."""
        assert to_hex_bytes(b"\x01\x02\x03") == "0x010203"
        assert to_hex_bytes("abc") == "0x0abc"


class TestCiphertextHandle:
    """Tests for handle metadata."""

    def test_metadata(self):
        handle = CiphertextHandle.parse(CANONICAL)

        assert handle.index == 3
        assert handle.chain_id == 31337
        assert handle.fhe_type is FheType.EUINT32
        assert handle.version == 0
        assert str(handle) == CANONICAL

    def test_unknown_type_code(self):
        """Unknown type codes are reported as None instead of failing."""
        raw = RAW[:30] + bytes([99, 0])
        assert CiphertextHandle.parse(raw).fhe_type is None

    def test_parse_is_idempotent(self):
        handle = CiphertextHandle.parse(RAW)
        assert CiphertextHandle.parse(handle) is handle


class TestFheType:
    def test_bits_and_ranges(self):
        assert FheType.EBOOL.bits == 2
        assert FheType.EBOOL.max_value == 1
        assert FheType.EUINT8.max_value == 255
        assert FheType.EUINT32.max_value == 2**32 - 1
        assert FheType.EUINT64.max_value == 2**64 - 1
        assert FheType.EUINT64.label == "euint64"
