"""
Tests for handle and proof normalisation.
"""
import pytest

from foresight_sdk.handles import (
    ZERO_HANDLE, handle_to_bytes, is_zero_handle, normalize_handle, normalize_proof, short_handle
)

RAW = bytes(range(32))
CANONICAL = "0x" + RAW.hex()


class TestNormalizeHandle:

    @pytest.mark.parametrize("value", [
        RAW,
        bytearray(RAW),
        CANONICAL,
        CANONICAL.upper().replace("0X", "0x"),
        RAW.hex(),
        int.from_bytes(RAW, "big"),
    ])
    def test_accepted_forms(self, value):
        assert normalize_handle(value) == CANONICAL

    def test_small_int_is_left_padded(self):
        assert normalize_handle(1) == "0x" + "00" * 31 + "01"

    @pytest.mark.parametrize("value", [b"\x01" * 31, "0x1234", "0x" + "zz" * 32, -1, 1 << 256])
    def test_rejects_bad_values(self, value):
        with pytest.raises(ValueError):
            normalize_handle(value)

    @pytest.mark.parametrize("value", [True, None, 1.5, ["0x00"]])
    def test_rejects_bad_types(self, value):
        with pytest.raises(TypeError):
            normalize_handle(value)

    def test_bytes_round_trip(self):
        assert handle_to_bytes(CANONICAL) == RAW


def test_zero_handle():
    assert is_zero_handle(b"\x00" * 32)
    assert is_zero_handle(0)
    assert not is_zero_handle(CANONICAL)
    assert ZERO_HANDLE == "0x" + "0" * 64


def test_normalize_proof():
    assert normalize_proof(b"\xab\xcd") == "0xabcd"
    assert normalize_proof("ABCD") == "0xabcd"
    with pytest.raises(ValueError):
        normalize_proof("0x")
    with pytest.raises(ValueError):
        normalize_proof("0xnothex")
    with pytest.raises(TypeError):
        normalize_proof(12)


def test_short_handle():
    assert short_handle(CANONICAL) == CANONICAL[:10] + "…"
    assert short_handle("bogus") == "<invalid>"
