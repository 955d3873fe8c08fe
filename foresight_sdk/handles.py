"""
Encoding helpers for ciphertext handles and input proofs.

A handle is an opaque 32-byte identifier for a ciphertext held by the
confidential-computation backend. Contracts return it as ``bytes32``; the
relayer expects it as a ``0x``-prefixed lowercase hex string. Input proofs
are variable-length attestation bytes passed through untouched.
"""
from typing import Union

HANDLE_SIZE = 32
ZERO_HANDLE = "0x" + "00" * HANDLE_SIZE

HandleLike = Union[str, bytes, bytearray, int]


def _strip_hex(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def normalize_handle(handle: HandleLike) -> str:
    """
    Normalise a handle to the canonical ``0x`` + 64 lowercase hex form.

    Args:
        handle: Handle as raw bytes (including HexBytes), an integer, or a
            hex string with or without ``0x``

    Returns:
        Canonical handle string

    Raises:
        ValueError: If the value is not exactly 32 bytes of hex
        TypeError: If the value has an unsupported type
    """
    if isinstance(handle, (bytes, bytearray)):
        raw = bytes(handle)
    elif isinstance(handle, bool):
        raise TypeError("Handle must be bytes, int or hex string, got bool")
    elif isinstance(handle, int):
        if handle < 0 or handle >= 1 << (8 * HANDLE_SIZE):
            raise ValueError(f"Handle integer out of range: {handle}")
        raw = handle.to_bytes(HANDLE_SIZE, "big")
    elif isinstance(handle, str):
        try:
            raw = bytes.fromhex(_strip_hex(handle.strip()))
        except ValueError as e:
            raise ValueError(f"Invalid handle hex: {handle!r}") from e
    else:
        raise TypeError(f"Handle must be bytes, int or hex string, got {type(handle).__name__}")

    if len(raw) != HANDLE_SIZE:
        raise ValueError(f"Handle must be exactly {HANDLE_SIZE} bytes, got {len(raw)}")
    return "0x" + raw.hex()


def handle_to_bytes(handle: HandleLike) -> bytes:
    """Return the 32 raw bytes of a handle."""
    return bytes.fromhex(normalize_handle(handle)[2:])


def is_zero_handle(handle: HandleLike) -> bool:
    """Contracts return the zero handle for values that were never set."""
    return normalize_handle(handle) == ZERO_HANDLE


def normalize_proof(proof: Union[str, bytes, bytearray]) -> str:
    """
    Normalise an input proof to a ``0x``-prefixed lowercase hex string.

    Raises:
        ValueError: If the proof is empty or not valid hex
        TypeError: If the proof has an unsupported type
    """
    if isinstance(proof, (bytes, bytearray)):
        raw = bytes(proof)
    elif isinstance(proof, str):
        try:
            raw = bytes.fromhex(_strip_hex(proof.strip()))
        except ValueError as e:
            raise ValueError(f"Invalid proof hex: {proof[:18]!r}...") from e
    else:
        raise TypeError(f"Proof must be bytes or hex string, got {type(proof).__name__}")

    if not raw:
        raise ValueError("Input proof must not be empty")
    return "0x" + raw.hex()


def proof_to_bytes(proof: Union[str, bytes, bytearray]) -> bytes:
    """Return the raw bytes of an input proof."""
    return bytes.fromhex(normalize_proof(proof)[2:])


def short_handle(handle: HandleLike) -> str:
    """Truncated handle for log lines."""
    try:
        return normalize_handle(handle)[:10] + "…"
    except (TypeError, ValueError):
        return "<invalid>"
