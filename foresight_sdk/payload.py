"""
Callback payload codec for confidential transfer-and-call.

The market contract's transfer callback decodes its ``data`` argument as the
ABI tuple ``(uint256 predictionId, bytes32 selectionHandle, bytes proof)``.
Changing the order or types of these fields breaks on-chain decoding.
"""
from typing import Tuple, Union

from eth_abi import decode, encode

from .handles import (
    HandleLike, _strip_hex, handle_to_bytes, normalize_handle, normalize_proof, proof_to_bytes
)

CALLBACK_PAYLOAD_TYPES = ["uint256", "bytes32", "bytes"]

UINT256_MAX = 2**256 - 1


def encode_callback_payload(
    record_id: int,
    handle: HandleLike,
    proof: Union[str, bytes]
) -> bytes:
    """
    Encode a callback payload for ``confidentialTransferAndCall``.

    Args:
        record_id: Identifier of the record the call targets (prediction id)
        handle: Encrypted handle carried in the payload
        proof: Input proof covering ``handle``

    Returns:
        ABI-encoded tuple bytes

    Raises:
        ValueError: If the record id is out of uint256 range or the
            handle/proof are malformed
    """
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise TypeError(f"record_id must be an int, got {type(record_id).__name__}")
    if record_id < 0 or record_id > UINT256_MAX:
        raise ValueError(f"record_id out of uint256 range: {record_id}")

    return encode(
        CALLBACK_PAYLOAD_TYPES,
        [record_id, handle_to_bytes(handle), proof_to_bytes(proof)]
    )


def decode_callback_payload(data: Union[str, bytes]) -> Tuple[int, str, str]:
    """
    Decode a callback payload produced by :func:`encode_callback_payload`.

    Args:
        data: Encoded payload as bytes or hex string

    Returns:
        Tuple of (record_id, handle, proof) with handle and proof as
        canonical ``0x`` hex strings
    """
    if isinstance(data, str):
        data = bytes.fromhex(_strip_hex(data.strip()))

    record_id, handle, proof = decode(CALLBACK_PAYLOAD_TYPES, bytes(data))
    return int(record_id), normalize_handle(handle), normalize_proof(proof)
