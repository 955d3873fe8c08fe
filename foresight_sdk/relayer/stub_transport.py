"""
In-process stub implementation of the relayer.

This module keeps plaintext values in memory and behaves like the remote
confidential-computation backend and decryption authority: it issues handles
and batch proofs, checks proofs when the simulated chain consumes an input,
enforces per-handle access lists, verifies EIP-712 grants and their validity
window, and seals user-decryption results to the session public key. It is
deterministic, which makes it suitable for tests and local development.
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import keccak
from nacl.public import PublicKey, SealedBox

from ..authorization import PRIMARY_TYPE, build_user_decrypt_eip712
from ..encryption import SUPPORTED_BIT_WIDTHS
from ..handles import normalize_handle, normalize_proof, short_handle
from ..models import DecryptionGrant, EncryptedInput, HandleContractPair
from .exceptions import RelayerConnectionError, RelayerErrorLabel, RelayerResponseError
from .transport import RelayerTransport

# Configure logger
logger = logging.getLogger(__name__)

STUB_GATEWAY_CHAIN_ID = 55815
STUB_DECRYPTION_VERIFIER = "0xb6e160b1ff80d67bfe90a85ee06ce0a2613607d1"


@dataclass
class _Ciphertext:
    value: int
    bits: int
    allowed: Set[str] = field(default_factory=set)
    public: bool = False
    # Batch the handle came from; None for values computed on-chain
    batch_id: Optional[bytes] = None
    accepted: bool = True


@dataclass
class _Batch:
    contract_address: str
    user_address: str
    handles: List[str]


class StubTransport(RelayerTransport):
    """
    A deterministic in-memory relayer.

    Besides the transport interface, the stub exposes helpers that stand in
    for on-chain behaviour: :meth:`accept_input` (a contract consuming an
    encrypted input), :meth:`store_value` (a contract computing a new
    ciphertext), :meth:`allow` and :meth:`make_publicly_decryptable`.
    """

    def __init__(
        self,
        chain_id: int = STUB_GATEWAY_CHAIN_ID,
        verifying_contract: str = STUB_DECRYPTION_VERIFIER,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize the stub transport.

        Args:
            chain_id: Chain id of the decryption EIP-712 domain
            verifying_contract: Verifying contract of the decryption domain
            clock: Returns the current unix time (defaults to time.time)
        """
        self.relayer_url = None
        self.initialized = False
        self.chain_id = chain_id
        self.verifying_contract = verifying_contract
        self.clock = clock or time.time
        self._store: Dict[str, _Ciphertext] = {}
        self._batches: Dict[bytes, _Batch] = {}
        self._counter = 0
        self._lock = threading.RLock()

    def is_available(self) -> bool:
        """
        Check if stub transport is available.

        Returns:
            Always True since stub transport has no dependencies
        """
        return True

    def initialize(self, relayer_url: str, verify_ssl: bool = True) -> None:
        """
        Initialize the stub transport.

        Args:
            relayer_url: URL of the relayer service (ignored)
            verify_ssl: Whether to verify SSL certificates (ignored)
        """
        self.relayer_url = relayer_url
        self.initialized = True
        logger.debug(f"Initialized stub transport for {relayer_url}")

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RelayerConnectionError("Stub transport not initialized")

    def _next_id(self, *parts: bytes) -> bytes:
        self._counter += 1
        return keccak(b"".join(parts) + self._counter.to_bytes(32, "big"))

    # ------------------------------------------------------------------
    # Confidential-computation backend
    # ------------------------------------------------------------------

    def encrypt_input(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[Tuple[int, int]],
        timeout: Optional[int] = None
    ) -> EncryptedInput:
        """
        Issue handles and a batch proof for plaintext values.

        Raises:
            RelayerConnectionError: If stub transport not initialized
            RelayerResponseError: If a value is malformed or out of range
        """
        self._require_initialized()
        if not values:
            raise RelayerResponseError(
                "Input batch is empty", RelayerErrorLabel.MALFORMED_INPUT.value, 400
            )
        for bits, value in values:
            if bits not in SUPPORTED_BIT_WIDTHS or not 0 <= value < (1 << bits):
                raise RelayerResponseError(
                    f"Value does not fit euint{bits}",
                    RelayerErrorLabel.MALFORMED_INPUT.value,
                    400
                )

        with self._lock:
            batch_id = self._next_id(b"batch", contract_address.lower().encode(), user_address.lower().encode())
            handles = []
            for index, (bits, value) in enumerate(values):
                handle = normalize_handle(keccak(batch_id + index.to_bytes(1, "big") + bits.to_bytes(2, "big")))
                self._store[handle] = _Ciphertext(
                    value=value, bits=bits, batch_id=batch_id, accepted=False
                )
                handles.append(handle)
            self._batches[batch_id] = _Batch(contract_address.lower(), user_address.lower(), handles)

        proof = bytes([len(handles)]) + b"".join(bytes.fromhex(h[2:]) for h in handles) + batch_id
        logger.debug(f"Stub encrypted {len(handles)} value(s) for {contract_address[:10]}…")
        return EncryptedInput(handles=handles, input_proof="0x" + proof.hex())

    def accept_input(
        self,
        handle: str,
        proof: str,
        contract_address: str,
        user_address: str
    ) -> str:
        """
        Simulate a contract verifying an encrypted input against its proof.

        On success the handle becomes usable and both addresses are added to
        its access list.

        Returns:
            The normalised handle

        Raises:
            RelayerResponseError: If the proof does not cover the handle or
                was issued for a different contract/user pair
        """
        handle = normalize_handle(handle)
        raw = bytes.fromhex(normalize_proof(proof)[2:])
        batch_id = raw[-32:]

        with self._lock:
            batch = self._batches.get(batch_id)
            if batch is None or handle not in batch.handles:
                raise RelayerResponseError(
                    f"Proof does not cover handle {short_handle(handle)}",
                    RelayerErrorLabel.INVALID_PROOF.value,
                    400
                )
            if (batch.contract_address, batch.user_address) != (contract_address.lower(), user_address.lower()):
                raise RelayerResponseError(
                    "Input was encrypted for a different contract/user pair",
                    RelayerErrorLabel.INVALID_PROOF.value,
                    400
                )
            ciphertext = self._store[handle]
            ciphertext.accepted = True
            ciphertext.allowed.update({contract_address.lower(), user_address.lower()})
        return handle

    def store_value(self, value: int, bits: int, allowed: Iterable[str] = ()) -> str:
        """
        Simulate on-chain computation producing a new ciphertext.

        Returns:
            The new handle
        """
        with self._lock:
            handle = normalize_handle(self._next_id(b"value", bits.to_bytes(2, "big")))
            self._store[handle] = _Ciphertext(
                value=value, bits=bits, allowed={a.lower() for a in allowed}
            )
        return handle

    def allow(self, handle: str, *addresses: str) -> None:
        """Add addresses to a handle's access list"""
        with self._lock:
            self._store[normalize_handle(handle)].allowed.update(a.lower() for a in addresses)

    def make_publicly_decryptable(self, handle: str) -> None:
        """Mark a handle as released for public decryption"""
        with self._lock:
            self._store[normalize_handle(handle)].public = True

    # ------------------------------------------------------------------
    # Decryption authority
    # ------------------------------------------------------------------

    def _verify_grant(self, grant: DecryptionGrant) -> None:
        eip712 = build_user_decrypt_eip712(
            grant.public_key,
            grant.contract_addresses,
            grant.start_timestamp,
            grant.duration_days,
            self.chain_id,
            self.verifying_contract
        )
        signable = encode_typed_data(
            domain_data=eip712["domain"],
            message_types={PRIMARY_TYPE: eip712["types"][PRIMARY_TYPE]},
            message_data=eip712["message"]
        )
        try:
            sig = grant.signature[2:] if grant.signature.startswith("0x") else grant.signature
            recovered = Account.recover_message(signable, signature=bytes.fromhex(sig))
        except Exception as e:
            raise RelayerResponseError(
                f"Invalid signature: {e}", RelayerErrorLabel.INVALID_SIGNATURE.value, 400
            ) from e
        if recovered.lower() != grant.user_address.lower():
            raise RelayerResponseError(
                "Signature does not match user address",
                RelayerErrorLabel.INVALID_SIGNATURE.value,
                400
            )

        now = self.clock()
        start = int(grant.start_timestamp)
        if not start <= now < grant.expires_at:
            raise RelayerResponseError(
                "Decryption request is outside its validity window",
                RelayerErrorLabel.EXPIRED.value,
                400
            )

    def user_decrypt(
        self,
        pairs: List[HandleContractPair],
        grant: DecryptionGrant,
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """
        Decrypt handles for the grant's user, sealed to the session key.

        Raises:
            RelayerConnectionError: If stub transport not initialized
            RelayerResponseError: If the grant is invalid, expired, or does
                not cover a requested contract
        """
        self._require_initialized()
        self._verify_grant(grant)

        authorized = {a.lower() for a in grant.contract_addresses}
        user = grant.user_address.lower()
        box = SealedBox(PublicKey(bytes.fromhex(grant.public_key[2:])))

        result = {}
        with self._lock:
            for pair in pairs:
                contract = pair.contract_address.lower()
                if contract not in authorized:
                    raise RelayerResponseError(
                        f"Contract {pair.contract_address} is not covered by the grant",
                        RelayerErrorLabel.NOT_ALLOWED.value,
                        403
                    )
                ciphertext = self._store.get(pair.handle)
                if ciphertext is None or not ciphertext.accepted:
                    logger.debug(f"Stub has no usable ciphertext for {short_handle(pair.handle)}")
                    continue
                if contract not in ciphertext.allowed or user not in ciphertext.allowed:
                    raise RelayerResponseError(
                        f"User or contract not allowed on handle {short_handle(pair.handle)}",
                        RelayerErrorLabel.NOT_ALLOWED.value,
                        403
                    )
                result[pair.handle] = box.encrypt(str(ciphertext.value).encode("ascii")).hex()
        return result

    def public_decrypt(
        self,
        handles: List[str],
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """
        Return cleartexts for handles marked publicly decryptable.

        Raises:
            RelayerConnectionError: If stub transport not initialized
        """
        self._require_initialized()
        result = {}
        with self._lock:
            for handle in handles:
                ciphertext = self._store.get(normalize_handle(handle))
                if ciphertext is not None and ciphertext.public:
                    result[normalize_handle(handle)] = str(ciphertext.value)
        return result

    def close(self) -> None:
        """Close the stub transport (no-op)."""
        pass
