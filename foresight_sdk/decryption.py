"""
User and public decryption clients.

User decryption returns cleartexts only to the holder of a signed grant: the
authority seals each value to the grant's session public key and the client
opens it with the matching private key, which never leaves the process.
Public decryption reads values that an on-chain action has released to
everyone and needs no grant.

A handle missing from a response is a failure for that handle, never a zero.
"""
import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from nacl.exceptions import CryptoError
from nacl.public import SealedBox

from .authorization import SessionKeypair
from .config import checksum_address
from .exceptions import DecryptionDenied, NotDisclosed, PartialResult
from .handles import HandleLike, normalize_handle, short_handle
from .models import DecryptionGrant, HandleContractPair
from .relayer.exceptions import DENIAL_LABELS, RelayerErrorLabel, RelayerResponseError
from .relayer.transport import RelayerTransport

logger = logging.getLogger(__name__)

# Cleartext values keyed by normalised handle hex
DecryptionResult = Dict[str, int]
PairLike = Union[HandleContractPair, Tuple[HandleLike, str]]


def _to_pairs(handles: Iterable[PairLike]) -> List[HandleContractPair]:
    pairs = []
    seen = set()
    for item in handles:
        if isinstance(item, HandleContractPair):
            handle, contract = item.handle, item.contract_address
        else:
            handle, contract = item
        pair = HandleContractPair(
            handle=normalize_handle(handle),
            contract_address=checksum_address(contract, "contract address")
        )
        key = (pair.handle, pair.contract_address.lower())
        if key not in seen:
            seen.add(key)
            pairs.append(pair)
    return pairs


def _normalize_response(response: Dict[str, str]) -> Dict[str, str]:
    normalized = {}
    for handle, value in response.items():
        try:
            normalized[normalize_handle(handle)] = value
        except (TypeError, ValueError):
            logger.debug(f"Ignoring malformed handle in response: {handle!r}")
    return normalized


class UserDecryptionClient:
    """Decrypts handles the grant's user is allowed to see"""

    def __init__(
        self,
        transport: RelayerTransport,
        timeout: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.transport = transport
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    async def decrypt(
        self,
        handles: Iterable[PairLike],
        grant: DecryptionGrant,
        keypair: SessionKeypair
    ) -> DecryptionResult:
        """
        Decrypt handles under a signed grant.

        The keypair is consumed by this call whatever its outcome and cannot
        be used again.

        Args:
            handles: (handle, contract address) pairs to decrypt
            grant: Grant signed for ``keypair``
            keypair: Session keypair the grant was issued for

        Returns:
            Mapping of normalised handle to cleartext integer

        Raises:
            ValueError: If no handles are given or the keypair does not match
                the grant
            SessionKeyConsumedError: If the keypair was already used
            DecryptionDenied: If the grant does not cover a contract, or the
                authority refuses it
            PartialResult: If some requested handles were not returned
        """
        try:
            pairs = _to_pairs(handles)
        except (TypeError, ValueError):
            keypair.discard()
            raise
        if not pairs:
            keypair.discard()
            raise ValueError("At least one handle is required")
        if keypair.public_key != grant.public_key:
            keypair.discard()
            raise ValueError("Session keypair does not match the grant's public key")

        private_key = keypair.take_private_key()

        uncovered = [p.contract_address for p in pairs if not grant.covers(p.contract_address)]
        if uncovered:
            raise DecryptionDenied(
                f"Grant does not cover contract(s): {', '.join(sorted(set(uncovered)))}",
                reason=RelayerErrorLabel.NOT_ALLOWED.value
            )

        self.logger.debug(f"User-decrypting {len(pairs)} handle(s)")
        try:
            response = await asyncio.to_thread(
                self.transport.user_decrypt, pairs, grant, self.timeout
            )
        except RelayerResponseError as e:
            if e.error_code in DENIAL_LABELS:
                self.logger.warning(f"Decryption denied ({e.error_code}): {e}")
                raise DecryptionDenied(str(e), reason=e.error_code) from e
            raise

        box = SealedBox(private_key)
        sealed = _normalize_response(response)
        values: Dict[str, int] = {}
        missing: List[str] = []
        for pair in pairs:
            if pair.handle in values or pair.handle in missing:
                continue
            payload = sealed.get(pair.handle)
            if payload is None:
                missing.append(pair.handle)
                continue
            try:
                values[pair.handle] = int(box.decrypt(bytes.fromhex(payload)).decode("ascii"))
            except (CryptoError, ValueError) as e:
                self.logger.warning(f"Could not open result for {short_handle(pair.handle)}: {e}")
                missing.append(pair.handle)

        requested = {p.handle for p in pairs}
        extra = set(sealed) - requested
        if extra:
            self.logger.debug(f"Ignoring {len(extra)} unrequested handle(s) in response")

        if missing:
            raise PartialResult(
                f"{len(missing)} of {len(requested)} handle(s) were not decrypted",
                values=values,
                missing=missing
            )
        return values


class PublicDecryptionClient:
    """Decrypts handles that were released for public decryption"""

    def __init__(
        self,
        transport: RelayerTransport,
        timeout: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.transport = transport
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    async def decrypt_public(self, handles: Iterable[HandleLike]) -> DecryptionResult:
        """
        Decrypt publicly disclosable handles.

        Args:
            handles: Handles to decrypt

        Returns:
            Mapping of normalised handle to cleartext integer

        Raises:
            ValueError: If no handles are given
            NotDisclosed: If any handle was not released; the exception
                carries the values that were
        """
        requested = list(dict.fromkeys(normalize_handle(h) for h in handles))
        if not requested:
            raise ValueError("At least one handle is required")

        try:
            response = await asyncio.to_thread(
                self.transport.public_decrypt, requested, self.timeout
            )
        except RelayerResponseError as e:
            if e.error_code == RelayerErrorLabel.NOT_PUBLIC.value:
                raise NotDisclosed(str(e), values={}, missing=requested) from e
            raise

        cleartexts = _normalize_response(response)
        values: Dict[str, int] = {}
        missing: List[str] = []
        for handle in requested:
            if handle not in cleartexts:
                missing.append(handle)
                continue
            try:
                values[handle] = int(cleartexts[handle])
            except (TypeError, ValueError):
                self.logger.warning(f"Unreadable public value for {short_handle(handle)}: {cleartexts[handle]!r}")
                missing.append(handle)

        if missing:
            self.logger.info(f"{len(missing)} handle(s) are not publicly decryptable")
            raise NotDisclosed(
                f"{len(missing)} of {len(requested)} handle(s) are not publicly decryptable",
                values=values,
                missing=missing
            )
        return values
