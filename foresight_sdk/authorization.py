"""
User-decryption authorization.

Before the decryption authority re-encrypts a ciphertext for a user, the user
proves intent by signing an EIP-712 ``UserDecryptRequestVerification``
message. The message binds a freshly generated session public key to the
set of contracts whose handles may be decrypted and to a validity window.
The cleartexts come back sealed to that session key, so only the holder of
the matching private key can read them.
"""
import asyncio
import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from nacl.public import PrivateKey, PublicKey

from .config import DEFAULT_DURATION_DAYS, checksum_address
from .exceptions import SessionKeyConsumedError, SignatureRejected
from .models import DecryptionGrant

logger = logging.getLogger(__name__)

PRIMARY_TYPE = "UserDecryptRequestVerification"

DEFAULT_EXTRA_DATA = "0x00"

EIP712_DOMAIN_TYPES = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

USER_DECRYPT_TYPES = [
    {"name": "publicKey", "type": "bytes"},
    {"name": "contractAddresses", "type": "address[]"},
    {"name": "startTimestamp", "type": "uint256"},
    {"name": "durationDays", "type": "uint256"},
    {"name": "extraData", "type": "bytes"},
]

_SIGNATURE_RE = re.compile(r"^0x[0-9a-fA-F]{130}$")


def build_user_decrypt_eip712(
    public_key: str,
    contract_addresses: List[str],
    start_timestamp: str,
    duration_days: str,
    chain_id: int,
    verifying_contract: str,
    extra_data: str = DEFAULT_EXTRA_DATA
) -> Dict[str, Any]:
    """
    Build the typed-data document a wallet signs to authorize user decryption.

    The decryption authority rebuilds this exact document from the request
    fields to verify the signature, so domain values and field order must not
    change.

    Args:
        public_key: 0x-prefixed session public key
        contract_addresses: Contracts whose handles may be decrypted
        start_timestamp: Window start in unix seconds, as a decimal string
        duration_days: Window length in days, as a decimal string
        chain_id: Chain id of the decryption domain
        verifying_contract: Verifying contract of the decryption domain
        extra_data: Opaque extra data, ``0x00`` by default

    Returns:
        Dictionary with ``domain``, ``types``, ``primaryType`` and ``message``
    """
    return {
        "domain": {
            "name": "Decryption",
            "version": "1",
            "chainId": chain_id,
            "verifyingContract": verifying_contract,
        },
        "types": {
            "EIP712Domain": EIP712_DOMAIN_TYPES,
            PRIMARY_TYPE: USER_DECRYPT_TYPES,
        },
        "primaryType": PRIMARY_TYPE,
        "message": {
            "publicKey": public_key,
            "contractAddresses": list(contract_addresses),
            "startTimestamp": start_timestamp,
            "durationDays": duration_days,
            "extraData": extra_data,
        },
    }


class SessionKeypair:
    """
    Ephemeral Curve25519 keypair for one decryption session.

    The private half can be taken exactly once. After that, or after
    :meth:`discard`, the keypair is spent and any further use raises
    :class:`SessionKeyConsumedError`.
    """

    def __init__(self, private_key: Optional[PrivateKey] = None):
        self._private_key: Optional[PrivateKey] = private_key or PrivateKey.generate()
        self.public_key = "0x" + bytes(self._private_key.public_key).hex()

    @property
    def consumed(self) -> bool:
        return self._private_key is None

    def public_key_object(self) -> PublicKey:
        return PublicKey(bytes.fromhex(self.public_key[2:]))

    def take_private_key(self) -> PrivateKey:
        """
        Move the private key out of the keypair.

        Raises:
            SessionKeyConsumedError: If the key was already taken or discarded
        """
        if self._private_key is None:
            raise SessionKeyConsumedError("Session keypair has already been used")
        key, self._private_key = self._private_key, None
        return key

    def discard(self) -> None:
        self._private_key = None

    def __repr__(self) -> str:
        state = "consumed" if self.consumed else "fresh"
        return f"SessionKeypair(public_key={self.public_key[:10]}…, {state})"


class AuthorizationState(str, Enum):
    """Steps of one authorization session, in order"""
    CREATED = "created"
    KEYPAIR_GENERATED = "keypair_generated"
    MESSAGE_BUILT = "message_built"
    SIGNED = "signed"
    GRANTED = "granted"


@dataclass
class DecryptionSession:
    """A signed grant and the keypair it was issued for"""
    grant: DecryptionGrant
    keypair: SessionKeypair


def _unique_addresses(addresses: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for address in addresses:
        checksummed = checksum_address(address, "contract address")
        if checksummed.lower() not in seen:
            seen.add(checksummed.lower())
            result.append(checksummed)
    return result


class DecryptionAuthorizer:
    """
    Produces signed user-decryption grants.

    Every call to :meth:`authorize` generates a new keypair and a new start
    timestamp; grants and keypairs are never cached or reused.
    """

    def __init__(
        self,
        chain_id: int,
        verifying_contract: str,
        duration_days: int = DEFAULT_DURATION_DAYS,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the authorizer.

        Args:
            chain_id: Chain id of the decryption EIP-712 domain
            verifying_contract: Verifying contract of the decryption domain
            duration_days: Validity of each grant in days
            clock: Returns the current unix time (defaults to time.time)
            logger: Optional logger instance
        """
        if duration_days < 0:
            raise ValueError(f"duration_days must not be negative, got {duration_days}")
        self.chain_id = chain_id
        self.verifying_contract = checksum_address(verifying_contract, "verifying contract")
        self.duration_days = duration_days
        self.clock = clock or time.time
        self.logger = logger or logging.getLogger(__name__)

    async def authorize(self, contract_addresses: Iterable[str], signer: Any) -> DecryptionSession:
        """
        Generate a session keypair and have the wallet sign a grant for it.

        Args:
            contract_addresses: Contracts whose handles the grant covers
            signer: Wallet exposing ``address`` and ``sign_typed_data``

        Returns:
            DecryptionSession holding the grant and its keypair

        Raises:
            ValueError: If no valid contract address is given
            SignatureRejected: If the wallet declines or fails to sign
        """
        state = AuthorizationState.CREATED
        addresses = _unique_addresses(contract_addresses)
        if not addresses:
            raise ValueError("At least one contract address is required")
        user_address = checksum_address(signer.address, "signer address")

        keypair = SessionKeypair()
        state = AuthorizationState.KEYPAIR_GENERATED

        start_timestamp = str(int(self.clock()))
        duration_days = str(self.duration_days)
        eip712 = build_user_decrypt_eip712(
            keypair.public_key,
            addresses,
            start_timestamp,
            duration_days,
            self.chain_id,
            self.verifying_contract
        )
        state = AuthorizationState.MESSAGE_BUILT
        self.logger.debug(
            f"Requesting decryption grant for {len(addresses)} contract(s), "
            f"start={start_timestamp}, days={duration_days}"
        )

        try:
            signature = await asyncio.to_thread(
                signer.sign_typed_data,
                eip712["domain"],
                {PRIMARY_TYPE: eip712["types"][PRIMARY_TYPE]},
                eip712["message"]
            )
        except Exception as e:
            keypair.discard()
            self.logger.warning(f"Wallet did not sign decryption grant: {e}")
            raise SignatureRejected(f"Failed to sign decryption request: {e}", state=state.value) from e

        if not isinstance(signature, str) or not _SIGNATURE_RE.match(signature):
            keypair.discard()
            raise SignatureRejected("Wallet returned a malformed signature", state=state.value)
        state = AuthorizationState.SIGNED

        grant = DecryptionGrant(
            public_key=keypair.public_key,
            contract_addresses=addresses,
            start_timestamp=start_timestamp,
            duration_days=duration_days,
            user_address=user_address,
            signature=signature,
            eip712=eip712
        )
        state = AuthorizationState.GRANTED
        self.logger.info(f"Decryption grant {state.value} for {user_address[:10]}…")
        return DecryptionSession(grant=grant, keypair=keypair)
