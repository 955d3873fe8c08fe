"""
Transport layer for the relayer.

The relayer fronts two remote capabilities the SDK depends on: the
confidential-computation backend that turns plaintexts into handles plus an
input proof, and the decryption authority that releases cleartexts. This
module defines the interface every transport implements so that callers can
swap the HTTP client for the in-process stub without changes.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import DecryptionGrant, EncryptedInput, HandleContractPair
from ._rate_limited_log import rate_limited_log

logger = logging.getLogger(__name__)


class RelayerTransport(ABC):
    """
    Abstract base class for relayer transport implementations.

    Implementations are synchronous and must be safe to call from several
    threads at once; the async SDK components run them in worker threads.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if this transport is available for use.

        Returns:
            True if transport is available, False otherwise
        """
        pass

    @abstractmethod
    def initialize(self, relayer_url: str, verify_ssl: bool = True) -> None:
        """
        Initialize the transport with the given relayer URL.

        Args:
            relayer_url: URL of the relayer service
            verify_ssl: Whether to verify SSL certificates

        Raises:
            RelayerConnectionError: If connection initialization fails
        """
        pass

    @abstractmethod
    def encrypt_input(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[Tuple[int, int]],
        timeout: Optional[int] = None
    ) -> EncryptedInput:
        """
        Encrypt a batch of plaintexts bound to a contract/user pair.

        Args:
            contract_address: Contract that will consume the handles
            user_address: Address allowed to submit them to that contract
            values: Ordered (bit_width, plaintext) pairs
            timeout: Request timeout in seconds

        Returns:
            One handle per value, in order, and a single proof for the batch

        Raises:
            RelayerResponseError: If the backend rejects a value
            RelayerError: For other relayer-related errors
        """
        pass

    @abstractmethod
    def user_decrypt(
        self,
        pairs: List[HandleContractPair],
        grant: DecryptionGrant,
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """
        Request re-encryption of handles under the grant's session key.

        Args:
            pairs: Handles with the contract each is bound to
            grant: Signed decryption grant
            timeout: Request timeout in seconds

        Returns:
            Mapping of handle to sealed-box ciphertext hex; handles the
            authority did not release are absent

        Raises:
            RelayerResponseError: If the authority refuses the grant
            RelayerError: For other relayer-related errors
        """
        pass

    @abstractmethod
    def public_decrypt(
        self,
        handles: List[str],
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """
        Read cleartexts of publicly decryptable handles.

        Args:
            handles: Handles to decrypt
            timeout: Request timeout in seconds

        Returns:
            Mapping of handle to decimal cleartext; handles that are not
            public are absent
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any open connections or resources."""
        pass


def get_http_transport(relayer_url: str, chain_id: int, verify_ssl: bool = True) -> RelayerTransport:
    """
    Get an initialized HTTP transport.

    Args:
        relayer_url: URL of the relayer service
        chain_id: Host chain id sent with every request
        verify_ssl: Whether to verify SSL certificates

    Returns:
        HTTP transport implementation
    """
    from .http_transport import HttpTransport
    transport = HttpTransport(chain_id=chain_id)
    transport.initialize(relayer_url, verify_ssl=verify_ssl)
    return transport


def get_stub_transport() -> RelayerTransport:
    """
    Get an in-process stub transport.

    The stub has no external dependencies and keeps ciphertexts in memory.

    Returns:
        Stub transport implementation
    """
    from .stub_transport import StubTransport
    transport = StubTransport()
    transport.initialize("stub://local")
    return transport


def get_transport(relayer_url: Optional[str], chain_id: int, verify_ssl: bool = True) -> RelayerTransport:
    """
    Get the transport for a relayer URL.

    Args:
        relayer_url: URL of the relayer, or None for the in-process stub
        chain_id: Host chain id
        verify_ssl: Whether to verify SSL certificates

    Returns:
        Transport implementation
    """
    if relayer_url:
        logger.info(f"Using HTTP relayer transport for {relayer_url}")
        return get_http_transport(relayer_url, chain_id, verify_ssl=verify_ssl)

    rate_limited_log(
        "No relayer URL configured - using in-process stub relayer",
        level="warning",
        logger_instance=logger
    )
    return get_stub_transport()
