"""
HTTP transport for the relayer.

Speaks the relayer's JSON API over HTTPS using a ``requests`` session with
transport-level retries for server errors and dropped connections. Protocol
errors (bad proofs, refused grants) are never retried.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import relayer_timeout, validate_service_url
from ..models import DecryptionGrant, EncryptedInput, HandleContractPair
from ._rate_limited_log import rate_limited_log
from .exceptions import (
    RelayerConnectionError, RelayerErrorLabel, RelayerResponseError, RelayerTimeoutError
)
from .transport import RelayerTransport

# Configure logger
logger = logging.getLogger(__name__)

INPUT_PROOF_PATH = "/v1/input-proof"
USER_DECRYPT_PATH = "/v1/user-decrypt"
PUBLIC_DECRYPT_PATH = "/v1/public-decrypt"

DEFAULT_EXTRA_DATA = "0x00"


class HttpTransport(RelayerTransport):
    """Relayer transport over HTTPS"""

    def __init__(self, chain_id: int, retry_count: int = 3, timeout: Optional[int] = None):
        """
        Initialize the HTTP transport.

        Args:
            chain_id: Host chain id sent with every request
            retry_count: Number of retries for 5xx responses and connection errors
            timeout: Default request timeout in seconds
        """
        self.chain_id = chain_id
        self.retry_count = retry_count
        self.timeout = timeout or relayer_timeout()
        self.relayer_url: Optional[str] = None
        self.session: Optional[requests.Session] = None

    def is_available(self) -> bool:
        """HTTP transport only needs requests, which is always installed"""
        return True

    def initialize(self, relayer_url: str, verify_ssl: bool = True) -> None:
        """
        Validate the relayer URL and open a session.

        Raises:
            ValueError: If the URL is invalid or uses insecure HTTP
        """
        self.relayer_url = validate_service_url(relayer_url, "relayer_url")

        session = requests.Session()
        retries = Retry(
            total=self.retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
            connect=self.retry_count,
            read=self.retry_count,
            other=self.retry_count
        )
        session.mount("http://", HTTPAdapter(max_retries=retries))
        session.mount("https://", HTTPAdapter(max_retries=retries))
        session.verify = verify_ssl
        session.headers.update({"Content-Type": "application/json"})
        self.session = session
        logger.debug(f"Initialized HTTP transport for {self.relayer_url}")

    def _post(self, path: str, body: Dict[str, Any], timeout: Optional[int]) -> Any:
        if self.session is None or self.relayer_url is None:
            raise RelayerConnectionError("HTTP transport not initialized")

        url = f"{self.relayer_url}{path}"
        try:
            response = self.session.post(url, json=body, timeout=timeout or self.timeout)
        except requests.Timeout as e:
            logger.error(f"Relayer request to {path} timed out")
            raise RelayerTimeoutError(f"Relayer request timed out: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Relayer request to {path} failed: {e}")
            raise RelayerConnectionError(f"Relayer request failed: {e}") from e

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            rate_limited_log(
                f"Unexpected Content-Type from relayer: {content_type} (expected application/json)",
                logger_instance=logger
            )

        if response.status_code >= 400:
            message, label = f"HTTP {response.status_code}", RelayerErrorLabel.UNKNOWN.value
            try:
                error = response.json()
                message = error.get("message", message)
                label = error.get("label", label)
            except ValueError:
                pass
            logger.warning(f"Relayer returned {response.status_code} on {path}: {label}")
            raise RelayerResponseError(message, error_code=label, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise RelayerResponseError(f"Invalid JSON response from relayer: {e}") from e

        if not isinstance(data, dict) or "response" not in data:
            raise RelayerResponseError(f"Missing 'response' in relayer reply: {data!r}"[:200])
        return data["response"]

    def encrypt_input(
        self,
        contract_address: str,
        user_address: str,
        values: Sequence[Tuple[int, int]],
        timeout: Optional[int] = None
    ) -> EncryptedInput:
        """Request handles and a batch proof from the relayer"""
        body = {
            "contractAddress": contract_address,
            "userAddress": user_address,
            "contractChainId": self.chain_id,
            "values": [{"bits": bits, "value": str(value)} for bits, value in values],
            "extraData": DEFAULT_EXTRA_DATA,
        }
        result = self._post(INPUT_PROOF_PATH, body, timeout)
        try:
            return EncryptedInput.model_validate(result)
        except (TypeError, ValueError) as e:
            raise RelayerResponseError(f"Malformed input-proof response: {e}") from e

    def user_decrypt(
        self,
        pairs: List[HandleContractPair],
        grant: DecryptionGrant,
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """Request handles re-encrypted under the grant's session key"""
        signature = grant.signature[2:] if grant.signature.startswith("0x") else grant.signature
        body = {
            "handleContractPairs": [p.model_dump(by_alias=True) for p in pairs],
            "requestValidity": {
                "startTimestamp": grant.start_timestamp,
                "durationDays": grant.duration_days,
            },
            "contractsChainId": self.chain_id,
            "contractAddresses": list(grant.contract_addresses),
            "userAddress": grant.user_address,
            "signature": signature,
            "publicKey": grant.public_key,
            "extraData": DEFAULT_EXTRA_DATA,
        }
        result = self._post(USER_DECRYPT_PATH, body, timeout)
        if not isinstance(result, dict):
            raise RelayerResponseError("Malformed user-decrypt response")
        return {str(k): str(v) for k, v in result.items()}

    def public_decrypt(
        self,
        handles: List[str],
        timeout: Optional[int] = None
    ) -> Dict[str, str]:
        """Request cleartexts of publicly decryptable handles"""
        body = {"ciphertextHandles": list(handles), "extraData": DEFAULT_EXTRA_DATA}
        result = self._post(PUBLIC_DECRYPT_PATH, body, timeout)
        if not isinstance(result, dict):
            raise RelayerResponseError("Malformed public-decrypt response")
        return {str(k): str(v) for k, v in result.items()}

    def close(self) -> None:
        """Close the HTTP session."""
        if self.session is not None:
            self.session.close()
            self.session = None
