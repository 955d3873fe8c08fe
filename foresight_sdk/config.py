"""
Network configuration for the Foresight SDK.

Network parameters ship in ``networks.json`` inside the package. Every value
can be overridden per call or through ``<NETWORK>_<FIELD>`` environment
variables (``SEPOLIA_RPC_URL``, ``SEPOLIA_RELAYER_URL``, ...).
"""
import json
import logging
import os
import urllib.parse
from importlib import resources
from typing import Any, Dict, Optional

from web3 import Web3

logger = logging.getLogger(__name__)

DEFAULT_RELAYER_TIMEOUT = 30
DEFAULT_DURATION_DAYS = 7


def _env_name(network: str, field: str) -> str:
    return f"{network.upper().replace('-', '_')}_{field}"


def relayer_timeout() -> int:
    """Relayer request timeout in seconds (FORESIGHT_RELAYER_TIMEOUT)"""
    return int(os.environ.get("FORESIGHT_RELAYER_TIMEOUT", str(DEFAULT_RELAYER_TIMEOUT)))


def validate_service_url(url: str, name: str = "url") -> str:
    """
    Check that a service URL uses HTTPS unless it is local.

    Plain HTTP to a remote host is allowed only when
    ``FORESIGHT_INSECURE_RELAYER=1`` is set.

    Args:
        url: URL to validate
        name: Name used in error messages

    Returns:
        The URL without a trailing slash

    Raises:
        ValueError: If the URL is malformed or insecure
    """
    parsed = urllib.parse.urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid {name}: {url!r}")

    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1", "::1")
    if parsed.scheme != "https" and not is_local:
        if os.environ.get("FORESIGHT_INSECURE_RELAYER") != "1":
            raise ValueError(
                f"{name} must use https:// for security (got: {parsed.scheme}://). "
                "Set FORESIGHT_INSECURE_RELAYER=1 to allow HTTP for development."
            )
    return url.rstrip("/")


def checksum_address(address: str, name: str = "address") -> str:
    """
    Validate and checksum a chain address.

    Raises:
        ValueError: If ``address`` is not a valid 20-byte hex address
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise ValueError(f"Invalid {name}: {address!r}")
    return Web3.to_checksum_address(address)


class NetworkConfig:
    """Lookup of bundled network parameters"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the bundled network table, caching it after the first read.

        Returns:
            Mapping of network name to its parameters
        """
        if cls._networks_cache is not None:
            return cls._networks_cache

        source = resources.files("foresight_sdk").joinpath("networks.json")
        with source.open("r", encoding="utf-8") as f:
            cls._networks_cache = json.load(f)
        logger.debug(f"Loaded {len(cls._networks_cache)} network definitions")
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the parameters of one network.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def _get_field(cls, network: str, key: str, env_field: str, override: Optional[str]) -> str:
        if override:
            return override
        env_value = os.environ.get(_env_name(network, env_field))
        if env_value:
            return env_value
        value = cls.get_network(network).get(key)
        if not value:
            raise ValueError(f"Network '{network}' does not define '{key}'")
        return value

    @classmethod
    def get_rpc_url(cls, network: str, override: Optional[str] = None) -> str:
        """RPC URL for a network"""
        return cls._get_field(network, "rpc", "RPC_URL", override)

    @classmethod
    def get_relayer_url(cls, network: str, override: Optional[str] = None) -> str:
        """Relayer URL for a network"""
        return cls._get_field(network, "relayerUrl", "RELAYER_URL", override)

    @classmethod
    def get_chain_id(cls, network: str) -> int:
        """Host chain id"""
        return int(cls.get_network(network)["chainId"])

    @classmethod
    def get_gateway_chain_id(cls, network: str) -> int:
        """Chain id used in the decryption EIP-712 domain"""
        return int(cls.get_network(network)["gatewayChainId"])

    @classmethod
    def get_decryption_verifier(cls, network: str) -> str:
        """Verifying contract of the decryption EIP-712 domain"""
        return cls.get_network(network)["verifyingContractDecryption"]

    @classmethod
    def get_coin_address(cls, network: str, override: Optional[str] = None) -> str:
        """ConfidentialCoin address"""
        return cls._get_field(network, "coin", "COIN_ADDRESS", override)

    @classmethod
    def get_market_address(cls, network: str, override: Optional[str] = None) -> str:
        """ConfidentialPrediction address"""
        return cls._get_field(network, "market", "MARKET_ADDRESS", override)
