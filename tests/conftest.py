"""
Pytest fixtures for the Foresight SDK tests.
"""
import time

import pytest
from eth_account import Account
from web3.providers.rpc import HTTPProvider

from foresight_sdk.authorization import DecryptionAuthorizer
from foresight_sdk.config import NetworkConfig
from foresight_sdk.decryption import PublicDecryptionClient, UserDecryptionClient
from foresight_sdk.encryption import EncryptedInputBuilder
from foresight_sdk.relayer._rate_limited_log import reset_rate_limits
from foresight_sdk.relayer.stub_transport import (
    STUB_DECRYPTION_VERIFIER, STUB_GATEWAY_CHAIN_ID, StubTransport
)
from foresight_sdk.signer import LocalSigner

# Constants for testing
TEST_RPC_URL = "https://rpc.example.com"
TEST_RELAYER_URL = "https://relayer.example.com"
TEST_PRIV_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
OTHER_PRIV_KEY = "0xfedcba9876543210fedcba9876543210fedcba9876543210fedcba9876543210"
COIN_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
MARKET_ADDRESS = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
OTHER_CONTRACT = "0x1234567890123456789012345678901234567890"
START_TIME = 1_700_000_000


class FakeClock:
    """Settable clock shared by the stub relayer and the authorizer"""

    def __init__(self, now: float = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    """Make time.sleep instantaneous so retries don't slow the suite down"""
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _reset_shared_state():
    """Clear class-level caches between tests"""
    reset_rate_limits()
    NetworkConfig._networks_cache = None
    yield
    reset_rate_limits()
    NetworkConfig._networks_cache = None


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    """
    def _dummy(self, method, params=None, _=None):
        if method == "eth_chainId":
            return {"jsonrpc": "2.0", "id": 1, "result": "0x7a69"}
        if method == "eth_gasPrice":
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def stub(clock):
    """Initialized in-memory relayer sharing the test clock"""
    transport = StubTransport(clock=clock)
    transport.initialize("stub://test")
    return transport


@pytest.fixture
def signer():
    return LocalSigner(TEST_PRIV_KEY)


@pytest.fixture
def other_signer():
    return LocalSigner(OTHER_PRIV_KEY)


@pytest.fixture
def mock_account():
    """Create a deterministic test account"""
    return Account.from_key(TEST_PRIV_KEY)


@pytest.fixture
def authorizer(clock):
    return DecryptionAuthorizer(STUB_GATEWAY_CHAIN_ID, STUB_DECRYPTION_VERIFIER, clock=clock)


@pytest.fixture
def builder(stub):
    return EncryptedInputBuilder(stub)


@pytest.fixture
def user_decryption(stub):
    return UserDecryptionClient(stub)


@pytest.fixture
def public_decryption(stub):
    return PublicDecryptionClient(stub)
