"""
Tests for the HTTP relayer transport.
"""
import pytest
import requests

from foresight_sdk.models import DecryptionGrant, HandleContractPair
from foresight_sdk.relayer.exceptions import (
    RelayerConnectionError, RelayerResponseError, RelayerTimeoutError
)
from foresight_sdk.relayer.http_transport import HttpTransport
from foresight_sdk.relayer.transport import get_transport
from foresight_sdk.relayer.stub_transport import StubTransport

from .conftest import COIN_ADDRESS, MARKET_ADDRESS, TEST_RELAYER_URL

HANDLE_A = "0x" + "aa" * 32
HANDLE_B = "0x" + "bb" * 32
SIGNATURE = "0x" + "11" * 65
JSON_HEADERS = {"Content-Type": "application/json"}


@pytest.fixture
def transport():
    t = HttpTransport(chain_id=11155111)
    t.initialize(TEST_RELAYER_URL + "/")
    yield t
    t.close()


@pytest.fixture
def grant():
    return DecryptionGrant(
        public_key="0x" + "cd" * 32,
        contract_addresses=[COIN_ADDRESS],
        start_timestamp="1700000000",
        duration_days="7",
        user_address=MARKET_ADDRESS,
        signature=SIGNATURE,
        eip712={}
    )


class TestInitialize:

    def test_trailing_slash_stripped(self, transport):
        assert transport.relayer_url == TEST_RELAYER_URL

    def test_http_rejected_for_remote_host(self, monkeypatch):
        monkeypatch.delenv("FORESIGHT_INSECURE_RELAYER", raising=False)
        with pytest.raises(ValueError, match="https"):
            HttpTransport(chain_id=1).initialize("http://relayer.example.com")

    def test_http_allowed_for_localhost(self):
        t = HttpTransport(chain_id=1)
        t.initialize("http://localhost:3000")
        assert t.relayer_url == "http://localhost:3000"

    def test_http_allowed_with_override(self, monkeypatch):
        monkeypatch.setenv("FORESIGHT_INSECURE_RELAYER", "1")
        t = HttpTransport(chain_id=1)
        t.initialize("http://relayer.example.com")
        assert t.relayer_url == "http://relayer.example.com"

    def test_timeout_from_environment(self, monkeypatch):
        monkeypatch.setenv("FORESIGHT_RELAYER_TIMEOUT", "5")
        assert HttpTransport(chain_id=1).timeout == 5

    def test_not_initialized(self):
        with pytest.raises(RelayerConnectionError):
            HttpTransport(chain_id=1).public_decrypt([HANDLE_A])


class TestWireFormat:

    def test_encrypt_input_request_and_response(self, transport, requests_mock):
        route = requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/input-proof",
            json={"response": {"handles": [HANDLE_A, HANDLE_B.upper()[2:]], "inputProof": "0xABCD"}},
            headers=JSON_HEADERS
        )

        result = transport.encrypt_input(MARKET_ADDRESS, COIN_ADDRESS, [(32, 1), (64, 2**63)])

        assert route.last_request.json() == {
            "contractAddress": MARKET_ADDRESS,
            "userAddress": COIN_ADDRESS,
            "contractChainId": 11155111,
            "values": [{"bits": 32, "value": "1"}, {"bits": 64, "value": str(2**63)}],
            "extraData": "0x00",
        }
        assert result.handles == [HANDLE_A, HANDLE_B]
        assert result.input_proof == "0xabcd"

    def test_user_decrypt_request(self, transport, grant, requests_mock):
        route = requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/user-decrypt",
            json={"response": {HANDLE_A: "beef"}},
            headers=JSON_HEADERS
        )
        pairs = [HandleContractPair(handle=HANDLE_A, contract_address=COIN_ADDRESS)]

        result = transport.user_decrypt(pairs, grant)

        body = route.last_request.json()
        assert body["handleContractPairs"] == [{"handle": HANDLE_A, "contractAddress": COIN_ADDRESS}]
        assert body["requestValidity"] == {"startTimestamp": "1700000000", "durationDays": "7"}
        assert body["contractsChainId"] == 11155111
        assert body["contractAddresses"] == [COIN_ADDRESS]
        assert body["userAddress"] == MARKET_ADDRESS
        assert body["signature"] == SIGNATURE[2:]
        assert body["publicKey"] == grant.public_key
        assert body["extraData"] == "0x00"
        assert result == {HANDLE_A: "beef"}

    def test_public_decrypt_request(self, transport, requests_mock):
        route = requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/public-decrypt",
            json={"response": {HANDLE_A: "12"}},
            headers=JSON_HEADERS
        )

        assert transport.public_decrypt([HANDLE_A]) == {HANDLE_A: "12"}
        assert route.last_request.json() == {"ciphertextHandles": [HANDLE_A], "extraData": "0x00"}


class TestErrors:

    @pytest.mark.parametrize("label,status", [
        ("expired", 400), ("not_allowed", 403), ("invalid_signature", 400), ("not_public", 400)
    ])
    def test_error_label_preserved(self, transport, requests_mock, label, status):
        requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/public-decrypt",
            json={"message": "refused", "label": label},
            status_code=status,
            headers=JSON_HEADERS
        )

        with pytest.raises(RelayerResponseError) as exc_info:
            transport.public_decrypt([HANDLE_A])
        assert exc_info.value.error_code == label
        assert exc_info.value.status_code == status
        assert "refused" in str(exc_info.value)

    def test_error_without_json_body(self, transport, requests_mock):
        requests_mock.post(f"{TEST_RELAYER_URL}/v1/public-decrypt", text="Bad Gateway", status_code=502)

        with pytest.raises(RelayerResponseError) as exc_info:
            transport.public_decrypt([HANDLE_A])
        assert exc_info.value.error_code == "unknown"
        assert exc_info.value.status_code == 502

    def test_missing_response_key(self, transport, requests_mock):
        requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/public-decrypt", json={"result": {}}, headers=JSON_HEADERS
        )
        with pytest.raises(RelayerResponseError, match="response"):
            transport.public_decrypt([HANDLE_A])

    def test_invalid_json(self, transport, requests_mock):
        requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/public-decrypt", text="not json", headers=JSON_HEADERS
        )
        with pytest.raises(RelayerResponseError, match="Invalid JSON"):
            transport.public_decrypt([HANDLE_A])

    def test_malformed_input_proof_response(self, transport, requests_mock):
        requests_mock.post(
            f"{TEST_RELAYER_URL}/v1/input-proof",
            json={"response": {"handles": ["0x1234"], "inputProof": "0x01"}},
            headers=JSON_HEADERS
        )
        with pytest.raises(RelayerResponseError, match="Malformed"):
            transport.encrypt_input(MARKET_ADDRESS, COIN_ADDRESS, [(32, 1)])

    def test_timeout(self, transport, requests_mock):
        requests_mock.post(f"{TEST_RELAYER_URL}/v1/public-decrypt", exc=requests.exceptions.ReadTimeout)
        with pytest.raises(RelayerTimeoutError):
            transport.public_decrypt([HANDLE_A])

    def test_connection_error(self, transport, requests_mock):
        requests_mock.post(f"{TEST_RELAYER_URL}/v1/public-decrypt", exc=requests.exceptions.ConnectionError)
        with pytest.raises(RelayerConnectionError):
            transport.public_decrypt([HANDLE_A])


class TestGetTransport:

    def test_url_selects_http(self):
        t = get_transport(TEST_RELAYER_URL, 1)
        assert isinstance(t, HttpTransport)
        t.close()

    def test_no_url_falls_back_to_stub(self, caplog):
        with caplog.at_level("WARNING"):
            t = get_transport(None, 1)
        assert isinstance(t, StubTransport)
        assert t.initialized
        assert "stub" in caplog.text
