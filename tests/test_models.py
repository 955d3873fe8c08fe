"""
Tests for data models and package metadata.
"""
import importlib.metadata

import pytest
from pydantic import ValidationError

import foresight_sdk
from foresight_sdk import version
from foresight_sdk.models import DecryptionGrant, EncryptedInput, HandleContractPair


def test_version():
    assert isinstance(foresight_sdk.__version__, str)
    assert foresight_sdk.__version__.count(".") >= 1


def test_version_fallback_when_not_installed(monkeypatch):
    def _missing(name):
        raise importlib.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(importlib.metadata, "version", _missing)
    assert version.get_version() == "0.1.0"

    monkeypatch.setattr(version, "_PYPROJECT", version._PYPROJECT.with_name("missing.toml"))
    assert version.get_version() == version.UNKNOWN_VERSION


def test_version_info():
    assert version._version_info("1.2.3") == (1, 2, 3)
    assert version._version_info("0.0.0+unknown") == (0, 0, 0)


def test_encrypted_input_normalises_and_is_frozen():
    encrypted = EncryptedInput.model_validate(
        {"handles": [b"\x01" * 32], "inputProof": "ABCD"}
    )
    assert encrypted.handles == ["0x" + "01" * 32]
    assert encrypted.input_proof == "0xabcd"

    with pytest.raises(ValidationError):
        encrypted.input_proof = "0x00"


def test_encrypted_input_rejects_bad_handle():
    with pytest.raises(ValidationError):
        EncryptedInput(handles=["0x12"], input_proof="0x01")


def test_handle_contract_pair_aliases():
    pair = HandleContractPair(handle=1, contractAddress="0x1234567890123456789012345678901234567890")
    assert pair.model_dump(by_alias=True) == {
        "handle": "0x" + "00" * 31 + "01",
        "contractAddress": "0x1234567890123456789012345678901234567890",
    }


def test_grant_window():
    grant = DecryptionGrant(
        public_key="0x00",
        contract_addresses=["0xAbC0000000000000000000000000000000000001"],
        start_timestamp="100",
        duration_days="2",
        user_address="0x0000000000000000000000000000000000000002",
        signature="0x",
        eip712={}
    )
    assert grant.expires_at == 100 + 2 * 86400
    assert grant.covers("0xabc0000000000000000000000000000000000001")
    assert not grant.covers("0x0000000000000000000000000000000000000003")
