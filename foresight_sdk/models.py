"""
Data models for the Foresight SDK.
"""
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .handles import normalize_handle, normalize_proof


class EncryptedInput(BaseModel):
    """Handles and the single proof produced by one encryption batch"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handles: List[str]
    input_proof: str = Field(..., alias="inputProof")

    @field_validator("handles", mode="before")
    @classmethod
    def _normalize_handles(cls, value):
        return [normalize_handle(h) for h in value]

    @field_validator("input_proof", mode="before")
    @classmethod
    def _normalize_proof(cls, value):
        return normalize_proof(value)


class HandleContractPair(BaseModel):
    """A handle together with the contract it is bound to"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handle: str
    contract_address: str = Field(..., alias="contractAddress")

    @field_validator("handle", mode="before")
    @classmethod
    def _normalize_handle(cls, value):
        return normalize_handle(value)


class DecryptionGrant(BaseModel):
    """
    Signed, time-boxed authorization to user-decrypt handles.

    ``start_timestamp`` and ``duration_days`` are decimal strings, exactly as
    they appear in the signed EIP-712 message.
    """
    model_config = ConfigDict(frozen=True)

    public_key: str
    contract_addresses: List[str]
    start_timestamp: str
    duration_days: str
    user_address: str
    signature: str
    eip712: Dict[str, Any]

    @property
    def expires_at(self) -> int:
        """First second at which the grant is no longer valid"""
        return int(self.start_timestamp) + int(self.duration_days) * 86400

    def covers(self, contract_address: str) -> bool:
        """Whether ``contract_address`` is in the authorized set"""
        wanted = contract_address.lower()
        return any(addr.lower() == wanted for addr in self.contract_addresses)


class EncryptedBet(BaseModel):
    """A user's encrypted bet on one prediction"""
    option: str
    amount: str
    exists: bool


class Prediction(BaseModel):
    """On-chain prediction record"""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    options: List[str]
    creator: str
    is_active: bool = Field(..., alias="isActive")
    totals_public: bool = Field(..., alias="totalsPublic")
    created_at: int = Field(..., alias="createdAt")
    totals: List[str] = Field(default_factory=list)
    bet: Optional[EncryptedBet] = None


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]]
