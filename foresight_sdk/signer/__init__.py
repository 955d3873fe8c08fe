"""
Signer interface for the Foresight SDK.

Any object exposing an ``address`` plus ``sign_typed_data`` and
``sign_transaction`` can act as the wallet: a local key, a hardware wallet
bridge, or a deterministic signer in tests.
"""
from typing import Any, Dict, List, Protocol, runtime_checkable

from .local import LocalSigner

__all__ = ["Signer", "LocalSigner"]


@runtime_checkable
class Signer(Protocol):
    """Protocol for wallet signers"""
    address: str

    def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        message: Dict[str, Any]
    ) -> str:
        """Sign an EIP-712 message and return the 0x-prefixed signature"""
        ...

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object"""
        ...
