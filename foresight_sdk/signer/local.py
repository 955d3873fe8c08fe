"""
Local private-key signer backed by eth_account.
"""
import logging
from typing import Any, Dict, List

from eth_account import Account
from eth_account.messages import encode_typed_data

logger = logging.getLogger(__name__)


class LocalSigner:
    """Signs with an in-process secp256k1 private key"""

    def __init__(self, private_key: str):
        """
        Initialize the signer.

        Args:
            private_key: Hex private key, with or without 0x prefix

        Raises:
            ValueError: If the key is not a valid secp256k1 private key
        """
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        message: Dict[str, Any]
    ) -> str:
        """
        Sign an EIP-712 structured message.

        Args:
            domain: EIP-712 domain data
            types: Message types, without the EIP712Domain entry
            message: Message values

        Returns:
            0x-prefixed 65-byte signature hex
        """
        signable = encode_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message
        )
        signed = self._account.sign_message(signable)
        logger.debug(f"Signed typed data for {self.address[:10]}…")
        return "0x" + bytes(signed.signature).hex()

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign a transaction dict and return the signed transaction"""
        return self._account.sign_transaction(transaction_dict)
