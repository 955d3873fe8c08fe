"""
Exceptions for the Foresight SDK.
"""
from typing import Dict, List, Optional


class ForesightError(Exception):
    """Base exception for all Foresight SDK errors"""
    pass


class EncryptionFailure(ForesightError):
    """Raised when the relayer rejects or cannot build an encrypted input"""
    pass


class SignatureRejected(ForesightError):
    """Raised when the wallet declines or fails to sign a decryption request"""

    def __init__(self, message: str, state: Optional[str] = None):
        self.state = state
        super().__init__(message)


class DecryptionDenied(ForesightError):
    """Raised when the decryption authority refuses a grant"""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class PartialResult(ForesightError):
    """
    Raised when some requested handles are missing from a decryption response.

    Attributes:
        values: Cleartexts for the handles that were returned
        missing: Handles that were requested but not returned
    """

    def __init__(self, message: str, values: Dict[str, int], missing: List[str]):
        self.values = values
        self.missing = missing
        super().__init__(message)


class NotDisclosed(ForesightError):
    """
    Raised when a public decryption covers handles never marked disclosable.

    Attributes:
        values: Cleartexts for the handles that were disclosed
        missing: Handles the authority did not release
    """

    def __init__(self, message: str, values: Dict[str, int], missing: List[str]):
        self.values = values
        self.missing = missing
        super().__init__(message)


class SessionKeyConsumedError(ForesightError):
    """Raised when a session keypair is used for more than one decryption"""
    pass


class TransactionError(ForesightError):
    """Raised when submitting a transaction fails"""
    pass
