"""
Exceptions for the relayer module.
"""
from enum import Enum
from typing import Optional


class RelayerErrorLabel(str, Enum):
    """
    Error labels returned by the relayer in the ``label`` field of an error body.
    """
    UNKNOWN = "unknown"
    MALFORMED_INPUT = "malformed_input"
    INVALID_PROOF = "invalid_proof"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    NOT_ALLOWED = "not_allowed"
    NOT_PUBLIC = "not_public"


# Labels that mean the grant itself was refused
DENIAL_LABELS = frozenset({
    RelayerErrorLabel.INVALID_SIGNATURE.value,
    RelayerErrorLabel.EXPIRED.value,
    RelayerErrorLabel.NOT_ALLOWED.value,
})


class RelayerError(Exception):
    """Base exception for relayer-related errors."""
    pass


class RelayerConnectionError(RelayerError):
    """Raised when connection to the relayer fails."""
    pass


class RelayerResponseError(RelayerError):
    """Raised when the relayer returns an error response."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        self.error_code = error_code or RelayerErrorLabel.UNKNOWN.value
        self.status_code = status_code
        super().__init__(message)


class RelayerTimeoutError(RelayerError):
    """Raised when a relayer request times out."""
    pass
