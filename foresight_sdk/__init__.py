"""
Foresight SDK - confidential bets and decryption for encrypted prediction markets.
"""
from .version import __version__
from .client import ForesightClient, BetDisclosure
from .models import (
    EncryptedInput, HandleContractPair, DecryptionGrant, Prediction, EncryptedBet, TxReceipt
)
from .encryption import ConsumerPair, EncryptedInputBuilder, InputBatch
from .payload import encode_callback_payload, decode_callback_payload
from .authorization import (
    DecryptionAuthorizer, DecryptionSession, SessionKeypair, AuthorizationState,
    build_user_decrypt_eip712
)
from .decryption import UserDecryptionClient, PublicDecryptionClient
from .market import MarketView
from .config import NetworkConfig
from .signer import Signer, LocalSigner
from .exceptions import (
    ForesightError, EncryptionFailure, SignatureRejected, DecryptionDenied,
    PartialResult, NotDisclosed, SessionKeyConsumedError, TransactionError
)

__all__ = [
    "ForesightClient",
    "BetDisclosure",
    "EncryptedInput",
    "HandleContractPair",
    "DecryptionGrant",
    "Prediction",
    "EncryptedBet",
    "TxReceipt",
    "ConsumerPair",
    "EncryptedInputBuilder",
    "InputBatch",
    "encode_callback_payload",
    "decode_callback_payload",
    "DecryptionAuthorizer",
    "DecryptionSession",
    "SessionKeypair",
    "AuthorizationState",
    "build_user_decrypt_eip712",
    "UserDecryptionClient",
    "PublicDecryptionClient",
    "MarketView",
    "NetworkConfig",
    "Signer",
    "LocalSigner",
    "ForesightError",
    "EncryptionFailure",
    "SignatureRejected",
    "DecryptionDenied",
    "PartialResult",
    "NotDisclosed",
    "SessionKeyConsumedError",
    "TransactionError",
    "__version__",
]
