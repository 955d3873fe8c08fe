"""
Read-only view of the prediction market and confidential coin contracts.

Turns contract reads into the records the encryption and decryption
components work with. Every encrypted field comes back as a handle.
"""
import logging
from typing import Any, List, Optional, Sequence

from web3 import Web3

from .config import checksum_address
from .handles import normalize_handle
from .models import EncryptedBet, Prediction

logger = logging.getLogger(__name__)

PREDICTION_ABI = [
    {
        "inputs": [],
        "name": "predictionCount",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "predictionId", "type": "uint256"}],
        "name": "getPrediction",
        "outputs": [
            {"internalType": "string", "name": "name", "type": "string"},
            {"internalType": "string[]", "name": "options", "type": "string[]"},
            {"internalType": "address", "name": "creator", "type": "address"},
            {"internalType": "bool", "name": "isActive", "type": "bool"},
            {"internalType": "bool", "name": "totalsPublic", "type": "bool"},
            {"internalType": "uint256", "name": "createdAt", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "predictionId", "type": "uint256"}],
        "name": "getOptionTotals",
        "outputs": [{"internalType": "euint64[]", "name": "", "type": "bytes32[]"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "predictionId", "type": "uint256"},
            {"internalType": "address", "name": "user", "type": "address"}
        ],
        "name": "getEncryptedBet",
        "outputs": [
            {"internalType": "euint32", "name": "option", "type": "bytes32"},
            {"internalType": "euint64", "name": "amount", "type": "bytes32"},
            {"internalType": "bool", "name": "exists", "type": "bool"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "uint256", "name": "predictionId", "type": "uint256"}],
        "name": "finalizePrediction",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]

COIN_ABI = [
    {
        "inputs": [],
        "name": "rate",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "purchase",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "confidentialBalanceOf",
        "outputs": [{"internalType": "euint64", "name": "", "type": "bytes32"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "externalEuint64", "name": "encryptedAmount", "type": "bytes32"},
            {"internalType": "bytes", "name": "inputProof", "type": "bytes"},
            {"internalType": "bytes", "name": "data", "type": "bytes"}
        ],
        "name": "confidentialTransferAndCall",
        "outputs": [{"internalType": "euint64", "name": "transferred", "type": "bytes32"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]


def _unwrap(result: Any) -> Sequence[Any]:
    # A struct return comes back as a single tuple element
    if isinstance(result, (list, tuple)) and len(result) == 1 and isinstance(result[0], (list, tuple)):
        return result[0]
    return result


class MarketView:
    """Contract reads for one coin/market deployment"""

    def __init__(
        self,
        w3: Web3,
        coin_address: str,
        market_address: str,
        logger: Optional[logging.Logger] = None
    ):
        self.w3 = w3
        self.coin_address = checksum_address(coin_address, "coin address")
        self.market_address = checksum_address(market_address, "market address")
        self.coin = w3.eth.contract(address=self.coin_address, abi=COIN_ABI)
        self.market = w3.eth.contract(address=self.market_address, abi=PREDICTION_ABI)
        self.logger = logger or logging.getLogger(__name__)

    def prediction_count(self) -> int:
        return int(self.market.functions.predictionCount().call())

    def get_prediction(self, prediction_id: int) -> Prediction:
        """Prediction record with its option-total handles, without a bet"""
        name, options, creator, is_active, totals_public, created_at = _unwrap(
            self.market.functions.getPrediction(prediction_id).call()
        )
        return Prediction(
            id=prediction_id,
            name=name,
            options=list(options),
            creator=creator,
            isActive=bool(is_active),
            totalsPublic=bool(totals_public),
            createdAt=int(created_at),
            totals=self.get_option_totals(prediction_id)
        )

    def get_option_totals(self, prediction_id: int) -> List[str]:
        """Per-option total handles, in option order"""
        totals = self.market.functions.getOptionTotals(prediction_id).call()
        return [normalize_handle(h) for h in totals]

    def get_encrypted_bet(self, prediction_id: int, user: str) -> EncryptedBet:
        option, amount, exists = _unwrap(
            self.market.functions.getEncryptedBet(prediction_id, checksum_address(user, "user")).call()
        )
        return EncryptedBet(
            option=normalize_handle(option),
            amount=normalize_handle(amount),
            exists=bool(exists)
        )

    def list_predictions(self, user: Optional[str] = None) -> List[Prediction]:
        """
        All predictions, in id order, with the user's bet when ``user`` is given.
        """
        count = self.prediction_count()
        self.logger.debug(f"Loading {count} prediction(s)")
        predictions = []
        for prediction_id in range(count):
            prediction = self.get_prediction(prediction_id)
            if user:
                prediction = prediction.model_copy(
                    update={"bet": self.get_encrypted_bet(prediction_id, user)}
                )
            predictions.append(prediction)
        return predictions

    def encrypted_balance(self, user: str) -> str:
        """Handle of the user's confidential cCoin balance"""
        balance = self.coin.functions.confidentialBalanceOf(checksum_address(user, "user")).call()
        return normalize_handle(balance)

    def rate(self) -> int:
        """cCoin base units the coin contract mints per ETH purchased"""
        return int(self.coin.functions.rate().call())
