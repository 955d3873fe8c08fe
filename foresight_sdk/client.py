"""
ForesightClient - Main client for confidential prediction markets.
"""
import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

from web3 import Web3
from web3.exceptions import Web3Exception

from .authorization import DecryptionAuthorizer
from .config import DEFAULT_DURATION_DAYS, NetworkConfig, relayer_timeout
from .decryption import PublicDecryptionClient, UserDecryptionClient
from .encryption import ConsumerPair, EncryptedInputBuilder
from .exceptions import NotDisclosed, TransactionError
from .handles import is_zero_handle
from .market import MarketView
from .models import TxReceipt
from .payload import encode_callback_payload
from .relayer.transport import RelayerTransport, get_transport
from .signer import LocalSigner, Signer
from .units import eth_to_wei, from_base_units, to_base_units

DEFAULT_GAS_LIMIT = 500000


@dataclass
class BetDisclosure:
    """A user's own bet, decrypted"""
    prediction_id: int
    option_index: int
    option_label: str
    amount: Decimal


class ForesightClient:
    """
    Client for placing confidential bets and reading confidential values.

    This client handles:
    1. Encrypting a bet's option and amount and submitting them in one
       confidential transfer-and-call
    2. Decrypting the user's own balance and bets under a signed grant
    3. Decrypting publicly released option totals
    4. Buying cCoin with ETH and finalizing predictions
    """

    def __init__(
        self,
        rpc_url: str,
        coin_address: str,
        market_address: str,
        decryption_chain_id: int,
        decryption_verifier: str,
        relayer_url: Optional[str] = None,
        transport: Optional[RelayerTransport] = None,
        priv_key: Optional[str] = None,
        signer: Optional[Signer] = None,
        chain_id: Optional[int] = None,
        duration_days: int = DEFAULT_DURATION_DAYS,
        clock: Optional[Callable[[], float]] = None,
        w3: Optional[Web3] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the ForesightClient

        Args:
            rpc_url: Ethereum RPC endpoint URL
            coin_address: ConfidentialCoin contract address
            market_address: ConfidentialPrediction contract address
            decryption_chain_id: Chain id of the decryption EIP-712 domain
            decryption_verifier: Verifying contract of the decryption domain
            relayer_url: Relayer URL (ignored when ``transport`` is given)
            transport: Relayer transport to use instead of building one
            priv_key: Ethereum private key (optional if signer provided)
            signer: Custom signer object (optional if priv_key provided)
            chain_id: Host chain id sent to the relayer (read from RPC if omitted)
            duration_days: Validity of decryption grants in days
            clock: Returns the current unix time (defaults to time.time)
            w3: Preconfigured Web3 instance
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If neither priv_key nor signer is provided
            ValueError: If an address or URL is invalid
        """
        if not priv_key and not signer:
            raise ValueError("Either priv_key or signer must be provided")

        self.logger = logger or logging.getLogger(__name__)
        self.signer: Signer = signer or LocalSigner(priv_key)
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url))
        self.chain_id = chain_id if chain_id is not None else self.w3.eth.chain_id

        self.market_view = MarketView(self.w3, coin_address, market_address, logger=self.logger)
        self.coin_address = self.market_view.coin_address
        self.market_address = self.market_view.market_address

        timeout = relayer_timeout()
        self.transport = transport or get_transport(relayer_url, self.chain_id)
        self.builder = EncryptedInputBuilder(self.transport, timeout=timeout, logger=self.logger)
        self.authorizer = DecryptionAuthorizer(
            decryption_chain_id,
            decryption_verifier,
            duration_days=duration_days,
            clock=clock,
            logger=self.logger
        )
        self.user_decryption = UserDecryptionClient(self.transport, timeout=timeout, logger=self.logger)
        self.public_decryption = PublicDecryptionClient(self.transport, timeout=timeout, logger=self.logger)

    @classmethod
    def from_network(
        cls,
        network: str,
        signer: Optional[Signer] = None,
        priv_key: Optional[str] = None,
        rpc_url: Optional[str] = None,
        relayer_url: Optional[str] = None,
        coin_address: Optional[str] = None,
        market_address: Optional[str] = None,
        **kwargs: Any
    ) -> "ForesightClient":
        """
        Create a client from a bundled network definition.

        Args:
            network: Network name from networks.json (e.g. "sepolia")
            signer: Custom signer object
            priv_key: Ethereum private key
            rpc_url: Override for the network RPC URL
            relayer_url: Override for the network relayer URL
            coin_address: Override for the coin address
            market_address: Override for the market address
            **kwargs: Passed through to the constructor

        Returns:
            Configured ForesightClient
        """
        return cls(
            rpc_url=NetworkConfig.get_rpc_url(network, rpc_url),
            relayer_url=NetworkConfig.get_relayer_url(network, relayer_url),
            coin_address=NetworkConfig.get_coin_address(network, coin_address),
            market_address=NetworkConfig.get_market_address(network, market_address),
            decryption_chain_id=NetworkConfig.get_gateway_chain_id(network),
            decryption_verifier=NetworkConfig.get_decryption_verifier(network),
            chain_id=NetworkConfig.get_chain_id(network),
            signer=signer,
            priv_key=priv_key,
            **kwargs
        )

    @property
    def address(self) -> str:
        """
        Get the account address

        Returns:
            Ethereum address as string
        """
        return self.signer.address

    async def place_bet(
        self,
        prediction_id: int,
        option_index: int,
        amount: Union[Decimal, int, str],
        gas: Optional[int] = None,
        wait_for_receipt: bool = True
    ) -> TxReceipt:
        """
        Place an encrypted bet on a prediction.

        The option index is encrypted for the market (called by the coin) and
        the amount for the coin (called by the user). Both go out in a single
        ``confidentialTransferAndCall``; the market receives the option in the
        callback payload.

        Args:
            prediction_id: Prediction to bet on
            option_index: Index of the chosen option
            amount: Stake in cCoin
            gas: Gas limit to use (estimated if None)
            wait_for_receipt: Whether to wait for the transaction receipt

        Returns:
            Transaction receipt

        Raises:
            ValueError: If the prediction is closed or the option/amount is invalid
            EncryptionFailure: If either input cannot be encrypted
            TransactionError: If the transaction fails
        """
        prediction = await asyncio.to_thread(self.market_view.get_prediction, prediction_id)
        if not prediction.is_active:
            raise ValueError(f"Prediction {prediction_id} is closed")
        if not 0 <= option_index < len(prediction.options):
            raise ValueError(
                f"Option index {option_index} out of range for {len(prediction.options)} option(s)"
            )
        base_units = to_base_units(amount)

        selection = await self.builder.create_input(
            ConsumerPair(self.market_address, self.coin_address)
        ).add32(option_index).encrypt()
        stake = await self.builder.create_input(
            ConsumerPair(self.coin_address, self.address)
        ).add64(base_units).encrypt()

        data = encode_callback_payload(prediction_id, selection.handles[0], selection.input_proof)
        call = self.market_view.coin.functions.confidentialTransferAndCall(
            self.market_address,
            bytes.fromhex(stake.handles[0][2:]),
            bytes.fromhex(stake.input_proof[2:]),
            data
        )
        self.logger.info(f"Submitting encrypted bet on prediction {prediction_id}")
        return await asyncio.to_thread(self._send_transaction, call, gas, wait_for_receipt)

    async def purchase(
        self,
        eth_amount: Union[Decimal, int, str],
        gas: Optional[int] = None,
        wait_for_receipt: bool = True
    ) -> TxReceipt:
        """
        Buy cCoin with ETH at the coin contract's fixed rate.

        The coin contract mints the purchased amount into the caller's
        confidential balance.

        Args:
            eth_amount: ETH to pay
            gas: Gas limit to use (estimated if None)
            wait_for_receipt: Whether to wait for the transaction receipt

        Returns:
            Transaction receipt

        Raises:
            ValueError: If the ETH amount is invalid
            TransactionError: If the transaction fails
        """
        value = eth_to_wei(eth_amount)
        call = self.market_view.coin.functions.purchase()
        self.logger.info(f"Purchasing cCoin for {eth_amount} ETH")
        return await asyncio.to_thread(self._send_transaction, call, gas, wait_for_receipt, value)

    async def finalize_prediction(
        self,
        prediction_id: int,
        gas: Optional[int] = None,
        wait_for_receipt: bool = True
    ) -> TxReceipt:
        """
        Close a prediction to new bets and release its totals for public decryption.

        Only the market owner may finalize; the contract reverts otherwise.

        Raises:
            ValueError: If the prediction is already closed
            TransactionError: If the transaction fails
        """
        prediction = await asyncio.to_thread(self.market_view.get_prediction, prediction_id)
        if not prediction.is_active:
            raise ValueError(f"Prediction {prediction_id} is already closed")
        call = self.market_view.market.functions.finalizePrediction(prediction_id)
        self.logger.info(f"Finalizing prediction {prediction_id}")
        return await asyncio.to_thread(self._send_transaction, call, gas, wait_for_receipt)

    async def decrypt_balance(self) -> Decimal:
        """
        Decrypt the user's confidential cCoin balance.

        Returns:
            Balance in cCoin
        """
        handle = await asyncio.to_thread(self.market_view.encrypted_balance, self.address)
        if is_zero_handle(handle):
            # Balance never initialised on-chain
            return Decimal(0)

        session = await self.authorizer.authorize([self.coin_address], self.signer)
        values = await self.user_decryption.decrypt(
            [(handle, self.coin_address)], session.grant, session.keypair
        )
        return from_base_units(values[handle])

    async def decrypt_bet(self, prediction_id: int) -> Optional[BetDisclosure]:
        """
        Decrypt the user's bet on a prediction.

        Returns:
            The decrypted bet, or None if the user has not bet
        """
        prediction = await asyncio.to_thread(self.market_view.get_prediction, prediction_id)
        bet = await asyncio.to_thread(self.market_view.get_encrypted_bet, prediction_id, self.address)
        if not bet.exists:
            return None

        session = await self.authorizer.authorize([self.market_address], self.signer)
        values = await self.user_decryption.decrypt(
            [(bet.option, self.market_address), (bet.amount, self.market_address)],
            session.grant,
            session.keypair
        )
        option_index = values[bet.option]
        if 0 <= option_index < len(prediction.options):
            label = prediction.options[option_index]
        else:
            label = f"Option {option_index + 1}"
        return BetDisclosure(
            prediction_id=prediction_id,
            option_index=option_index,
            option_label=label,
            amount=from_base_units(values[bet.amount])
        )

    async def decrypt_totals(self, prediction_id: int) -> Dict[str, Decimal]:
        """
        Decrypt a finalized prediction's per-option totals.

        Returns:
            Mapping of option label to total stake in cCoin

        Raises:
            NotDisclosed: If the totals have not been released
        """
        prediction = await asyncio.to_thread(self.market_view.get_prediction, prediction_id)
        if not prediction.totals_public:
            raise NotDisclosed(
                f"Totals of prediction {prediction_id} are not public yet",
                values={},
                missing=list(prediction.totals)
            )
        values = await self.public_decryption.decrypt_public(prediction.totals)
        return {
            label: from_base_units(values[handle])
            for label, handle in zip(prediction.options, prediction.totals)
        }

    def _send_transaction(
        self,
        call: Any,
        gas: Optional[int],
        wait_for_receipt: bool,
        value: int = 0
    ) -> TxReceipt:
        """
        Build, sign and send a contract call

        Raises:
            TransactionError: If signing or sending fails
        """
        from_address = self.address
        try:
            nonce = self.w3.eth.get_transaction_count(from_address)

            if gas is None:
                try:
                    gas = int(call.estimate_gas({"from": from_address, "value": value}) * 1.1)
                    self.logger.debug(f"Estimated gas: {gas}")
                except Exception as e:
                    gas = DEFAULT_GAS_LIMIT
                    self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")

            tx = call.build_transaction({
                "from": from_address,
                "nonce": nonce,
                "gas": gas,
                "gasPrice": self.w3.eth.gas_price,
                "chainId": self.chain_id,
                "value": value,
            })
        except Web3Exception as e:
            self.logger.error(f"Failed to build transaction: {e}")
            raise TransactionError(f"Failed to build transaction: {e}") from e

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise TransactionError(f"Failed to sign transaction: {e}") from e

        raw = getattr(signed_tx, "raw_transaction", None) or getattr(signed_tx, "rawTransaction")
        try:
            tx_hash = self.w3.eth.send_raw_transaction(raw)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise TransactionError(f"Failed to send transaction: {e}") from e
        self.logger.info(f"Transaction sent: 0x{bytes(tx_hash).hex()}")

        if not wait_for_receipt:
            return TxReceipt(
                transactionHash="0x" + bytes(tx_hash).hex(),
                blockNumber=0,
                blockHash="0x" + "00" * 32,
                status=0,
                gasUsed=0,
                **{"from": from_address},
                logs=[]
            )

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)
        converted = self._convert_receipt(receipt)
        if converted.status != 1:
            raise TransactionError(f"Transaction {converted.tx_hash} reverted")
        return converted

    def _convert_receipt(self, web3_receipt: Any) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model
        """
        receipt_dict = dict(web3_receipt)

        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = "0x" + value.hex()
        receipt_dict["logs"] = [dict(log) for log in receipt_dict.get("logs", [])]

        return TxReceipt.model_validate(receipt_dict)

    def close(self) -> None:
        """Close the relayer transport"""
        self.transport.close()
