"""
Encrypted input construction.

A contract can only consume an encrypted value that was encrypted for it:
every batch is bound to a (contract, user) consumer pair, and the backend
returns one handle per value plus a single proof covering the whole batch.
Handles and their proof must be submitted together.
"""
import asyncio
import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .config import checksum_address
from .exceptions import EncryptionFailure
from .handles import short_handle
from .models import EncryptedInput
from .relayer.exceptions import RelayerError
from .relayer.transport import RelayerTransport

logger = logging.getLogger(__name__)

SUPPORTED_BIT_WIDTHS = (8, 16, 32, 64, 128, 256)


class ConsumerPair(NamedTuple):
    """
    The two addresses a ciphertext is bound to.

    ``primary`` is the contract that consumes the input; ``companion`` is the
    address allowed to pass it in (the user, or a contract calling on the
    user's behalf).
    """
    primary: str
    companion: str

    def checksummed(self) -> "ConsumerPair":
        return ConsumerPair(
            checksum_address(self.primary, "primary consumer"),
            checksum_address(self.companion, "companion consumer")
        )


def check_plaintext(bits: int, value: int) -> None:
    """
    Check that a plaintext fits its declared unsigned bit width.

    Raises:
        ValueError: If the width is unsupported or the value does not fit
    """
    if bits not in SUPPORTED_BIT_WIDTHS:
        raise ValueError(f"Unsupported bit width {bits}; expected one of {SUPPORTED_BIT_WIDTHS}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Plaintext must be an int, got {type(value).__name__}")
    if not 0 <= value < (1 << bits):
        raise ValueError(f"Plaintext {value} does not fit in {bits} bits")


class EncryptedInputBuilder:
    """Builds encrypted inputs through the relayer"""

    def __init__(
        self,
        transport: RelayerTransport,
        timeout: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.transport = transport
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    def create_input(self, consumer_pair: ConsumerPair) -> "InputBatch":
        """Start a batch of values bound to ``consumer_pair``"""
        return InputBatch(self, consumer_pair)

    async def build(
        self,
        consumer_pair: ConsumerPair,
        values: Sequence[Tuple[int, int]]
    ) -> EncryptedInput:
        """
        Encrypt an ordered batch of plaintexts for a consumer pair.

        Args:
            consumer_pair: Addresses the ciphertexts are bound to
            values: Ordered (bit_width, plaintext) pairs

        Returns:
            EncryptedInput with one handle per value, in submission order,
            and one proof for the batch

        Raises:
            ValueError: If the pair or any value is invalid
            EncryptionFailure: If the backend is unreachable or rejects the batch
        """
        pair = ConsumerPair(*consumer_pair).checksummed()
        values = [(int(bits), value) for bits, value in values]
        if not values:
            raise ValueError("At least one value is required")
        for bits, value in values:
            check_plaintext(bits, value)

        self.logger.debug(f"Encrypting {len(values)} value(s) for {pair.primary[:10]}…")
        try:
            result = await asyncio.to_thread(
                self.transport.encrypt_input,
                pair.primary,
                pair.companion,
                values,
                self.timeout
            )
        except RelayerError as e:
            self.logger.error(f"Input encryption failed: {e}")
            raise EncryptionFailure(f"Input encryption failed: {e}") from e

        if len(result.handles) != len(values):
            raise EncryptionFailure(
                f"Backend returned {len(result.handles)} handle(s) for {len(values)} value(s)"
            )
        self.logger.info(
            f"Encrypted input ready: {', '.join(short_handle(h) for h in result.handles)}"
        )
        return result


class InputBatch:
    """
    Fluent builder for one encryption batch.

    >>> batch = builder.create_input(ConsumerPair(market, coin))
    >>> batch.add32(1)
    >>> encrypted = await batch.encrypt()
    """

    def __init__(self, builder: EncryptedInputBuilder, consumer_pair: ConsumerPair):
        self._builder = builder
        self._pair = consumer_pair
        self._values: List[Tuple[int, int]] = []

    def add(self, bits: int, value: int) -> "InputBatch":
        check_plaintext(bits, value)
        self._values.append((bits, value))
        return self

    def add8(self, value: int) -> "InputBatch":
        return self.add(8, value)

    def add16(self, value: int) -> "InputBatch":
        return self.add(16, value)

    def add32(self, value: int) -> "InputBatch":
        return self.add(32, value)

    def add64(self, value: int) -> "InputBatch":
        return self.add(64, value)

    def add128(self, value: int) -> "InputBatch":
        return self.add(128, value)

    def add256(self, value: int) -> "InputBatch":
        return self.add(256, value)

    def __len__(self) -> int:
        return len(self._values)

    async def encrypt(self) -> EncryptedInput:
        """Encrypt every value added so far as one batch"""
        return await self._builder.build(self._pair, list(self._values))
