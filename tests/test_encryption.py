"""
Tests for encrypted input construction.
"""
from unittest.mock import MagicMock

import pytest

from foresight_sdk.encryption import ConsumerPair, EncryptedInputBuilder, check_plaintext
from foresight_sdk.exceptions import EncryptionFailure
from foresight_sdk.models import EncryptedInput
from foresight_sdk.relayer.exceptions import (
    RelayerConnectionError, RelayerErrorLabel, RelayerResponseError
)

from .conftest import COIN_ADDRESS, MARKET_ADDRESS, OTHER_CONTRACT


class TestCheckPlaintext:

    @pytest.mark.parametrize("bits,value", [(8, 0), (8, 255), (32, 2**32 - 1), (256, 2**256 - 1)])
    def test_in_range(self, bits, value):
        check_plaintext(bits, value)

    @pytest.mark.parametrize("bits,value", [(8, 256), (64, -1), (12, 1), (32, True), (32, "1")])
    def test_rejected(self, bits, value):
        with pytest.raises(ValueError):
            check_plaintext(bits, value)


class TestEncryptedInputBuilder:

    @pytest.mark.asyncio
    async def test_batch_has_one_handle_per_value_and_one_proof(self, builder, stub):
        pair = ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS)
        result = await builder.create_input(pair).add32(1).add64(5).encrypt()

        assert isinstance(result, EncryptedInput)
        assert len(result.handles) == 2
        assert len(set(result.handles)) == 2
        assert result.input_proof.startswith("0x")

        # Handles come back in submission order and share the proof
        for handle in result.handles:
            stub.accept_input(handle, result.input_proof, MARKET_ADDRESS, COIN_ADDRESS)
        assert stub._store[result.handles[0]].value == 1
        assert stub._store[result.handles[1]].value == 5

    @pytest.mark.asyncio
    async def test_accepts_lowercase_addresses(self, builder):
        pair = ConsumerPair(MARKET_ADDRESS.lower(), COIN_ADDRESS.lower())
        result = await builder.build(pair, [(8, 7)])
        assert len(result.handles) == 1

    @pytest.mark.asyncio
    async def test_value_out_of_range_rejected_before_sending(self):
        transport = MagicMock()
        builder = EncryptedInputBuilder(transport)

        with pytest.raises(ValueError):
            await builder.build(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS), [(8, 300)])
        transport.encrypt_input.assert_not_called()

    def test_batch_add_rejects_invalid_width(self, builder):
        batch = builder.create_input(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS))
        with pytest.raises(ValueError):
            batch.add(24, 1)
        assert len(batch) == 0

    @pytest.mark.asyncio
    async def test_empty_batch_rejected(self, builder):
        with pytest.raises(ValueError):
            await builder.create_input(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS)).encrypt()

    @pytest.mark.asyncio
    async def test_invalid_address_rejected(self, builder):
        with pytest.raises(ValueError):
            await builder.build(ConsumerPair("0x1234", COIN_ADDRESS), [(32, 1)])

    @pytest.mark.asyncio
    async def test_backend_rejection_becomes_encryption_failure(self):
        transport = MagicMock()
        transport.encrypt_input.side_effect = RelayerResponseError(
            "bad value", error_code=RelayerErrorLabel.MALFORMED_INPUT.value, status_code=400
        )
        builder = EncryptedInputBuilder(transport)

        with pytest.raises(EncryptionFailure) as exc_info:
            await builder.build(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS), [(32, 1)])
        assert isinstance(exc_info.value.__cause__, RelayerResponseError)

    @pytest.mark.asyncio
    async def test_unreachable_backend_becomes_encryption_failure(self):
        transport = MagicMock()
        transport.encrypt_input.side_effect = RelayerConnectionError("connection refused")
        builder = EncryptedInputBuilder(transport)

        with pytest.raises(EncryptionFailure):
            await builder.build(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS), [(32, 1)])

    @pytest.mark.asyncio
    async def test_handle_count_mismatch_is_failure(self):
        transport = MagicMock()
        transport.encrypt_input.return_value = EncryptedInput(
            handles=["0x" + "11" * 32], input_proof="0x01"
        )
        builder = EncryptedInputBuilder(transport)

        with pytest.raises(EncryptionFailure):
            await builder.build(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS), [(32, 1), (64, 2)])


class TestInputBinding:
    """The stub enforces that inputs are consumed by the pair they were built for"""

    @pytest.mark.asyncio
    async def test_proof_from_another_batch_rejected(self, builder, stub):
        pair = ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS)
        first = await builder.build(pair, [(32, 1)])
        second = await builder.build(pair, [(32, 2)])

        with pytest.raises(RelayerResponseError) as exc_info:
            stub.accept_input(first.handles[0], second.input_proof, MARKET_ADDRESS, COIN_ADDRESS)
        assert exc_info.value.error_code == RelayerErrorLabel.INVALID_PROOF.value

    @pytest.mark.asyncio
    async def test_input_for_other_pair_rejected(self, builder, stub):
        result = await builder.build(ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS), [(32, 1)])

        with pytest.raises(RelayerResponseError) as exc_info:
            stub.accept_input(result.handles[0], result.input_proof, OTHER_CONTRACT, COIN_ADDRESS)
        assert exc_info.value.error_code == RelayerErrorLabel.INVALID_PROOF.value

    @pytest.mark.asyncio
    async def test_same_values_get_distinct_handles(self, builder):
        pair = ConsumerPair(MARKET_ADDRESS, COIN_ADDRESS)
        first = await builder.build(pair, [(32, 1)])
        second = await builder.build(pair, [(32, 1)])
        assert first.handles != second.handles
        assert first.input_proof != second.input_proof
