"""
cCoin amount conversion.

cCoin carries 6 decimals: 1 cCoin is 1_000_000 base units on-chain. ETH
paid into the coin contract is converted to wei.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from web3 import Web3

COIN_DECIMALS = 6
_SCALE = Decimal(10) ** COIN_DECIMALS


def to_base_units(amount: Union[Decimal, int, str]) -> int:
    """
    Convert a cCoin amount to on-chain base units, rounding half up.

    Raises:
        ValueError: If the amount is not a positive finite number
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"Amount must be a number, got {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be a positive number, got {amount!r}")
    return int((value * _SCALE).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def eth_to_wei(amount: Union[Decimal, int, str]) -> int:
    """
    Convert an ETH amount to wei.

    Raises:
        ValueError: If the amount is not a positive number or has more
            than 18 decimals
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation as e:
        raise ValueError(f"ETH amount must be a number, got {amount!r}") from e
    if not value.is_finite() or value <= 0:
        raise ValueError(f"ETH amount must be a positive number, got {amount!r}")
    wei = Web3.to_wei(value, "ether")
    if Web3.from_wei(wei, "ether") != value:
        raise ValueError(f"ETH amount has more than 18 decimals: {amount!r}")
    return int(wei)


def from_base_units(units: int) -> Decimal:
    """Convert on-chain base units to a cCoin amount"""
    return Decimal(units) / _SCALE
