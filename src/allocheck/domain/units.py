"""Fixed-point conversions for on-chain allocation amounts.

The contract stores USDT amounts as integers with six decimal places. Display
figures are floats, which represent every integer up to 2**53 exactly; raw
amounts above that (about 9 billion USDT) lose their lowest digits when
converted. Use ``to_decimal_units`` wherever exactness matters.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Final

#: Decimal places of the on-chain USDT amount.
USDT_DECIMALS: Final[int] = 6

#: Largest raw amount that converts to a float without rounding.
MAX_EXACT_RAW_AMOUNT: Final[int] = 2**53


def to_display_units(raw_amount: int, *, decimals: int = USDT_DECIMALS) -> float:
    """Scale ``raw_amount`` down by ``10**decimals`` into a float display figure."""

    if raw_amount < 0:
        raise ValueError(f"Raw amount must be non-negative, got {raw_amount}")
    return raw_amount / 10**decimals


def to_decimal_units(raw_amount: int, *, decimals: int = USDT_DECIMALS) -> Decimal:
    if raw_amount < 0:
        raise ValueError(f"Raw amount must be non-negative, got {raw_amount}")
    return Decimal(raw_amount).scaleb(-decimals)


def is_exactly_displayable(raw_amount: int) -> bool:
    return 0 <= raw_amount <= MAX_EXACT_RAW_AMOUNT
