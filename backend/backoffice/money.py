"""
Decimal helpers for money and percentages.

All amounts are decimal.Decimal, never float. Rounding is half-up everywhere:
- money: 2 decimal places
- discount percentages: 4 decimal places
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
PERCENT_PLACES = Decimal("0.0001")
HOURS_PLACES = Decimal("0.0001")


def to_decimal(value) -> Decimal:
    """Coerce a stored/validated numeric value to Decimal. None counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_percent(value) -> Decimal:
    return to_decimal(value).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def money_str(value) -> Optional[str]:
    """JSON-friendly string for a money column ("12.50"); None stays None."""
    if value is None:
        return None
    return str(quantize_money(value))


def percent_str(value) -> Optional[str]:
    if value is None:
        return None
    return str(quantize_percent(value))
