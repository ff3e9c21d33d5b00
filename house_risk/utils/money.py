"""Decimal money helpers"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number | None) -> Decimal:
    """Coerce a DB/JSON value to Decimal. Floats go through str to avoid binary noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_cents(value: Number) -> Decimal:
    """Round to cent precision (half-up)"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_dollars(value: Number) -> Decimal:
    """Round to whole dollars (half-up)"""
    return to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def sum_amounts(values: Iterable[Number]) -> Decimal:
    """Exact decimal sum, cent-quantized"""
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return quantize_cents(total)
