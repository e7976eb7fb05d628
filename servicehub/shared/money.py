"""Money helpers - all amounts are Decimals rounded half-up to minor units"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Number = Union[Decimal, float, int, str]


def to_money(value: Number) -> Decimal:
    """Convert to a Decimal with two decimal places"""
    if not isinstance(value, Decimal):
        # str() avoids binary float artefacts (e.g. 0.1 + 0.2)
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor_units(value: Number) -> int:
    """Major units (cedis) to minor units (pesewas) for the payment gateway"""
    return int((to_money(value) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(value: Number) -> Decimal:
    """Minor units (pesewas) from the payment gateway to major units"""
    return to_money(Decimal(str(value or 0)) / 100)
