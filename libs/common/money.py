"""Money helpers.

All amounts are ``Decimal`` with two fractional digits, matching the
``Numeric(15, 2)`` columns. Floats never enter a money calculation.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENT = Decimal("0.01")
UNIT = Decimal("1")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, str]


def to_money(value: MoneyLike) -> Decimal:
    """Coerce to a two-digit Decimal (round half-up)."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_to_unit(value: Decimal) -> Decimal:
    """Round to a whole currency unit (half-up), kept at two digits."""
    return to_money(value.quantize(UNIT, rounding=ROUND_HALF_UP))


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` at full precision, unrounded."""
    return amount * percent / Decimal(100)


def money_sum(values: Iterable[MoneyLike]) -> Decimal:
    return to_money(sum((to_money(v) for v in values), ZERO))
