"""Currency arithmetic helpers.

All amounts are ``Decimal`` quantized to cents with ROUND_HALF_UP. Every
derived total is rounded after each arithmetic step, not only at output, so
that long sums of cents never drift.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Convert int/str/float/Decimal to a cent-quantized Decimal.

    Floats go through ``str`` first so 0.1 becomes Decimal("0.10") rather
    than its binary expansion.
    """
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_add(a, b) -> Decimal:
    """a + b, rounded to cents."""
    return to_money(to_money(a) + to_money(b))


def money_sub(a, b) -> Decimal:
    """a - b, rounded to cents."""
    return to_money(to_money(a) - to_money(b))


def money_sum(values: Iterable) -> Decimal:
    """Sum amounts, rounding after every accumulation step."""
    total = ZERO
    for value in values:
        total = money_add(total, value)
    return total


def percentage(part, whole) -> Decimal | None:
    """part / whole * 100 rounded to two places, or None when whole is zero."""
    whole = Decimal(str(whole)) if not isinstance(whole, Decimal) else whole
    if whole == 0:
        return None
    part = Decimal(str(part)) if not isinstance(part, Decimal) else part
    return (part / whole * 100).quantize(CENT, rounding=ROUND_HALF_UP)


__all__ = ["CENT", "ZERO", "to_money", "money_add", "money_sub", "money_sum", "percentage"]
