"""Validators shared by request schemas."""

from datetime import date
from decimal import Decimal, InvalidOperation

from strata.services.dates import parse_iso_date

DATE_MESSAGE = "Must be a valid date (YYYY-MM-DD)"


def coerce_date(value):
    """Accept a date or a strict YYYY-MM-DD string."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return parse_iso_date(value)
        except ValueError:
            raise ValueError(DATE_MESSAGE) from None
    raise ValueError(DATE_MESSAGE)


def coerce_amount(value, message: str = "Must be a valid amount"):
    """Accept numbers or numeric strings as Decimal; booleans, NaN and infinities are rejected."""
    if isinstance(value, bool):
        raise ValueError(message)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(message) from None
    if not amount.is_finite():
        raise ValueError(message)
    return amount
