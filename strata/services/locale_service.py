"""Locale service for currency amounts, month names and dates.

Single source of truth for locale-dependent text in period labels, payment
notes and levy notices. Uses babel with the LOCALE and CURRENCY settings.

Example:
    >>> from strata.services.locale_service import format_amount, month_abbreviation
    >>> month_abbreviation(7)
    'Jul'
    >>> format_amount(1234.5)
    'A$1,234.50'
"""

import logging
from datetime import date
from decimal import Decimal

from babel import Locale, UnknownLocaleError
from babel.dates import format_date as babel_format_date
from babel.dates import get_month_names
from babel.numbers import format_currency as babel_format_currency
from babel.numbers import format_decimal as babel_format_decimal
from babel.numbers import get_currency_symbol as babel_get_currency_symbol

from strata.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"


def get_locale(locale: str | None = None) -> str:
    """Resolve a locale string, validating it against babel.

    Returns:
        The requested (or configured) locale, or DEFAULT_LOCALE when invalid
    """
    locale_str = locale or get_settings().locale
    try:
        Locale.parse(locale_str)
        return locale_str
    except (UnknownLocaleError, ValueError) as e:
        logger.warning(f"Invalid LOCALE '{locale_str}': {e}. Falling back to '{DEFAULT_LOCALE}'")
        return DEFAULT_LOCALE


def get_currency_code() -> str:
    """ISO 4217 currency code from the CURRENCY setting (e.g. 'AUD')."""
    return get_settings().currency


def get_currency_symbol(locale: str | None = None) -> str:
    """Currency symbol for the configured currency and locale."""
    return babel_get_currency_symbol(get_currency_code(), locale=get_locale(locale))


def month_abbreviation(month: int, locale: str | None = None) -> str:
    """Abbreviated month name (1 = January), e.g. 'Jul' for the 'en' locale."""
    names = get_month_names("abbreviated", context="format", locale=get_locale(locale))
    return names[month]


def format_amount(
    amount: float | Decimal, include_symbol: bool = True, locale: str | None = None
) -> str:
    """Format monetary amount according to locale.

    Args:
        amount: Numeric amount to format
        include_symbol: Whether to include currency symbol (default True)
        locale: Override for the configured locale

    Returns:
        Formatted currency string (e.g., 'A$1,234.50')
    """
    resolved = get_locale(locale)
    if include_symbol:
        return babel_format_currency(Decimal(str(amount)), get_currency_code(), locale=resolved)
    return babel_format_decimal(
        Decimal(str(amount)), format="#,##0.00", locale=resolved
    )


def format_long_date(day: date, locale: str | None = None) -> str:
    """Format a date as day, full month and year, e.g. '1 October 2026'."""
    return babel_format_date(day, format="d MMMM yyyy", locale=get_locale(locale))


__all__ = [
    "DEFAULT_LOCALE",
    "get_locale",
    "get_currency_code",
    "get_currency_symbol",
    "month_abbreviation",
    "format_amount",
    "format_long_date",
]
