"""Calendar helpers for plain ``YYYY-MM-DD`` dates (no time or timezone)."""

import calendar
from datetime import date


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month.

    31 Jan + 1 month is 28/29 Feb, never an overflow into March.
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, last_day_of_month(year, month))
    return date(year, month, day)


def clamp_day(year: int, month: int, day: int) -> date:
    """Date for ``day`` in the month, pulled back to the month's last day."""
    return date(year, month, min(day, last_day_of_month(year, month)))


def parse_iso_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise ValueError(f"Must be a valid date (YYYY-MM-DD): {value!r}")
    return date.fromisoformat(value)


def financial_year_label(day: date, start_month: int = 7) -> str:
    """Name the financial year containing ``day`` after the year it ends in.

    With the default July start, July 2026 to June 2027 is FY2027. A January
    start makes the financial year the calendar year.
    """
    if start_month > 1 and day.month >= start_month:
        return f"FY{day.year + 1}"
    return f"FY{day.year}"


def financial_year_bounds(today: date, start_month: int = 7) -> tuple[date, date]:
    """First and last day of the financial year containing ``today``."""
    start_year = today.year if today.month >= start_month else today.year - 1
    start = date(start_year, start_month, 1)
    end = date.fromordinal(add_months(start, 12).toordinal() - 1)
    return start, end


__all__ = [
    "last_day_of_month",
    "add_months",
    "clamp_day",
    "parse_iso_date",
    "financial_year_label",
    "financial_year_bounds",
]
