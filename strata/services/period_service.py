"""Levy period generation for a schedule's budget year.

Pure calendar arithmetic: no database access. The billing orchestrator turns
the returned ``GeneratedPeriod`` values into ``LevyPeriod`` rows.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from strata.models.levy_period import LevyPeriodStatus
from strata.models.levy_schedule import SUPPORTED_PERIODS_PER_YEAR, LevyFrequency
from strata.services.dates import add_months, clamp_day, financial_year_label
from strata.services.locale_service import month_abbreviation


@dataclass(frozen=True)
class GeneratedPeriod:
    """One billing period of a schedule, before it is persisted."""

    period_number: int
    period_name: str
    period_start: date
    period_end: date
    due_date: date
    levy_schedule_id: int | None = None
    status: LevyPeriodStatus = LevyPeriodStatus.PENDING

    def as_row(self) -> dict:
        """Column values for a LevyPeriod insert."""
        return {
            "levy_schedule_id": self.levy_schedule_id,
            "period_number": self.period_number,
            "period_name": self.period_name,
            "period_start": self.period_start,
            "period_end": self.period_end,
            "due_date": self.due_date,
            "status": self.status,
        }


def _frequency_value(frequency) -> str:
    if isinstance(frequency, LevyFrequency):
        return frequency.value
    return str(frequency)


def period_name(
    frequency,
    period_number: int,
    period_start: date,
    fy_start_month: int = 7,
    locale: str | None = None,
) -> str:
    """Label a period, e.g. 'Q1 FY2027', 'Jul FY2027', 'Annual FY2027'."""
    fy = financial_year_label(period_start, fy_start_month)
    kind = _frequency_value(frequency)
    if kind == LevyFrequency.QUARTERLY.value:
        return f"Q{period_number} {fy}"
    if kind == LevyFrequency.MONTHLY.value:
        return f"{month_abbreviation(period_start.month, locale)} {fy}"
    if kind == LevyFrequency.ANNUAL.value:
        return f"Annual {fy}"
    return f"Period {period_number} {fy}"


def generate_periods(
    budget_year_start: date,
    frequency,
    periods_per_year: int,
    due_day: int,
    schedule_id: int | None = None,
    *,
    fy_start_month: int = 7,
    locale: str | None = None,
) -> list[GeneratedPeriod]:
    """Split a budget year into ``periods_per_year`` contiguous billing periods.

    Each period start is computed from the anchor date (not chained from the
    previous period) so a 31st anchor does not drift after a short month.
    A period ends the day before the next one starts; the last ends the day
    before the anchor's first anniversary. The due date is ``due_day`` in the
    start month, clamped to that month's length.

    Args:
        budget_year_start: First day of the budget year
        frequency: LevyFrequency (or its string value) used for labels
        periods_per_year: One of 1, 2, 4, 12
        due_day: Day of month levies fall due (1..31)
        schedule_id: Owning schedule, copied onto each period
        fy_start_month: First month of the financial year, for labels
        locale: Locale for month abbreviations (default: LOCALE setting)

    Returns:
        Periods in chronological order, numbered from 1

    Raises:
        ValueError: If periods_per_year is not supported or due_day is out of range
    """
    if periods_per_year not in SUPPORTED_PERIODS_PER_YEAR:
        raise ValueError(
            f"periods_per_year must be one of {SUPPORTED_PERIODS_PER_YEAR}, got {periods_per_year}"
        )
    if not 1 <= due_day <= 31:
        raise ValueError(f"due_day must be between 1 and 31, got {due_day}")

    months_per_period = 12 // periods_per_year
    starts = [add_months(budget_year_start, i * months_per_period) for i in range(periods_per_year + 1)]

    periods = []
    for i in range(periods_per_year):
        start = starts[i]
        periods.append(
            GeneratedPeriod(
                period_number=i + 1,
                period_name=period_name(frequency, i + 1, start, fy_start_month, locale),
                period_start=start,
                period_end=starts[i + 1] - timedelta(days=1),
                due_date=clamp_day(start.year, start.month, due_day),
                levy_schedule_id=schedule_id,
            )
        )
    return periods


__all__ = ["GeneratedPeriod", "generate_periods", "period_name"]
