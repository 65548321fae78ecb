"""Pydantic schemas for levy schedules, periods, items and notices."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from strata.models.levy_item import LevyItemStatus
from strata.models.levy_period import LevyPeriodStatus
from strata.models.levy_schedule import SUPPORTED_PERIODS_PER_YEAR, LevyFrequency
from strata.schemas.common import coerce_amount, coerce_date


class LevyScheduleCreate(BaseModel):
    """Payload for creating or replacing a levy schedule."""

    budget_year_start: date = Field(..., description="First day of the budget year")
    budget_year_end: date = Field(..., description="Last day of the budget year")
    admin_fund_total: Decimal = Field(..., description="Annual administrative fund levy")
    capital_works_fund_total: Decimal = Field(Decimal("0"), description="Annual capital works fund levy")
    frequency: LevyFrequency
    periods_per_year: int

    @field_validator("budget_year_start", "budget_year_end", mode="before")
    @classmethod
    def _strict_date(cls, value):
        return coerce_date(value)

    @field_validator("admin_fund_total", mode="before")
    @classmethod
    def _admin_positive(cls, value):
        amount = coerce_amount(value, "Admin fund budget must be greater than zero")
        if amount <= 0:
            raise ValueError("Admin fund budget must be greater than zero")
        return amount

    @field_validator("capital_works_fund_total", mode="before")
    @classmethod
    def _capital_non_negative(cls, value):
        amount = coerce_amount(value, "Capital works fund cannot be negative")
        if amount < 0:
            raise ValueError("Capital works fund cannot be negative")
        return amount

    @field_validator("periods_per_year", mode="before")
    @classmethod
    def _supported_periods(cls, value):
        if isinstance(value, bool) or value not in SUPPORTED_PERIODS_PER_YEAR:
            raise ValueError("Periods must be 1 (annual), 2 (half-yearly), 4 (quarterly), or 12 (monthly)")
        return int(value)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.budget_year_end <= self.budget_year_start:
            raise ValueError("Budget year end must be after start date")
        return self


class LevyPeriodResponse(BaseModel):
    id: int
    levy_schedule_id: int
    period_number: int
    period_name: str
    period_start: date
    period_end: date
    due_date: date
    status: LevyPeriodStatus

    model_config = ConfigDict(from_attributes=True)


class LevyScheduleResponse(BaseModel):
    id: int
    scheme_id: int
    budget_year_start: date
    budget_year_end: date
    admin_fund_total: Decimal
    capital_works_fund_total: Decimal
    frequency: LevyFrequency
    periods_per_year: int
    active: bool
    created_by: int | None = None
    created_at: datetime
    periods: list[LevyPeriodResponse] = []

    model_config = ConfigDict(from_attributes=True)


class LevyItemResponse(BaseModel):
    """Levy item with derived total and balance."""

    id: int
    lot_id: int
    levy_period_id: int
    admin_levy_amount: Decimal
    capital_levy_amount: Decimal
    special_levy_amount: Decimal | None = None
    total_levy_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: LevyItemStatus
    due_date: date
    notice_generated_at: datetime | None = None
    notice_sent_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class LevyCalculationResponse(BaseModel):
    items_created: int
    rounding_note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class NoticeResultResponse(BaseModel):
    levy_item_id: int
    success: bool
    error: str | None = None


class NoticeBatchResponse(BaseModel):
    results: list[NoticeResultResponse]
    succeeded: int
    failed: int
