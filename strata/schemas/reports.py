"""Pydantic schemas for report export and levy roll responses."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from strata.models.account import FundType
from strata.models.levy_item import LevyItemStatus
from strata.models.transaction import TransactionType
from strata.schemas.common import coerce_date
from strata.schemas.levies import LevyPeriodResponse


class ReportType(str, Enum):
    """Reports that can be rendered to a document."""

    TRIAL_BALANCE = "trial-balance"
    FUND_SUMMARY = "fund-summary"
    INCOME_STATEMENT = "income-statement"
    BUDGET_VS_ACTUAL = "budget-vs-actual"
    LEVY_ROLL = "levy-roll"


class ReportExportRequest(BaseModel):
    """Payload for POST /api/schemes/{scheme_id}/reports/export."""

    report_type: ReportType
    as_at_date: date | None = None
    start_date: date | None = None
    end_date: date | None = None
    financial_year_id: int | None = None
    fund_type: FundType = FundType.ADMIN
    period_id: int | None = None
    save: bool = False

    @field_validator("as_at_date", "start_date", "end_date", mode="before")
    @classmethod
    def _strict_date(cls, value):
        return None if value is None else coerce_date(value)


class ReportExportResponse(BaseModel):
    file_name: str
    saved: bool
    url: str | None = None
    storage_path: str | None = None
    content_base64: str | None = None


class LevyRollRow(BaseModel):
    levy_item_id: int
    lot_id: int
    lot_number: str
    unit_number: str | None = None
    owner_name: str | None = None
    admin_levy_amount: Decimal
    capital_levy_amount: Decimal
    total_levy_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: LevyItemStatus
    due_date: date

    model_config = ConfigDict(from_attributes=True)


class LevyRollResponse(BaseModel):
    period: LevyPeriodResponse
    rows: list[LevyRollRow]
    total_levied: Decimal
    total_paid: Decimal
    total_balance: Decimal
    paid_count: int
    collection_rate: Decimal

    model_config = ConfigDict(from_attributes=True)


class TransactionResponse(BaseModel):
    id: int
    transaction_date: date
    transaction_type: TransactionType
    fund_type: FundType
    category_id: int | None = None
    lot_id: int | None = None
    amount: Decimal
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CategoryTransactionsResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: Decimal

    model_config = ConfigDict(from_attributes=True)
