"""Pydantic schemas for budgets and budget-vs-actual rows."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from strata.models.account import AccountType, FundType
from strata.models.budget import BudgetStatus
from strata.schemas.common import coerce_amount, coerce_date
from strata.services.ledger_service import VarianceStatus


class BudgetCreate(BaseModel):
    """Payload for POST /api/schemes/{scheme_id}/budgets."""

    financial_year_id: int
    budget_type: FundType
    notes: str | None = Field(None, max_length=2000)


class BudgetLineItemUpdate(BaseModel):
    """Payload for PATCH /api/schemes/{scheme_id}/budgets/line-items/{line_item_id}."""

    budgeted_amount: Decimal
    notes: str | None = Field(None, max_length=2000)

    @field_validator("budgeted_amount", mode="before")
    @classmethod
    def _non_negative(cls, value):
        amount = coerce_amount(value, "Amount must be non-negative")
        if amount < 0:
            raise ValueError("Amount must be non-negative")
        return amount


class BudgetApprove(BaseModel):
    approved_at: date | None = Field(None, description="Approval date (default: today)")

    @field_validator("approved_at", mode="before")
    @classmethod
    def _strict_date(cls, value):
        return None if value is None else coerce_date(value)


class CategoryResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    fund_type: FundType | None = None

    model_config = ConfigDict(from_attributes=True)


class BudgetLineItemResponse(BaseModel):
    id: int
    category_id: int
    budgeted_amount: Decimal
    previous_year_actual: Decimal | None = None
    notes: str | None = None
    category: CategoryResponse | None = None

    model_config = ConfigDict(from_attributes=True)


class BudgetResponse(BaseModel):
    id: int
    scheme_id: int
    financial_year_id: int
    budget_type: FundType
    status: BudgetStatus
    total_amount: Decimal
    approved_at: date | None = None
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime
    line_items: list[BudgetLineItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class LineItemTotalResponse(BaseModel):
    line_item_id: int
    total_amount: Decimal


class BudgetVsActualRowResponse(BaseModel):
    category_id: int
    category_code: str
    category_name: str
    budgeted_amount: Decimal
    actual_amount: Decimal
    variance: Decimal
    variance_pct: Decimal | None = None
    status: VarianceStatus

    model_config = ConfigDict(from_attributes=True)
