"""Pydantic schemas for payments and their allocations."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from strata.models.payment import PaymentMethod
from strata.schemas.common import coerce_amount, coerce_date


class PaymentCreate(BaseModel):
    """Payload for POST /api/schemes/{scheme_id}/payments."""

    lot_id: int = Field(..., description="Lot the payment is received for")
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    reference: str | None = Field(None, max_length=100)
    notes: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def _positive_amount(cls, value):
        amount = coerce_amount(value, "Payment amount must be greater than zero")
        if amount <= 0:
            raise ValueError("Payment amount must be greater than zero")
        return amount

    @field_validator("payment_date", mode="before")
    @classmethod
    def _strict_date(cls, value):
        return coerce_date(value)

    @field_validator("reference", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PaymentAllocationResponse(BaseModel):
    id: int
    levy_item_id: int
    allocated_amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: int
    scheme_id: int
    lot_id: int
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    reference: str | None = None
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime
    allocations: list[PaymentAllocationResponse] = []

    model_config = ConfigDict(from_attributes=True)


class AllocationLine(BaseModel):
    levy_item_id: int
    amount: Decimal

    model_config = ConfigDict(from_attributes=True)


class RecordPaymentResponse(BaseModel):
    """Saved payment plus the FIFO allocation applied to it."""

    payment: PaymentResponse
    allocations: list[AllocationLine]
    total_allocated: Decimal
    unallocated_amount: Decimal
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)
