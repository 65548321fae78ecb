"""Unit tests for request validation messages."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from strata.api.responses import envelope, first_validation_message
from strata.models.levy_item import LevyItemStatus
from strata.schemas.budgets import BudgetLineItemUpdate
from strata.schemas.levies import LevyScheduleCreate
from strata.schemas.payments import PaymentCreate


def _message(model, payload) -> str:
    with pytest.raises(ValidationError) as exc_info:
        model(**payload)
    return first_validation_message(RequestValidationError(exc_info.value.errors()))


SCHEDULE = {
    "budget_year_start": "2026-07-01",
    "budget_year_end": "2027-06-30",
    "admin_fund_total": "12000",
    "capital_works_fund_total": "4000",
    "frequency": "quarterly",
    "periods_per_year": 4,
}

PAYMENT = {
    "lot_id": 1,
    "amount": "500.00",
    "payment_date": "2026-08-01",
    "payment_method": "bank_transfer",
}


class TestLevyScheduleCreate:
    def test_valid_payload(self):
        schedule = LevyScheduleCreate(**SCHEDULE)

        assert schedule.budget_year_start == date(2026, 7, 1)
        assert schedule.admin_fund_total == Decimal("12000")

    @pytest.mark.parametrize(
        "override, message",
        [
            ({"admin_fund_total": "0"}, "Admin fund budget must be greater than zero"),
            ({"admin_fund_total": "NaN"}, "Admin fund budget must be greater than zero"),
            ({"capital_works_fund_total": "sNaN"}, "Capital works fund cannot be negative"),
            ({"capital_works_fund_total": "-1"}, "Capital works fund cannot be negative"),
            ({"periods_per_year": 3}, "Periods must be 1 (annual), 2 (half-yearly), 4 (quarterly), or 12 (monthly)"),
            ({"budget_year_start": "01/07/2026"}, "Must be a valid date (YYYY-MM-DD)"),
            ({"budget_year_end": "2026-06-30"}, "Budget year end must be after start date"),
        ],
    )
    def test_messages(self, override, message):
        assert _message(LevyScheduleCreate, {**SCHEDULE, **override}) == message

    def test_missing_field_names_location(self):
        payload = {k: v for k, v in SCHEDULE.items() if k != "frequency"}

        assert _message(LevyScheduleCreate, payload) == "frequency: Field required"


class TestPaymentCreate:
    @pytest.mark.parametrize("amount", ["0", "-5", "abc", True, "NaN", "sNaN", "Infinity"])
    def test_amount_must_be_positive(self, amount):
        assert _message(PaymentCreate, {**PAYMENT, "amount": amount}) == "Payment amount must be greater than zero"

    def test_blank_reference_becomes_none(self):
        payment = PaymentCreate(**PAYMENT, reference="   ")

        assert payment.reference is None

    def test_strict_date(self):
        assert _message(PaymentCreate, {**PAYMENT, "payment_date": "2026-8-1"}) == "Must be a valid date (YYYY-MM-DD)"


class TestBudgetLineItemUpdate:
    def test_negative_amount(self):
        assert _message(BudgetLineItemUpdate, {"budgeted_amount": "-0.01"}) == "Amount must be non-negative"

    def test_nan_rejected(self):
        assert _message(BudgetLineItemUpdate, {"budgeted_amount": "NaN"}) == "Amount must be non-negative"

    def test_zero_allowed(self):
        assert BudgetLineItemUpdate(budgeted_amount=0).budgeted_amount == Decimal("0")


class TestEnvelope:
    def test_decimal_serialised_as_string(self):
        body = envelope({"amount": Decimal("450.00"), "status": LevyItemStatus.PAID, "due": date(2026, 7, 31)})

        assert body == {"data": {"amount": "450.00", "status": "paid", "due": "2026-07-31"}, "warning": None}

    def test_warning_passed_through(self):
        assert envelope([], "Payment recorded but allocation failed: x")["warning"] == (
            "Payment recorded but allocation failed: x"
        )
