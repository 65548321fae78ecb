"""Integration tests for the budget lifecycle and budget-vs-actual."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import SQLAlchemyError

from strata.errors import ConflictError, NotFoundError
from strata.models import (
    AccountType,
    Budget,
    BudgetLineItem,
    BudgetStatus,
    ChartOfAccount,
    FinancialYear,
    FundType,
    TransactionType,
)
from strata.schemas.budgets import BudgetCreate, BudgetLineItemUpdate
from strata.services.budget_service import DUPLICATE_BUDGET_MESSAGE, NO_BUDGET_MESSAGE, BudgetService
from strata.services.ledger_service import VarianceStatus


@pytest.fixture
def admin_budget(db_session, ctx, scheme, accounts, financial_year):
    outcome = BudgetService(db_session).create_budget(
        ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.ADMIN)
    )
    return outcome.value


def _line(budget, code):
    return next(item for item in budget.line_items if item.category.code == code)


class TestCreateBudget:
    def test_one_line_per_eligible_category(self, admin_budget):
        assert admin_budget.status == BudgetStatus.DRAFT
        assert [item.category.code for item in admin_budget.line_items] == ["4100", "6100", "6200"]
        assert all(item.budgeted_amount == Decimal("0.00") for item in admin_budget.line_items)
        assert admin_budget.total_amount == Decimal("0.00")

    def test_capital_works_categories(self, db_session, ctx, scheme, accounts, financial_year):
        budget = BudgetService(db_session).create_budget(
            ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.CAPITAL_WORKS)
        ).value

        assert [item.category.code for item in budget.line_items] == ["4100", "7100"]

    def test_scheme_account_overrides_default(self, db_session, ctx, scheme, accounts, financial_year):
        db_session.add(
            ChartOfAccount(
                scheme_id=scheme.id,
                code="6100",
                name="Building Insurance",
                account_type=AccountType.EXPENSE,
                fund_type=FundType.ADMIN,
            )
        )
        db_session.commit()

        budget = BudgetService(db_session).create_budget(
            ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.ADMIN)
        ).value

        assert _line(budget, "6100").category.name == "Building Insurance"
        assert len(budget.line_items) == 3

    def test_duplicate_rejected(self, db_session, ctx, scheme, admin_budget, financial_year):
        with pytest.raises(ConflictError) as exc_info:
            BudgetService(db_session).create_budget(
                ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.ADMIN)
            )
        assert exc_info.value.message == DUPLICATE_BUDGET_MESSAGE

    def test_unknown_financial_year(self, db_session, ctx, scheme, accounts):
        with pytest.raises(NotFoundError, match="Financial year not found"):
            BudgetService(db_session).create_budget(
                ctx, scheme, BudgetCreate(financial_year_id=999, budget_type=FundType.ADMIN)
            )

    def test_previous_year_actuals_snapshot(self, db_session, ctx, scheme, financial_year, post_transaction):
        db_session.add(
            FinancialYear(
                scheme_id=scheme.id,
                year_label="2025/26",
                start_date=date(2025, 7, 1),
                end_date=date(2026, 6, 30),
            )
        )
        db_session.commit()
        post_transaction(date(2026, 3, 1), TransactionType.PAYMENT, FundType.ADMIN, "6100", "4200.00")
        post_transaction(date(2026, 8, 1), TransactionType.PAYMENT, FundType.ADMIN, "6100", "999.00")

        budget = BudgetService(db_session).create_budget(
            ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.ADMIN)
        ).value

        assert _line(budget, "6100").previous_year_actual == Decimal("4200.00")
        assert _line(budget, "6200").previous_year_actual is None

    def test_line_item_failure_keeps_budget(self, db_session, ctx, scheme, accounts, financial_year):
        service = BudgetService(db_session)

        with patch.object(service, "budget_categories", side_effect=SQLAlchemyError("locked")):
            outcome = service.create_budget(
                ctx, scheme, BudgetCreate(financial_year_id=financial_year.id, budget_type=FundType.ADMIN)
            )

        assert outcome.warning.startswith("Budget created but line items failed:")
        assert db_session.query(Budget).count() == 1
        assert db_session.query(BudgetLineItem).count() == 0


class TestLineItems:
    def test_total_recomputed_on_every_edit(self, db_session, ctx, scheme, admin_budget):
        service = BudgetService(db_session)
        service.update_line_item(
            ctx, scheme, _line(admin_budget, "6100").id, BudgetLineItemUpdate(budgeted_amount="12000.50")
        )

        result = service.update_line_item(
            ctx, scheme, _line(admin_budget, "6200").id, BudgetLineItemUpdate(budgeted_amount="3000")
        )

        assert result.total_amount == Decimal("15000.50")
        db_session.refresh(admin_budget)
        assert admin_budget.total_amount == Decimal("15000.50")

    def test_unknown_line_item(self, db_session, ctx, scheme, admin_budget):
        with pytest.raises(NotFoundError, match="Budget line item not found"):
            BudgetService(db_session).update_line_item(ctx, scheme, 999, BudgetLineItemUpdate(budgeted_amount=1))

    def test_approved_budget_locked(self, db_session, ctx, scheme, admin_budget):
        service = BudgetService(db_session)
        service.approve_budget(ctx, scheme, admin_budget.id)

        with pytest.raises(ConflictError, match="Cannot edit an approved budget. Amend it first."):
            service.update_line_item(
                ctx, scheme, _line(admin_budget, "6100").id, BudgetLineItemUpdate(budgeted_amount=1)
            )


class TestLifecycle:
    def test_draft_review_approved_amended(self, db_session, ctx, scheme, admin_budget):
        service = BudgetService(db_session)

        assert service.submit_for_review(ctx, scheme, admin_budget.id).status == BudgetStatus.REVIEW
        approved = service.approve_budget(ctx, scheme, admin_budget.id, approved_at=date(2026, 6, 15))
        assert approved.status == BudgetStatus.APPROVED
        assert approved.approved_at == date(2026, 6, 15)
        assert service.amend_budget(ctx, scheme, admin_budget.id).status == BudgetStatus.AMENDED

    def test_draft_can_be_approved_directly(self, db_session, ctx, scheme, admin_budget):
        budget = BudgetService(db_session).approve_budget(ctx, scheme, admin_budget.id)

        assert budget.approved_at == date.today()

    def test_cannot_approve_twice(self, db_session, ctx, scheme, admin_budget):
        service = BudgetService(db_session)
        service.approve_budget(ctx, scheme, admin_budget.id)

        with pytest.raises(ConflictError) as exc_info:
            service.approve_budget(ctx, scheme, admin_budget.id)
        assert exc_info.value.message == 'Cannot approve a budget with status "approved". Must be "draft" or "review".'

    def test_delete_draft(self, db_session, ctx, scheme, admin_budget):
        BudgetService(db_session).delete_budget(ctx, scheme, admin_budget.id)

        assert db_session.query(Budget).count() == 0
        assert db_session.query(BudgetLineItem).count() == 0

    def test_delete_non_draft_refused(self, db_session, ctx, scheme, admin_budget):
        service = BudgetService(db_session)
        service.submit_for_review(ctx, scheme, admin_budget.id)

        with pytest.raises(ConflictError, match="Only draft budgets can be deleted"):
            service.delete_budget(ctx, scheme, admin_budget.id)


class TestBudgetVsActual:
    def test_rows_with_variance_status(
        self, db_session, ctx, scheme, admin_budget, financial_year, post_transaction
    ):
        service = BudgetService(db_session)
        service.update_line_item(ctx, scheme, _line(admin_budget, "6100").id, BudgetLineItemUpdate(budgeted_amount=1000))
        service.update_line_item(ctx, scheme, _line(admin_budget, "6200").id, BudgetLineItemUpdate(budgeted_amount=1000))
        post_transaction(date(2026, 9, 1), TransactionType.PAYMENT, FundType.ADMIN, "6100", "1050.00")
        post_transaction(date(2026, 9, 1), TransactionType.PAYMENT, FundType.ADMIN, "6200", "1200.00")
        post_transaction(date(2027, 8, 1), TransactionType.PAYMENT, FundType.ADMIN, "6200", "5000.00")

        rows = service.budget_vs_actual(scheme, financial_year.id, FundType.ADMIN)

        by_code = {row.category_code: row for row in rows}
        assert [row.category_code for row in rows] == ["4100", "6100", "6200"]
        assert by_code["6100"].variance_pct == Decimal("5.00")
        assert by_code["6100"].status == VarianceStatus.MONITOR
        assert by_code["6200"].actual_amount == Decimal("1200.00")
        assert by_code["6200"].status == VarianceStatus.OVER_BUDGET
        assert by_code["4100"].status == VarianceStatus.ON_TRACK

    def test_missing_budget(self, db_session, scheme, accounts, financial_year):
        with pytest.raises(NotFoundError) as exc_info:
            BudgetService(db_session).budget_vs_actual(scheme, financial_year.id, FundType.CAPITAL_WORKS)
        assert exc_info.value.message == NO_BUDGET_MESSAGE
