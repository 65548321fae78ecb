"""Integration tests for financial report queries."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from strata.errors import NotFoundError
from strata.models import FundType, LevyItemStatus, PaymentMethod, TransactionType
from strata.schemas.payments import PaymentCreate
from strata.services.levy_item_service import LevyItemService
from strata.services.payment_service import PaymentService
from strata.services.report_service import ReportService


@pytest.fixture
def ledger(post_transaction, financial_year, lots):
    """One levy receipt and two admin payments in July/August 2026."""
    return [
        post_transaction(date(2026, 7, 5), TransactionType.RECEIPT, FundType.ADMIN, "4100", "3000.00", lot=lots[0]),
        post_transaction(date(2026, 7, 20), TransactionType.PAYMENT, FundType.ADMIN, "6100", "1000.00"),
        post_transaction(date(2026, 8, 10), TransactionType.PAYMENT, FundType.ADMIN, "6100", "250.00"),
        post_transaction(date(2026, 8, 12), TransactionType.PAYMENT, FundType.CAPITAL_WORKS, "7100", "5000.00"),
    ]


class TestTrialBalance:
    def test_balanced_rows_sorted_by_code(self, db_session, scheme, ledger):
        report = ReportService(db_session).trial_balance(scheme)

        assert [row.code for row in report.rows] == ["1100", "1200", "4100", "6100", "7100"]
        trust = report.rows[0]
        assert (trust.total_debits, trust.total_credits, trust.balance) == (
            Decimal("3000.00"),
            Decimal("1250.00"),
            Decimal("1750.00"),
        )
        assert report.rows[2].balance == Decimal("-3000.00")
        assert report.total_debits == report.total_credits == Decimal("9250.00")
        assert report.is_balanced is True

    def test_as_at_excludes_later_transactions(self, db_session, scheme, ledger):
        report = ReportService(db_session).trial_balance(scheme, as_at=date(2026, 7, 31))

        assert [row.code for row in report.rows] == ["1100", "4100", "6100"]
        assert report.total_debits == Decimal("4000.00")

    def test_soft_deleted_transactions_ignored(self, db_session, scheme, ledger):
        ledger[3].deleted_at = datetime.now(timezone.utc)
        db_session.commit()

        report = ReportService(db_session).trial_balance(scheme)

        assert "7100" not in [row.code for row in report.rows]


class TestFundBalanceSummary:
    def test_opening_plus_receipts_minus_payments(self, db_session, scheme, ledger):
        summary = ReportService(db_session).fund_balance_summary(scheme)

        assert summary.admin.opening_balance == Decimal("5000.00")
        assert summary.admin.total_receipts == Decimal("3000.00")
        assert summary.admin.total_payments == Decimal("1250.00")
        assert summary.admin.closing_balance == Decimal("6750.00")
        assert summary.capital_works.closing_balance == Decimal("15000.00")

    def test_date_range(self, db_session, scheme, ledger):
        summary = ReportService(db_session).fund_balance_summary(
            scheme, start=date(2026, 8, 1), end=date(2026, 8, 31)
        )

        assert summary.admin.total_receipts == Decimal("0.00")
        assert summary.admin.total_payments == Decimal("250.00")

    def test_no_current_year_opens_at_zero(self, db_session, scheme, financial_year):
        financial_year.is_current = False
        db_session.commit()

        summary = ReportService(db_session).fund_balance_summary(scheme)

        assert summary.admin.opening_balance == Decimal("0.00")
        assert summary.capital_works.closing_balance == Decimal("0.00")


class TestIncomeStatement:
    def test_grouped_by_fund_and_category(self, db_session, scheme, ledger):
        statement = ReportService(db_session).income_statement(scheme, date(2026, 7, 1), date(2027, 6, 30))

        assert [(c.code, c.total) for c in statement.admin.income] == [("4100", Decimal("3000.00"))]
        assert [(c.code, c.total) for c in statement.admin.expenses] == [("6100", Decimal("1250.00"))]
        assert statement.admin.net == Decimal("1750.00")
        assert statement.capital_works.income == []
        assert statement.capital_works.net == Decimal("-5000.00")
        assert statement.combined.total_income == Decimal("3000.00")
        assert statement.combined.total_expenses == Decimal("6250.00")
        assert statement.combined.net == Decimal("-3250.00")


class TestTransactionsByCategory:
    def test_newest_first_with_total(self, db_session, scheme, ledger, accounts):
        result = ReportService(db_session).transactions_by_category(scheme, accounts["6100"].id)

        assert [t.amount for t in result.transactions] == [Decimal("250.00"), Decimal("1000.00")]
        assert result.total == Decimal("1250.00")

    def test_range_filter(self, db_session, scheme, ledger, accounts):
        result = ReportService(db_session).transactions_by_category(
            scheme, accounts["6100"].id, start=date(2026, 7, 1), end=date(2026, 7, 31)
        )

        assert result.total == Decimal("1000.00")


class TestLedgerBalance:
    def test_trust_account_balance(self, db_session, scheme, ledger, accounts):
        result = ReportService(db_session).ledger_balance(scheme, FundType.ADMIN)

        assert result.trust_account_id == accounts["1100"].id
        assert result.balance == Decimal("1750.00")

    def test_capital_works_as_at(self, db_session, scheme, ledger):
        result = ReportService(db_session).ledger_balance(scheme, FundType.CAPITAL_WORKS, as_at=date(2026, 8, 1))

        assert result.balance == Decimal("0.00")

    def test_missing_trust_account(self, db_session, scheme):
        with pytest.raises(NotFoundError, match="Trust account 1100 not found"):
            ReportService(db_session).ledger_balance(scheme, FundType.ADMIN)


class TestLevyRoll:
    def test_collection_totals(self, db_session, ctx, scheme, lots, schedule):
        period = schedule.periods[0]
        LevyItemService(db_session).calculate_levies_for_period(ctx, scheme, period.id)
        PaymentService(db_session).record_payment(
            ctx,
            scheme,
            PaymentCreate(
                lot_id=lots[0].id,
                amount=Decimal("400.00"),
                payment_date=date(2026, 7, 2),
                payment_method=PaymentMethod.BPAY,
            ),
        )

        roll = ReportService(db_session).levy_roll(scheme, period.id)

        assert roll.period.id == period.id
        assert [row.lot_number for row in roll.rows] == ["1", "2", "3", "4"]
        assert roll.rows[0].status == LevyItemStatus.PAID
        assert roll.total_levied == Decimal("4000.00")
        assert roll.total_paid == Decimal("400.00")
        assert roll.total_balance == Decimal("3600.00")
        assert roll.paid_count == 1
        assert roll.collection_rate == Decimal("10.00")

    def test_empty_period_rate_is_zero(self, db_session, scheme, schedule):
        roll = ReportService(db_session).levy_roll(scheme, schedule.periods[0].id)

        assert roll.rows == []
        assert roll.collection_rate == Decimal("0.00")
