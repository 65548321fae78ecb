"""Financial reporting over trust transactions and levy items."""

import dataclasses
import logging
import re
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from strata.config import get_settings
from strata.errors import InvalidInputError, NotFoundError, StorageError
from strata.models.account import ChartOfAccount, FundType
from strata.models.levy_item import LevyItemStatus
from strata.models.levy_period import LevyPeriod
from strata.models.scheme import Scheme
from strata.models.transaction import Transaction, TransactionLine, TransactionType
from strata.schemas.reports import ReportExportRequest, ReportType
from strata.services.budget_service import BudgetService
from strata.services.collaborators import BlobStore, DocumentRenderer
from strata.services.context import RequestContext
from strata.services.dates import financial_year_bounds
from strata.services.ledger_service import (
    AccountRef,
    CategoryEntry,
    FundBalanceSummary,
    FundMovement,
    IncomeStatement,
    LedgerLine,
    TrialBalance,
    fund_balance_summary,
    income_statement,
    ledger_balance,
    trial_balance,
)
from strata.services.levy_item_service import LevyItemService
from strata.services.money import ZERO, money_add, percentage
from strata.services.result import Outcome
from strata.services.scheme_service import SchemeService

logger = logging.getLogger(__name__)

TRUST_ACCOUNT_CODES = {FundType.ADMIN: "1100", FundType.CAPITAL_WORKS: "1200"}
PDF_CONTENT_TYPE = "application/pdf"


@dataclass
class CategoryTransactions:
    transactions: list[Transaction]
    total: Decimal


@dataclass(frozen=True)
class LedgerBalance:
    balance: Decimal
    trust_account_id: int


@dataclass
class LevyRollRow:
    levy_item_id: int
    lot_id: int
    lot_number: str
    unit_number: str | None
    owner_name: str | None
    admin_levy_amount: Decimal
    capital_levy_amount: Decimal
    total_levy_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: LevyItemStatus
    due_date: date


@dataclass
class LevyRoll:
    """Levy items of one period with collection totals."""

    period: LevyPeriod
    rows: list[LevyRollRow]
    total_levied: Decimal
    total_paid: Decimal
    total_balance: Decimal
    paid_count: int
    collection_rate: Decimal


@dataclass
class ReportExport:
    """Rendered report; ``content`` is kept unless it was saved to storage."""

    file_name: str
    saved: bool = False
    content: bytes | None = None
    storage_path: str | None = None
    url: str | None = None


def _account_ref(account: ChartOfAccount) -> AccountRef:
    return AccountRef(
        id=account.id,
        code=account.code,
        name=account.name,
        account_type=account.account_type.value if account.account_type else None,
        fund_type=account.fund_type,
    )


def _slug(value: str) -> str:
    return re.sub(r"\s+", "-", value).lower()


class ReportService:
    """Service for financial report queries.

    Fetches transactions for a scheme (soft-deleted rows excluded) and hands
    them to the ledger reducers.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def _transactions(self, scheme: Scheme, start: date | None = None, end: date | None = None):
        query = self.db.query(Transaction).filter(
            Transaction.scheme_id == scheme.id,
            Transaction.deleted_at.is_(None),
        )
        if start is not None:
            query = query.filter(Transaction.transaction_date >= start)
        if end is not None:
            query = query.filter(Transaction.transaction_date <= end)
        return query

    def _lines(self, scheme: Scheme, as_at: date | None = None):
        query = (
            self.db.query(TransactionLine)
            .join(Transaction, TransactionLine.transaction_id == Transaction.id)
            .options(joinedload(TransactionLine.account))
            .filter(Transaction.scheme_id == scheme.id, Transaction.deleted_at.is_(None))
        )
        if as_at is not None:
            query = query.filter(Transaction.transaction_date <= as_at)
        return query

    def trial_balance(self, scheme: Scheme, as_at: date | None = None) -> TrialBalance:
        """Debits and credits per account for transactions up to ``as_at``."""
        lines = [
            LedgerLine(account=_account_ref(line.account), line_type=line.line_type, amount=line.amount)
            for line in self._lines(scheme, as_at).all()
        ]
        return trial_balance(lines)

    def fund_balance_summary(
        self, scheme: Scheme, start: date | None = None, end: date | None = None
    ) -> FundBalanceSummary:
        """Per-fund opening, receipts, payments and closing balance.

        Opening balances come from the financial year flagged current (zero
        when none is flagged).
        """
        current_fy = SchemeService(self.db).get_current_financial_year(scheme.id)
        openings = {
            FundType.ADMIN: current_fy.admin_opening_balance if current_fy else ZERO,
            FundType.CAPITAL_WORKS: current_fy.capital_opening_balance if current_fy else ZERO,
        }
        movements = [
            FundMovement(fund_type=t.fund_type, transaction_type=t.transaction_type, amount=t.amount)
            for t in self._transactions(scheme, start, end).all()
        ]
        return fund_balance_summary(openings, movements)

    def income_statement(self, scheme: Scheme, start: date, end: date) -> IncomeStatement:
        """Income and expenses by category and fund between two dates inclusive."""
        transactions = (
            self._transactions(scheme, start, end)
            .options(joinedload(Transaction.category))
            .filter(Transaction.transaction_type.in_((TransactionType.RECEIPT, TransactionType.PAYMENT)))
            .all()
        )
        entries = [
            CategoryEntry(
                category=_account_ref(t.category),
                transaction_type=t.transaction_type,
                fund_type=t.fund_type,
                amount=t.amount,
            )
            for t in transactions
            if t.category is not None
        ]
        return income_statement(entries)

    def transactions_by_category(
        self,
        scheme: Scheme,
        category_id: int,
        start: date | None = None,
        end: date | None = None,
    ) -> CategoryTransactions:
        """Drill-down: transactions in one category, newest first, with their total."""
        transactions = (
            self._transactions(scheme, start, end)
            .options(joinedload(Transaction.category), joinedload(Transaction.lot))
            .filter(Transaction.category_id == category_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .all()
        )
        total = ZERO
        for t in transactions:
            total = money_add(total, t.amount)
        return CategoryTransactions(transactions=transactions, total=total)

    def trust_account(self, scheme: Scheme, fund_type: FundType) -> ChartOfAccount:
        """The fund's trust bank account, preferring a scheme-specific one.

        Raises:
            NotFoundError: If neither the scheme nor the defaults define it
        """
        code = TRUST_ACCOUNT_CODES[FundType(fund_type)]
        candidates = (
            self.db.query(ChartOfAccount)
            .filter(
                ChartOfAccount.code == code,
                or_(ChartOfAccount.scheme_id == scheme.id, ChartOfAccount.scheme_id.is_(None)),
            )
            .all()
        )
        if not candidates:
            raise NotFoundError(f"Trust account {code} not found")
        candidates.sort(key=lambda a: a.scheme_id is None)
        return candidates[0]

    def ledger_balance(self, scheme: Scheme, fund_type: FundType, as_at: date | None = None) -> LedgerBalance:
        """Debits minus credits on the fund's trust account up to ``as_at``."""
        account = self.trust_account(scheme, fund_type)
        lines = self._lines(scheme, as_at).filter(TransactionLine.account_id == account.id).all()
        return LedgerBalance(balance=ledger_balance(lines), trust_account_id=account.id)

    def levy_roll(self, scheme: Scheme, period_id: int) -> LevyRoll:
        """Every lot's levy for a period with collected and outstanding totals.

        Raises:
            NotFoundError: If the period does not belong to the scheme
        """
        levy_items = LevyItemService(self.db)
        period = levy_items.get_period(scheme, period_id)
        items = levy_items.list_items_for_period(period.id)

        rows = [
            LevyRollRow(
                levy_item_id=item.id,
                lot_id=item.lot_id,
                lot_number=item.lot.lot_number,
                unit_number=item.lot.unit_number,
                owner_name=item.lot.owner_name,
                admin_levy_amount=item.admin_levy_amount,
                capital_levy_amount=item.capital_levy_amount,
                total_levy_amount=item.total_levy_amount,
                amount_paid=item.amount_paid,
                balance=item.balance,
                status=item.status,
                due_date=item.due_date,
            )
            for item in items
        ]
        total_levied = total_paid = total_balance = ZERO
        for row in rows:
            total_levied = money_add(total_levied, row.total_levy_amount)
            total_paid = money_add(total_paid, row.amount_paid)
            total_balance = money_add(total_balance, row.balance)

        return LevyRoll(
            period=period,
            rows=rows,
            total_levied=total_levied,
            total_paid=total_paid,
            total_balance=total_balance,
            paid_count=sum(1 for row in rows if row.status == LevyItemStatus.PAID),
            collection_rate=percentage(total_paid, total_levied) or ZERO,
        )

    def _report_data(self, scheme: Scheme, request: ReportExportRequest) -> tuple[str, dict[str, Any]]:
        """Fetch the report's rows and pick its file name."""
        header: dict[str, Any] = {
            "scheme_name": scheme.scheme_name,
            "scheme_number": scheme.scheme_number,
            "scheme_address": scheme.address,
        }

        if request.report_type == ReportType.TRIAL_BALANCE:
            data = dataclasses.asdict(self.trial_balance(scheme, request.as_at_date))
            file_name = f"trial-balance-{request.as_at_date or 'current'}.pdf"
            return file_name, {**header, "as_at_date": request.as_at_date, **data}

        if request.report_type == ReportType.FUND_SUMMARY:
            summary = self.fund_balance_summary(scheme, request.start_date, request.end_date)
            balances = [dataclasses.asdict(b) for b in summary.as_list()]
            date_range = None
            if request.start_date and request.end_date:
                date_range = {"start_date": request.start_date, "end_date": request.end_date}
            return "fund-summary.pdf", {**header, "date_range": date_range, "balances": balances}

        if request.report_type == ReportType.INCOME_STATEMENT:
            default_start, default_end = financial_year_bounds(
                date.today(), get_settings().financial_year_start_month
            )
            start = request.start_date or default_start
            end = request.end_date or default_end
            statement = dataclasses.asdict(self.income_statement(scheme, start, end))
            file_name = f"income-statement-{start}-to-{end}.pdf"
            return file_name, {**header, "start_date": start, "end_date": end, "statement": statement}

        if request.report_type == ReportType.BUDGET_VS_ACTUAL:
            if request.financial_year_id is None:
                raise InvalidInputError("Financial year ID is required")
            fy = SchemeService(self.db).get_financial_year(scheme.id, request.financial_year_id)
            rows = BudgetService(self.db).budget_vs_actual(scheme, fy.id, request.fund_type)
            fund = FundType(request.fund_type).value
            file_name = f"budget-vs-actual-{fund}-{fy.year_label.replace('/', '-')}.pdf"
            return file_name, {
                **header,
                "financial_year": fy.year_label,
                "fund_type": fund,
                "rows": [dataclasses.asdict(r) for r in rows],
            }

        if request.report_type == ReportType.LEVY_ROLL:
            if request.period_id is None:
                raise InvalidInputError("Period ID is required")
            roll = self.levy_roll(scheme, request.period_id)
            file_name = f"levy-roll-{_slug(roll.period.period_name)}.pdf"
            return file_name, {
                **header,
                "period_name": roll.period.period_name,
                "period_start": roll.period.period_start,
                "period_end": roll.period.period_end,
                "rows": [dataclasses.asdict(r) for r in roll.rows],
                "total_levied": roll.total_levied,
                "total_paid": roll.total_paid,
                "total_balance": roll.total_balance,
            }

        raise InvalidInputError(f"Unknown report type: {request.report_type}")

    async def export_report(
        self,
        ctx: RequestContext,
        scheme: Scheme,
        request: ReportExportRequest,
        renderer: DocumentRenderer,
        blob_store: BlobStore | None = None,
    ) -> Outcome[ReportExport]:
        """Render a report and optionally store it, returning a signed URL.

        Storage failures after a successful render are reported as warnings:
        the rendered content is returned when the upload fails, and the
        storage path when only URL signing fails.

        Raises:
            InvalidInputError: If a required parameter is missing
            NotFoundError: If a referenced period, budget or year is missing
        """
        file_name, data = self._report_data(scheme, request)
        content = await renderer.render(request.report_type.value, data)
        logger.info("Rendered %s for scheme %s (%d bytes)", file_name, scheme.id, len(content))

        if not request.save:
            return Outcome(ReportExport(file_name=file_name, content=content))
        if blob_store is None:
            raise InvalidInputError("Document storage is not configured")

        timestamp = int(time.time() * 1000)
        storage_path = f"{scheme.id}/financial/{date.today().year}/{timestamp}_{file_name}"
        try:
            await blob_store.upload(storage_path, content, PDF_CONTENT_TYPE, upsert=False)
        except StorageError as e:
            logger.error("Upload of %s failed: %s", storage_path, e.message)
            return Outcome(
                ReportExport(file_name=file_name, content=content),
                warning=f"PDF rendered but upload failed: {e.message}",
            )

        try:
            url = await blob_store.create_signed_url(storage_path, get_settings().signed_url_ttl_seconds)
        except StorageError as e:
            logger.error("Signing URL for %s failed: %s", storage_path, e.message)
            return Outcome(
                ReportExport(file_name=file_name, saved=True, storage_path=storage_path),
                warning=f"PDF saved but URL generation failed: {e.message}",
            )

        logger.info("Saved report %s for user %s", storage_path, ctx.user_id)
        return Outcome(ReportExport(file_name=file_name, saved=True, storage_path=storage_path, url=url))


__all__ = [
    "CategoryTransactions",
    "LedgerBalance",
    "LevyRoll",
    "LevyRollRow",
    "ReportExport",
    "ReportService",
    "TRUST_ACCOUNT_CODES",
]
