"""Ledger aggregation: pure reducers from transaction data to report rows.

Every function here takes already-fetched rows and returns report
dataclasses. Amounts are rounded to cents after every accumulation step;
totals are compared for exact equality only after rounding.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Protocol

from strata.models.account import FundType
from strata.models.transaction import LineType, TransactionType
from strata.services.money import ZERO, money_add, money_sub, percentage, to_money

OVER_BUDGET_THRESHOLD_PCT = Decimal("10")


@dataclass(frozen=True)
class AccountRef:
    """Chart-of-accounts entry as seen by the reducers."""

    id: int
    code: str
    name: str
    account_type: str | None = None
    fund_type: FundType | None = None


@dataclass(frozen=True)
class LedgerLine:
    """One double-entry posting."""

    account: AccountRef
    line_type: LineType
    amount: Decimal


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: int
    code: str
    name: str
    account_type: str | None
    fund_type: FundType | None
    total_debits: Decimal
    total_credits: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    rows: list[TrialBalanceRow]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool


@dataclass(frozen=True)
class FundMovement:
    """Receipt or payment amount against a fund."""

    fund_type: FundType
    transaction_type: TransactionType
    amount: Decimal


@dataclass(frozen=True)
class FundBalance:
    fund_type: FundType
    opening_balance: Decimal
    total_receipts: Decimal
    total_payments: Decimal
    closing_balance: Decimal


@dataclass(frozen=True)
class FundBalanceSummary:
    admin: FundBalance
    capital_works: FundBalance

    def as_list(self) -> list[FundBalance]:
        return [self.admin, self.capital_works]


@dataclass(frozen=True)
class CategoryEntry:
    """Transaction amount tagged with its reporting category and fund."""

    category: AccountRef
    transaction_type: TransactionType
    fund_type: FundType
    amount: Decimal


@dataclass(frozen=True)
class IncomeStatementCategory:
    category_id: int
    code: str
    name: str
    fund_type: FundType | None
    total: Decimal


@dataclass(frozen=True)
class FundStatement:
    income: list[IncomeStatementCategory] = field(default_factory=list)
    expenses: list[IncomeStatementCategory] = field(default_factory=list)
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    net: Decimal = ZERO


@dataclass(frozen=True)
class CombinedStatement:
    total_income: Decimal
    total_expenses: Decimal
    net: Decimal


@dataclass(frozen=True)
class IncomeStatement:
    admin: FundStatement
    capital_works: FundStatement
    combined: CombinedStatement


class VarianceStatus(str, Enum):
    """Budget line classification by spend against budget."""

    ON_TRACK = "on_track"
    MONITOR = "monitor"
    OVER_BUDGET = "over_budget"


@dataclass(frozen=True)
class BudgetLine:
    category: AccountRef
    budgeted_amount: Decimal


@dataclass(frozen=True)
class BudgetVsActualRow:
    category_id: int
    category_code: str
    category_name: str
    budgeted_amount: Decimal
    actual_amount: Decimal
    variance: Decimal
    variance_pct: Decimal | None
    status: VarianceStatus


class CategorisedAmount(Protocol):
    category_id: int | None
    amount: Decimal


class ArrearsLine(Protocol):
    lot_id: int
    due_date: date

    @property
    def balance(self) -> Decimal: ...


@dataclass(frozen=True)
class AgingBucket:
    count: int = 0
    amount: Decimal = ZERO


@dataclass(frozen=True)
class ArrearsSummary:
    total_overdue: Decimal
    lots_in_arrears: int
    under_30: AgingBucket
    days_31_to_60: AgingBucket
    days_61_to_90: AgingBucket
    over_90: AgingBucket


def trial_balance(lines: Iterable[LedgerLine]) -> TrialBalance:
    """Sum debits and credits per account.

    Rows are sorted by account code; ``balance = debits - credits``. The
    report is balanced when total debits equal total credits exactly.
    """
    accounts: dict[int, AccountRef] = {}
    debits: dict[int, Decimal] = defaultdict(lambda: ZERO)
    credits: dict[int, Decimal] = defaultdict(lambda: ZERO)

    for line in lines:
        account_id = line.account.id
        accounts.setdefault(account_id, line.account)
        if line.line_type == LineType.DEBIT:
            debits[account_id] = money_add(debits[account_id], line.amount)
        else:
            credits[account_id] = money_add(credits[account_id], line.amount)

    rows = [
        TrialBalanceRow(
            account_id=account.id,
            code=account.code,
            name=account.name,
            account_type=account.account_type,
            fund_type=account.fund_type,
            total_debits=debits[account.id],
            total_credits=credits[account.id],
            balance=money_sub(debits[account.id], credits[account.id]),
        )
        for account in accounts.values()
    ]
    rows.sort(key=lambda r: r.code)

    total_debits = ZERO
    total_credits = ZERO
    for row in rows:
        total_debits = money_add(total_debits, row.total_debits)
        total_credits = money_add(total_credits, row.total_credits)

    return TrialBalance(
        rows=rows,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=total_debits == total_credits,
    )


def fund_balance_summary(
    opening_balances: Mapping[FundType, Decimal],
    movements: Iterable[FundMovement],
) -> FundBalanceSummary:
    """Opening + receipts - payments per fund. Journals do not move fund balances."""
    receipts = {FundType.ADMIN: ZERO, FundType.CAPITAL_WORKS: ZERO}
    payments = {FundType.ADMIN: ZERO, FundType.CAPITAL_WORKS: ZERO}

    for movement in movements:
        fund = FundType(movement.fund_type)
        if movement.transaction_type == TransactionType.RECEIPT:
            receipts[fund] = money_add(receipts[fund], movement.amount)
        elif movement.transaction_type == TransactionType.PAYMENT:
            payments[fund] = money_add(payments[fund], movement.amount)

    def _balance(fund: FundType) -> FundBalance:
        opening = to_money(opening_balances.get(fund, ZERO))
        return FundBalance(
            fund_type=fund,
            opening_balance=opening,
            total_receipts=receipts[fund],
            total_payments=payments[fund],
            closing_balance=money_sub(money_add(opening, receipts[fund]), payments[fund]),
        )

    return FundBalanceSummary(
        admin=_balance(FundType.ADMIN),
        capital_works=_balance(FundType.CAPITAL_WORKS),
    )


def income_statement(entries: Iterable[CategoryEntry]) -> IncomeStatement:
    """Group receipts (income) and payments (expenses) by category within each fund.

    A category is keyed by (category, transaction fund): the same expense
    account charged to both funds appears once under each fund.
    """
    totals: dict[tuple[int, FundType], Decimal] = {}
    meta: dict[tuple[int, FundType], tuple[AccountRef, str]] = {}

    for entry in entries:
        if entry.transaction_type not in (TransactionType.RECEIPT, TransactionType.PAYMENT):
            continue
        key = (entry.category.id, FundType(entry.fund_type))
        if key not in meta:
            side = "income" if entry.transaction_type == TransactionType.RECEIPT else "expenses"
            meta[key] = (entry.category, side)
            totals[key] = ZERO
        totals[key] = money_add(totals[key], entry.amount)

    def _section(fund: FundType) -> FundStatement:
        income: list[IncomeStatementCategory] = []
        expenses: list[IncomeStatementCategory] = []
        for key, (category, side) in meta.items():
            if key[1] != fund:
                continue
            row = IncomeStatementCategory(
                category_id=category.id,
                code=category.code,
                name=category.name,
                fund_type=category.fund_type,
                total=totals[key],
            )
            (income if side == "income" else expenses).append(row)
        income.sort(key=lambda c: c.code)
        expenses.sort(key=lambda c: c.code)

        total_income = ZERO
        for c in income:
            total_income = money_add(total_income, c.total)
        total_expenses = ZERO
        for c in expenses:
            total_expenses = money_add(total_expenses, c.total)

        return FundStatement(
            income=income,
            expenses=expenses,
            total_income=total_income,
            total_expenses=total_expenses,
            net=money_sub(total_income, total_expenses),
        )

    admin = _section(FundType.ADMIN)
    capital_works = _section(FundType.CAPITAL_WORKS)
    return IncomeStatement(
        admin=admin,
        capital_works=capital_works,
        combined=CombinedStatement(
            total_income=money_add(admin.total_income, capital_works.total_income),
            total_expenses=money_add(admin.total_expenses, capital_works.total_expenses),
            net=money_add(admin.net, capital_works.net),
        ),
    )


def classify_variance(budgeted: Decimal, actual: Decimal, variance_pct: Decimal | None) -> VarianceStatus:
    """over_budget above 10%, monitor above 0%, otherwise on_track.

    With nothing budgeted, any spend is over budget.
    """
    if variance_pct is None:
        if budgeted == 0 and actual > 0:
            return VarianceStatus.OVER_BUDGET
        return VarianceStatus.ON_TRACK
    if variance_pct > OVER_BUDGET_THRESHOLD_PCT:
        return VarianceStatus.OVER_BUDGET
    if variance_pct > 0:
        return VarianceStatus.MONITOR
    return VarianceStatus.ON_TRACK


def budget_vs_actual(
    budget_lines: Iterable[BudgetLine],
    actuals_by_category: Mapping[int, Decimal],
) -> list[BudgetVsActualRow]:
    """Compare each budget line with actual spend in its category, sorted by code."""
    rows = []
    for line in budget_lines:
        budgeted = to_money(line.budgeted_amount)
        actual = to_money(actuals_by_category.get(line.category.id, ZERO))
        variance = money_sub(actual, budgeted)
        variance_pct = percentage(variance, budgeted)
        rows.append(
            BudgetVsActualRow(
                category_id=line.category.id,
                category_code=line.category.code,
                category_name=line.category.name,
                budgeted_amount=budgeted,
                actual_amount=actual,
                variance=variance,
                variance_pct=variance_pct,
                status=classify_variance(budgeted, actual, variance_pct),
            )
        )
    rows.sort(key=lambda r: r.category_code)
    return rows


def sum_by_category(transactions: Iterable[CategorisedAmount]) -> dict[int, Decimal]:
    """Total transaction amounts per category; uncategorised rows are ignored."""
    totals: dict[int, Decimal] = {}
    for txn in transactions:
        if txn.category_id is None:
            continue
        totals[txn.category_id] = money_add(totals.get(txn.category_id, ZERO), txn.amount)
    return totals


def ledger_balance(lines: Iterable) -> Decimal:
    """Sum of debits minus sum of credits for the given postings."""
    balance = ZERO
    for line in lines:
        if line.line_type == LineType.DEBIT:
            balance = money_add(balance, line.amount)
        else:
            balance = money_sub(balance, line.amount)
    return balance


def summarise_arrears(items: Iterable[ArrearsLine], today: date) -> ArrearsSummary:
    """Total outstanding, distinct lots and aging buckets by days past due.

    Buckets: up to 30 days (including items not yet due), 31-60, 61-90, over 90.
    """
    buckets = {"under_30": [0, ZERO], "days_31_to_60": [0, ZERO], "days_61_to_90": [0, ZERO], "over_90": [0, ZERO]}
    total = ZERO
    lots = set()

    for item in items:
        balance = to_money(item.balance)
        total = money_add(total, balance)
        lots.add(item.lot_id)

        days_overdue = (today - item.due_date).days
        if days_overdue <= 30:
            name = "under_30"
        elif days_overdue <= 60:
            name = "days_31_to_60"
        elif days_overdue <= 90:
            name = "days_61_to_90"
        else:
            name = "over_90"
        buckets[name][0] += 1
        buckets[name][1] = money_add(buckets[name][1], balance)

    return ArrearsSummary(
        total_overdue=total,
        lots_in_arrears=len(lots),
        **{name: AgingBucket(count=count, amount=amount) for name, (count, amount) in buckets.items()},
    )


__all__ = [
    "AccountRef",
    "LedgerLine",
    "TrialBalanceRow",
    "TrialBalance",
    "FundMovement",
    "FundBalance",
    "FundBalanceSummary",
    "CategoryEntry",
    "IncomeStatementCategory",
    "FundStatement",
    "CombinedStatement",
    "IncomeStatement",
    "VarianceStatus",
    "BudgetLine",
    "BudgetVsActualRow",
    "AgingBucket",
    "ArrearsSummary",
    "trial_balance",
    "fund_balance_summary",
    "income_statement",
    "classify_variance",
    "budget_vs_actual",
    "sum_by_category",
    "ledger_balance",
    "summarise_arrears",
]
