"""Budget lifecycle and budget-vs-actual reporting."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from strata.errors import ConflictError, NotFoundError
from strata.models.account import AccountType, ChartOfAccount, FundType
from strata.models.budget import Budget, BudgetLineItem, BudgetStatus
from strata.models.financial_year import FinancialYear
from strata.models.scheme import Scheme
from strata.models.transaction import Transaction
from strata.schemas.budgets import BudgetCreate, BudgetLineItemUpdate
from strata.services.audit_service import AuditService
from strata.services.context import RequestContext
from strata.services.ledger_service import AccountRef, BudgetLine, BudgetVsActualRow, budget_vs_actual, sum_by_category
from strata.services.money import money_sum
from strata.services.result import Outcome
from strata.services.scheme_service import SchemeService

logger = logging.getLogger(__name__)

DUPLICATE_BUDGET_MESSAGE = "A budget already exists for this scheme, financial year, and fund type"
NO_BUDGET_MESSAGE = "No budget found for this scheme, financial year, and fund type"


@dataclass(frozen=True)
class LineItemTotal:
    line_item_id: int
    total_amount: Decimal


class BudgetService:
    """Service for budget database operations.

    Status flow: draft -> review -> approved -> amended. Draft and review
    budgets can be approved directly; only drafts can be deleted.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.schemes = SchemeService(db_session)

    def list_budgets(self, scheme: Scheme) -> list[Budget]:
        return (
            self.db.query(Budget)
            .options(selectinload(Budget.financial_year))
            .filter(Budget.scheme_id == scheme.id)
            .order_by(Budget.created_at.desc(), Budget.id.desc())
            .all()
        )

    def get_budget(self, scheme: Scheme, budget_id: int) -> Budget:
        """Fetch a budget with its line items and their categories.

        Raises:
            NotFoundError: If the budget does not belong to the scheme
        """
        budget = (
            self.db.query(Budget)
            .options(selectinload(Budget.line_items).selectinload(BudgetLineItem.category))
            .filter(Budget.id == budget_id, Budget.scheme_id == scheme.id)
            .first()
        )
        if budget is None:
            raise NotFoundError("Budget not found")
        return budget

    def budget_categories(self, scheme: Scheme, fund_type: FundType) -> list[ChartOfAccount]:
        """Active income and expense accounts usable by a budget of this fund.

        Accounts scoped to the fund or to no fund qualify. When the scheme
        defines a code that also exists as an organisation default, the
        scheme's account wins. Sorted by code.
        """
        accounts = (
            self.db.query(ChartOfAccount)
            .filter(
                or_(ChartOfAccount.scheme_id == scheme.id, ChartOfAccount.scheme_id.is_(None)),
                ChartOfAccount.account_type.in_((AccountType.INCOME, AccountType.EXPENSE)),
                or_(ChartOfAccount.fund_type == fund_type, ChartOfAccount.fund_type.is_(None)),
                ChartOfAccount.is_active.is_(True),
            )
            .order_by(ChartOfAccount.code)
            .all()
        )
        by_code: dict[str, ChartOfAccount] = {}
        for account in accounts:
            current = by_code.get(account.code)
            if current is None or (current.scheme_id is None and account.scheme_id is not None):
                by_code[account.code] = account
        return [by_code[code] for code in sorted(by_code)]

    def _actuals(self, scheme_id: int, fund_type: FundType, start: date, end: date) -> dict[int, Decimal]:
        transactions = (
            self.db.query(Transaction)
            .filter(
                Transaction.scheme_id == scheme_id,
                Transaction.fund_type == fund_type,
                Transaction.deleted_at.is_(None),
                Transaction.transaction_date >= start,
                Transaction.transaction_date <= end,
            )
            .all()
        )
        return sum_by_category(transactions)

    def create_budget(self, ctx: RequestContext, scheme: Scheme, data: BudgetCreate) -> Outcome[Budget]:
        """Create a draft budget with one zero line per eligible category.

        Previous-year actuals are filled from the financial year ending most
        recently before this one starts, when there is one.

        Raises:
            NotFoundError: If the financial year does not belong to the scheme
            ConflictError: If a budget exists for the same year and fund
        """
        fy = self.schemes.get_financial_year(scheme.id, data.financial_year_id)

        existing = (
            self.db.query(Budget.id)
            .filter(
                Budget.scheme_id == scheme.id,
                Budget.financial_year_id == fy.id,
                Budget.budget_type == data.budget_type,
            )
            .first()
        )
        if existing is not None:
            logger.warning("Duplicate %s budget for scheme %s, FY %s", data.budget_type.value, scheme.id, fy.id)
            raise ConflictError(DUPLICATE_BUDGET_MESSAGE)

        budget = Budget(
            scheme_id=scheme.id,
            financial_year_id=fy.id,
            budget_type=data.budget_type,
            status=BudgetStatus.DRAFT,
            notes=data.notes or None,
            created_by=ctx.user_id,
        )
        self.db.add(budget)
        self.db.flush()
        AuditService.log(
            self.db,
            "budget",
            budget.id,
            "create",
            actor_id=ctx.user_id,
            changes={"budget_type": data.budget_type.value, "financial_year_id": fy.id},
        )
        self.db.commit()
        logger.info("Created %s budget %s for scheme %s", data.budget_type.value, budget.id, scheme.id)

        try:
            previous_actuals: dict[int, Decimal] = {}
            previous_fy = self.schemes.get_previous_financial_year(fy)
            if previous_fy is not None:
                previous_actuals = self._actuals(
                    scheme.id, data.budget_type, previous_fy.start_date, previous_fy.end_date
                )

            for account in self.budget_categories(scheme, data.budget_type):
                self.db.add(
                    BudgetLineItem(
                        budget_id=budget.id,
                        category_id=account.id,
                        budgeted_amount=Decimal("0.00"),
                        previous_year_actual=previous_actuals.get(account.id),
                    )
                )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Line item creation failed for budget %s: %s", budget.id, e)
            return Outcome(budget, warning=f"Budget created but line items failed: {e}")

        return Outcome(self.get_budget(scheme, budget.id))

    def update_line_item(
        self, ctx: RequestContext, scheme: Scheme, line_item_id: int, data: BudgetLineItemUpdate
    ) -> LineItemTotal:
        """Set a line's budgeted amount and recompute the budget total.

        Raises:
            NotFoundError: If the line item does not belong to the scheme
            ConflictError: If the budget is approved (amend it first)
        """
        line = (
            self.db.query(BudgetLineItem)
            .join(Budget, BudgetLineItem.budget_id == Budget.id)
            .filter(BudgetLineItem.id == line_item_id, Budget.scheme_id == scheme.id)
            .first()
        )
        if line is None:
            raise NotFoundError("Budget line item not found")

        budget = line.budget
        if budget.status == BudgetStatus.APPROVED:
            raise ConflictError("Cannot edit an approved budget. Amend it first.")

        line.budgeted_amount = data.budgeted_amount
        line.notes = data.notes or None
        self.db.flush()

        amounts = (
            self.db.query(BudgetLineItem.budgeted_amount).filter(BudgetLineItem.budget_id == budget.id).all()
        )
        budget.total_amount = money_sum(amount for (amount,) in amounts)
        self.db.commit()
        return LineItemTotal(line_item_id=line.id, total_amount=budget.total_amount)

    def _transition(
        self,
        ctx: RequestContext,
        budget: Budget,
        allowed: tuple[BudgetStatus, ...],
        target: BudgetStatus,
        action: str,
        message: str,
    ) -> Budget:
        if budget.status not in allowed:
            raise ConflictError(message)
        previous = budget.status
        budget.status = target
        AuditService.log(
            self.db,
            "budget",
            budget.id,
            action,
            actor_id=ctx.user_id,
            changes={"from": previous.value, "to": target.value},
        )
        return budget

    def submit_for_review(self, ctx: RequestContext, scheme: Scheme, budget_id: int) -> Budget:
        budget = self.get_budget(scheme, budget_id)
        self._transition(
            ctx,
            budget,
            (BudgetStatus.DRAFT,),
            BudgetStatus.REVIEW,
            "submit",
            f'Cannot submit a budget with status "{budget.status.value}" for review. Must be "draft".',
        )
        self.db.commit()
        return budget

    def approve_budget(
        self, ctx: RequestContext, scheme: Scheme, budget_id: int, approved_at: date | None = None
    ) -> Budget:
        """Approve a draft or review budget, recording the approval date.

        Raises:
            ConflictError: If the budget is not in draft or review
        """
        budget = self.get_budget(scheme, budget_id)
        self._transition(
            ctx,
            budget,
            (BudgetStatus.DRAFT, BudgetStatus.REVIEW),
            BudgetStatus.APPROVED,
            "approve",
            f'Cannot approve a budget with status "{budget.status.value}". Must be "draft" or "review".',
        )
        budget.approved_at = approved_at or date.today()
        self.db.commit()
        logger.info("Approved budget %s", budget.id)
        return budget

    def amend_budget(self, ctx: RequestContext, scheme: Scheme, budget_id: int) -> Budget:
        budget = self.get_budget(scheme, budget_id)
        self._transition(
            ctx,
            budget,
            (BudgetStatus.APPROVED,),
            BudgetStatus.AMENDED,
            "amend",
            f'Cannot amend a budget with status "{budget.status.value}". Must be "approved".',
        )
        self.db.commit()
        return budget

    def delete_budget(self, ctx: RequestContext, scheme: Scheme, budget_id: int) -> None:
        """Delete a draft budget and its line items.

        Raises:
            ConflictError: If the budget is not a draft
        """
        budget = self.get_budget(scheme, budget_id)
        if budget.status != BudgetStatus.DRAFT:
            raise ConflictError(
                f'Cannot delete a budget with status "{budget.status.value}". Only draft budgets can be deleted.'
            )
        AuditService.log(self.db, "budget", budget.id, "delete", actor_id=ctx.user_id)
        self.db.delete(budget)
        self.db.commit()
        logger.info("Deleted budget %s", budget_id)

    def budget_vs_actual(
        self, scheme: Scheme, financial_year_id: int, fund_type: FundType
    ) -> list[BudgetVsActualRow]:
        """Compare a fund's budget lines with actual spend over the financial year.

        Raises:
            NotFoundError: If the financial year or the budget does not exist
        """
        fy: FinancialYear = self.schemes.get_financial_year(scheme.id, financial_year_id)
        budget = (
            self.db.query(Budget)
            .options(selectinload(Budget.line_items).selectinload(BudgetLineItem.category))
            .filter(
                Budget.scheme_id == scheme.id,
                Budget.financial_year_id == fy.id,
                Budget.budget_type == fund_type,
            )
            .first()
        )
        if budget is None:
            raise NotFoundError(NO_BUDGET_MESSAGE)

        actuals = self._actuals(scheme.id, fund_type, fy.start_date, fy.end_date)
        lines = [
            BudgetLine(
                category=AccountRef(id=item.category.id, code=item.category.code, name=item.category.name),
                budgeted_amount=item.budgeted_amount,
            )
            for item in budget.line_items
            if item.category is not None
        ]
        return budget_vs_actual(lines, actuals)


__all__ = ["BudgetService", "LineItemTotal", "DUPLICATE_BUDGET_MESSAGE", "NO_BUDGET_MESSAGE"]
