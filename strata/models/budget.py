"""Budget and budget line item ORM models."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel
from strata.models.account import FundType


class BudgetStatus(str, Enum):
    """Budget approval state."""

    DRAFT = "draft"
    REVIEW = "review"
    APPROVED = "approved"
    AMENDED = "amended"


class Budget(Base, BaseModel):
    """Planning record per (scheme, financial year, fund type).

    ``total_amount`` caches the sum of line items and is recomputed on every
    line edit.
    """

    __tablename__ = "budgets"

    scheme_id: Mapped[int] = mapped_column(ForeignKey("schemes.id"), nullable=False, index=True)
    financial_year_id: Mapped[int] = mapped_column(
        ForeignKey("financial_years.id"),
        nullable=False,
        index=True,
    )
    budget_type: Mapped[FundType] = mapped_column(SQLEnum(FundType), nullable=False)
    status: Mapped[BudgetStatus] = mapped_column(
        SQLEnum(BudgetStatus),
        nullable=False,
        default=BudgetStatus.DRAFT,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    approved_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(nullable=True)

    line_items: Mapped[list["BudgetLineItem"]] = relationship(
        "BudgetLineItem",
        back_populates="budget",
        cascade="all, delete-orphan",
        order_by="BudgetLineItem.id",
    )
    financial_year: Mapped["FinancialYear"] = relationship("FinancialYear")  # noqa: F821

    __table_args__ = (
        UniqueConstraint("scheme_id", "financial_year_id", "budget_type", name="uq_budget_scheme_fy_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<Budget(id={self.id}, scheme_id={self.scheme_id}, fy={self.financial_year_id}, "
            f"type={self.budget_type}, status={self.status}, total={self.total_amount})>"
        )


class BudgetLineItem(Base, BaseModel):
    """Budgeted amount for one chart-of-accounts category."""

    __tablename__ = "budget_line_items"

    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("chart_of_accounts.id"), nullable=False)
    budgeted_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    previous_year_actual: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    budget: Mapped["Budget"] = relationship("Budget", back_populates="line_items")
    category: Mapped["ChartOfAccount"] = relationship("ChartOfAccount")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<BudgetLineItem(id={self.id}, budget_id={self.budget_id}, "
            f"category_id={self.category_id}, amount={self.budgeted_amount})>"
        )


__all__ = ["Budget", "BudgetLineItem", "BudgetStatus"]
