"""Levy schedule ORM model: a scheme's annual billing plan."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel


class LevyFrequency(str, Enum):
    """How often levies are raised within the budget year."""

    ANNUAL = "annual"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"


SUPPORTED_PERIODS_PER_YEAR = (1, 2, 4, 12)


class LevySchedule(Base, BaseModel):
    """Annual levy plan for a scheme.

    Attributes:
        budget_year_start: First day of the budget year
        budget_year_end: Last day of the budget year (after start)
        admin_fund_total: Administrative fund levy total for the year
        capital_works_fund_total: Capital works fund levy total for the year
        frequency: annual, quarterly or monthly
        periods_per_year: 1, 2, 4 or 12
        active: False once soft-deleted
    """

    __tablename__ = "levy_schedules"

    scheme_id: Mapped[int] = mapped_column(
        ForeignKey("schemes.id"),
        nullable=False,
        index=True,
    )
    budget_year_start: Mapped[date] = mapped_column(Date, nullable=False)
    budget_year_end: Mapped[date] = mapped_column(Date, nullable=False)
    admin_fund_total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    capital_works_fund_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    frequency: Mapped[LevyFrequency] = mapped_column(SQLEnum(LevyFrequency), nullable=False)
    periods_per_year: Mapped[int] = mapped_column(nullable=False)
    active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_by: Mapped[int | None] = mapped_column(nullable=True)

    periods: Mapped[list["LevyPeriod"]] = relationship(  # noqa: F821
        "LevyPeriod",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="LevyPeriod.period_number",
    )

    __table_args__ = (Index("idx_levy_schedule_scheme_start", "scheme_id", "budget_year_start"),)

    def __repr__(self) -> str:
        return (
            f"<LevySchedule(id={self.id}, scheme_id={self.scheme_id}, "
            f"start={self.budget_year_start}, frequency={self.frequency}, active={self.active})>"
        )


__all__ = ["LevySchedule", "LevyFrequency", "SUPPORTED_PERIODS_PER_YEAR"]
