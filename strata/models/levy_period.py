"""Levy period ORM model: one billing cycle of a levy schedule."""

from datetime import date
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel


class LevyPeriodStatus(str, Enum):
    """Status of a levy period."""

    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"


class LevyPeriod(Base, BaseModel):
    """Billing period belonging to a levy schedule.

    Periods of one schedule are contiguous and non-overlapping; they are
    created in a batch with the schedule and not edited individually.
    """

    __tablename__ = "levy_periods"

    levy_schedule_id: Mapped[int] = mapped_column(
        ForeignKey("levy_schedules.id"),
        nullable=False,
        index=True,
    )
    period_number: Mapped[int] = mapped_column(nullable=False, comment="1-based position in the year")
    period_name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Human label (e.g., 'Q1 FY2027')",
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[LevyPeriodStatus] = mapped_column(
        SQLEnum(LevyPeriodStatus),
        nullable=False,
        default=LevyPeriodStatus.PENDING,
    )

    schedule: Mapped["LevySchedule"] = relationship(  # noqa: F821
        "LevySchedule",
        back_populates="periods",
    )
    items: Mapped[list["LevyItem"]] = relationship(  # noqa: F821
        "LevyItem",
        back_populates="period",
    )

    __table_args__ = (
        Index("idx_levy_period_schedule_number", "levy_schedule_id", "period_number", unique=True),
    )

    def __repr__(self) -> str:
        return (
            f"<LevyPeriod(id={self.id}, schedule_id={self.levy_schedule_id}, "
            f"name={self.period_name!r}, {self.period_start}..{self.period_end})>"
        )


__all__ = ["LevyPeriod", "LevyPeriodStatus"]
