"""Levy item ORM model: what one lot owes for one levy period."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel
from strata.services.money import ZERO, to_money


class LevyItemStatus(str, Enum):
    """Billing status of a levy item."""

    PENDING = "pending"
    SENT = "sent"
    PARTIAL = "partial"
    OVERDUE = "overdue"
    PAID = "paid"


OUTSTANDING_STATUSES = (
    LevyItemStatus.PENDING,
    LevyItemStatus.SENT,
    LevyItemStatus.PARTIAL,
    LevyItemStatus.OVERDUE,
)


class LevyItem(Base, BaseModel):
    """Amount owed by a lot for a period.

    ``total_levy_amount`` and ``balance`` are derived on every read;
    ``amount_paid`` and ``status`` are maintained by
    ``LevyItemService.apply_allocations`` when allocations are written.
    """

    __tablename__ = "levy_items"

    scheme_id: Mapped[int] = mapped_column(ForeignKey("schemes.id"), nullable=False, index=True)
    lot_id: Mapped[int] = mapped_column(ForeignKey("lots.id"), nullable=False, index=True)
    levy_period_id: Mapped[int] = mapped_column(
        ForeignKey("levy_periods.id"),
        nullable=False,
        index=True,
    )

    admin_levy_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    capital_levy_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    special_levy_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )
    status: Mapped[LevyItemStatus] = mapped_column(
        SQLEnum(LevyItemStatus),
        nullable=False,
        default=LevyItemStatus.PENDING,
    )
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    notice_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notice_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    period: Mapped["LevyPeriod"] = relationship(  # noqa: F821
        "LevyPeriod",
        back_populates="items",
    )
    lot: Mapped["Lot"] = relationship("Lot")  # noqa: F821
    allocations: Mapped[list["PaymentAllocation"]] = relationship(  # noqa: F821
        "PaymentAllocation",
        back_populates="levy_item",
    )

    __table_args__ = (
        Index("idx_levy_item_lot_due", "lot_id", "due_date"),
        Index("idx_levy_item_period_lot", "levy_period_id", "lot_id", unique=True),
    )

    @property
    def total_levy_amount(self) -> Decimal:
        """Admin + capital works + special levy."""
        total = to_money(self.admin_levy_amount + self.capital_levy_amount)
        return to_money(total + (self.special_levy_amount or ZERO))

    @property
    def balance(self) -> Decimal:
        """Outstanding amount (total - paid)."""
        return to_money(self.total_levy_amount - (self.amount_paid or ZERO))

    def __repr__(self) -> str:
        return (
            f"<LevyItem(id={self.id}, lot_id={self.lot_id}, period_id={self.levy_period_id}, "
            f"total={self.total_levy_amount}, paid={self.amount_paid}, status={self.status})>"
        )


__all__ = ["LevyItem", "LevyItemStatus", "OUTSTANDING_STATUSES"]
