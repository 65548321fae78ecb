"""Payment and payment allocation ORM models."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel


class PaymentMethod(str, Enum):
    """How the money was received."""

    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CASH = "cash"
    DIRECT_DEBIT = "direct_debit"
    BPAY = "bpay"


class Payment(Base, BaseModel):
    """Money received for a lot.

    Immutable once recorded; corrections are new payments, not edits.
    """

    __tablename__ = "payments"

    scheme_id: Mapped[int] = mapped_column(ForeignKey("schemes.id"), nullable=False, index=True)
    lot_id: Mapped[int] = mapped_column(ForeignKey("lots.id"), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(SQLEnum(PaymentMethod), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(nullable=True)

    allocations: Mapped[list["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
    )
    lot: Mapped["Lot"] = relationship("Lot")  # noqa: F821

    __table_args__ = (Index("idx_payment_scheme_date", "scheme_id", "payment_date"),)

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, lot_id={self.lot_id}, amount={self.amount}, date={self.payment_date})>"


class PaymentAllocation(Base, BaseModel):
    """Portion of a payment applied to one levy item.

    Written only by the FIFO allocation pass and never edited afterwards.
    """

    __tablename__ = "payment_allocations"

    payment_id: Mapped[int] = mapped_column(ForeignKey("payments.id"), nullable=False, index=True)
    levy_item_id: Mapped[int] = mapped_column(ForeignKey("levy_items.id"), nullable=False, index=True)
    allocated_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment: Mapped["Payment"] = relationship("Payment", back_populates="allocations")
    levy_item: Mapped["LevyItem"] = relationship(  # noqa: F821
        "LevyItem",
        back_populates="allocations",
    )

    def __repr__(self) -> str:
        return (
            f"<PaymentAllocation(id={self.id}, payment_id={self.payment_id}, "
            f"levy_item_id={self.levy_item_id}, amount={self.allocated_amount})>"
        )


__all__ = ["Payment", "PaymentAllocation", "PaymentMethod"]
