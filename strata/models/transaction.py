"""Trust transaction and double-entry line ORM models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel
from strata.models.account import FundType


class TransactionType(str, Enum):
    """Direction of a trust transaction."""

    RECEIPT = "receipt"
    PAYMENT = "payment"
    JOURNAL = "journal"


class LineType(str, Enum):
    """Side of a double-entry posting."""

    DEBIT = "debit"
    CREDIT = "credit"


class Transaction(Base, BaseModel):
    """Trust account transaction.

    Soft-deleted rows (``deleted_at`` set) are excluded from every report.
    """

    __tablename__ = "transactions"

    scheme_id: Mapped[int] = mapped_column(ForeignKey("schemes.id"), nullable=False, index=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(SQLEnum(TransactionType), nullable=False)
    fund_type: Mapped[FundType] = mapped_column(SQLEnum(FundType), nullable=False)
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("chart_of_accounts.id"),
        nullable=True,
        index=True,
        comment="Reporting category (income or expense account)",
    )
    lot_id: Mapped[int | None] = mapped_column(ForeignKey("lots.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    category: Mapped["ChartOfAccount | None"] = relationship("ChartOfAccount")  # noqa: F821
    lot: Mapped["Lot | None"] = relationship("Lot")  # noqa: F821
    lines: Mapped[list["TransactionLine"]] = relationship(
        "TransactionLine",
        back_populates="transaction",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_transaction_scheme_date", "scheme_id", "transaction_date"),)

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, type={self.transaction_type}, fund={self.fund_type}, "
            f"amount={self.amount}, date={self.transaction_date})>"
        )


class TransactionLine(Base, BaseModel):
    """Immutable double-entry posting of a transaction."""

    __tablename__ = "transaction_lines"

    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id"), nullable=False, index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("chart_of_accounts.id"), nullable=False, index=True)
    line_type: Mapped[LineType] = mapped_column(SQLEnum(LineType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    transaction: Mapped["Transaction"] = relationship("Transaction", back_populates="lines")
    account: Mapped["ChartOfAccount"] = relationship("ChartOfAccount")  # noqa: F821

    def __repr__(self) -> str:
        return (
            f"<TransactionLine(id={self.id}, account_id={self.account_id}, "
            f"{self.line_type}={self.amount})>"
        )


__all__ = ["Transaction", "TransactionLine", "TransactionType", "LineType"]
