"""Financial year ORM model with fund opening balances."""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from strata.models import Base, BaseModel


class FinancialYear(Base, BaseModel):
    """Reporting year of a scheme."""

    __tablename__ = "financial_years"

    scheme_id: Mapped[int] = mapped_column(ForeignKey("schemes.id"), nullable=False, index=True)
    year_label: Mapped[str] = mapped_column(String(20), nullable=False, comment="e.g., '2026/27'")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(nullable=False, default=False)
    admin_opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )
    capital_opening_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0.00")
    )

    def __repr__(self) -> str:
        return f"<FinancialYear(id={self.id}, label={self.year_label!r}, current={self.is_current})>"


__all__ = ["FinancialYear"]
