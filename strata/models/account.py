"""Chart of accounts ORM model."""

from enum import Enum

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from strata.models import Base, BaseModel


class AccountType(str, Enum):
    """General ledger account classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class FundType(str, Enum):
    """Trust fund a levy, transaction or budget belongs to."""

    ADMIN = "admin"
    CAPITAL_WORKS = "capital_works"


class ChartOfAccount(Base, BaseModel):
    """General ledger account / reporting category.

    Rows with ``scheme_id`` NULL are organisation-wide defaults; a scheme may
    override a default by defining an account with the same code.
    """

    __tablename__ = "chart_of_accounts"

    scheme_id: Mapped[int | None] = mapped_column(
        ForeignKey("schemes.id"),
        nullable=True,
        index=True,
        comment="Owning scheme (NULL for defaults)",
    )
    code: Mapped[str] = mapped_column(String(20), nullable=False, comment="Account code (e.g., '4100')")
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(SQLEnum(AccountType), nullable=False)
    fund_type: Mapped[FundType | None] = mapped_column(SQLEnum(FundType), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    __table_args__ = (Index("idx_chart_scheme_code", "scheme_id", "code"),)

    def __repr__(self) -> str:
        return f"<ChartOfAccount(id={self.id}, code={self.code!r}, type={self.account_type})>"


__all__ = ["ChartOfAccount", "AccountType", "FundType"]
