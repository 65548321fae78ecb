"""SQLAlchemy base model with common fields and model exports."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Base class for all models
Base = declarative_base()


class BaseModel:
    """Base model with common timestamp fields."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


# Import models to register them with Base (after Base is defined)
# This must be after Base declaration to avoid circular imports
from strata.models.account import AccountType, ChartOfAccount, FundType  # noqa: E402
from strata.models.audit_log import AuditLog  # noqa: E402
from strata.models.budget import Budget, BudgetLineItem, BudgetStatus  # noqa: E402
from strata.models.financial_year import FinancialYear  # noqa: E402
from strata.models.levy_item import LevyItem, LevyItemStatus  # noqa: E402
from strata.models.levy_period import LevyPeriod, LevyPeriodStatus  # noqa: E402
from strata.models.levy_schedule import LevyFrequency, LevySchedule  # noqa: E402
from strata.models.payment import Payment, PaymentAllocation, PaymentMethod  # noqa: E402
from strata.models.scheme import Lot, Scheme  # noqa: E402
from strata.models.transaction import (  # noqa: E402
    LineType,
    Transaction,
    TransactionLine,
    TransactionType,
)

__all__ = [
    "Base",
    "BaseModel",
    "AccountType",
    "AuditLog",
    "Budget",
    "BudgetLineItem",
    "BudgetStatus",
    "ChartOfAccount",
    "FinancialYear",
    "FundType",
    "LevyFrequency",
    "LevyItem",
    "LevyItemStatus",
    "LevyPeriod",
    "LevyPeriodStatus",
    "LevySchedule",
    "LineType",
    "Lot",
    "Payment",
    "PaymentAllocation",
    "PaymentMethod",
    "Scheme",
    "Transaction",
    "TransactionLine",
    "TransactionType",
]
