"""Scheme and lot ORM models: the tenant anchor every levy row hangs off."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from strata.models import Base, BaseModel


class Scheme(Base, BaseModel):
    """A strata scheme (body corporate) owned by a managing organisation."""

    __tablename__ = "schemes"

    organisation_id: Mapped[int] = mapped_column(
        nullable=False,
        index=True,
        comment="Managing organisation (tenant) identifier",
    )
    scheme_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scheme_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Strata plan number (e.g., 'SP12345')",
    )
    street_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    suburb: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    postcode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    levy_due_day: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        comment="Day of month levies fall due (clamped to month length)",
    )

    lots: Mapped[list["Lot"]] = relationship(
        "Lot",
        back_populates="scheme",
        cascade="all, delete-orphan",
    )

    @property
    def address(self) -> str:
        """Single-line postal address."""
        locality = " ".join(part for part in (self.suburb, self.state, self.postcode) if part)
        return ", ".join(part for part in (self.street_address, locality) if part)

    @property
    def total_lot_entitlement(self) -> Decimal:
        """Sum of unit entitlements of active lots."""
        return sum((lot.unit_entitlement for lot in self.lots if lot.is_active), Decimal("0"))

    def __repr__(self) -> str:
        return f"<Scheme(id={self.id}, number={self.scheme_number!r}, org={self.organisation_id})>"


class Lot(Base, BaseModel):
    """A lot within a scheme, levied by unit entitlement."""

    __tablename__ = "lots"

    scheme_id: Mapped[int] = mapped_column(
        ForeignKey("schemes.id"),
        nullable=False,
        index=True,
    )
    lot_number: Mapped[str] = mapped_column(String(20), nullable=False)
    unit_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    unit_entitlement: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Share of scheme entitlement used to split levies",
    )
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    # Primary contact for levy notices
    owner_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    owner_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    scheme: Mapped["Scheme"] = relationship("Scheme", back_populates="lots")

    __table_args__ = (Index("idx_lot_scheme_number", "scheme_id", "lot_number", unique=True),)

    def __repr__(self) -> str:
        return f"<Lot(id={self.id}, scheme_id={self.scheme_id}, lot_number={self.lot_number!r})>"


__all__ = ["Scheme", "Lot"]
