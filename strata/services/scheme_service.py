"""Scheme, lot and financial-year lookups scoped to the caller's organisation."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from strata.errors import ConflictError, InvalidInputError, NotFoundError
from strata.models.financial_year import FinancialYear
from strata.models.scheme import Lot, Scheme
from strata.services.context import RequestContext

logger = logging.getLogger(__name__)


class SchemeService:
    """Service for scheme and lot database operations.

    Every lookup is filtered by the caller's organisation, so a scheme of
    another tenant is indistinguishable from a missing one.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def get_scheme(self, ctx: RequestContext, scheme_id: int) -> Scheme:
        """Fetch a scheme visible to the caller.

        Raises:
            NotFoundError: If the scheme does not exist in the caller's organisation
        """
        scheme = (
            self.db.query(Scheme)
            .filter(Scheme.id == scheme_id, Scheme.organisation_id == ctx.organisation_id)
            .first()
        )
        if scheme is None:
            raise NotFoundError("Scheme not found")
        return scheme

    def list_schemes(self, ctx: RequestContext) -> list[Scheme]:
        return (
            self.db.query(Scheme)
            .filter(Scheme.organisation_id == ctx.organisation_id)
            .order_by(Scheme.scheme_name)
            .all()
        )

    def create_scheme(
        self,
        ctx: RequestContext,
        scheme_name: str,
        scheme_number: str,
        levy_due_day: int = 1,
        **address: str | None,
    ) -> Scheme:
        """Create a scheme in the caller's organisation.

        Raises:
            InvalidInputError: If levy_due_day is outside 1..31
            ConflictError: If the scheme number is already registered
        """
        if not 1 <= levy_due_day <= 31:
            raise InvalidInputError("Levy due day must be between 1 and 31")
        if self.db.query(Scheme).filter(Scheme.scheme_number == scheme_number).first():
            raise ConflictError(f"Scheme number {scheme_number} already exists")

        scheme = Scheme(
            organisation_id=ctx.organisation_id,
            scheme_name=scheme_name,
            scheme_number=scheme_number,
            levy_due_day=levy_due_day,
            **address,
        )
        self.db.add(scheme)
        self.db.commit()
        self.db.refresh(scheme)
        logger.info("Created scheme %s (%s) for organisation %s", scheme.id, scheme_number, ctx.organisation_id)
        return scheme

    def add_lot(
        self,
        scheme: Scheme,
        lot_number: str,
        unit_entitlement: Decimal,
        unit_number: str | None = None,
        owner_name: str | None = None,
        owner_email: str | None = None,
    ) -> Lot:
        """Add a lot to a scheme.

        Raises:
            InvalidInputError: If the unit entitlement is not positive
            ConflictError: If the lot number already exists in the scheme
        """
        if Decimal(str(unit_entitlement)) <= 0:
            raise InvalidInputError("Unit entitlement must be greater than zero")
        if self.db.query(Lot).filter(Lot.scheme_id == scheme.id, Lot.lot_number == lot_number).first():
            raise ConflictError(f"Lot {lot_number} already exists in this scheme")

        lot = Lot(
            scheme_id=scheme.id,
            lot_number=lot_number,
            unit_number=unit_number,
            unit_entitlement=unit_entitlement,
            owner_name=owner_name,
            owner_email=owner_email,
        )
        self.db.add(lot)
        self.db.commit()
        self.db.refresh(lot)
        return lot

    def get_lot(self, scheme_id: int, lot_id: int) -> Lot:
        lot = self.db.query(Lot).filter(Lot.id == lot_id, Lot.scheme_id == scheme_id).first()
        if lot is None:
            raise NotFoundError("Lot not found")
        return lot

    def list_active_lots(self, scheme_id: int) -> list[Lot]:
        return (
            self.db.query(Lot)
            .filter(Lot.scheme_id == scheme_id, Lot.is_active.is_(True))
            .order_by(Lot.lot_number)
            .all()
        )

    def get_financial_year(self, scheme_id: int, financial_year_id: int) -> FinancialYear:
        fy = (
            self.db.query(FinancialYear)
            .filter(FinancialYear.id == financial_year_id, FinancialYear.scheme_id == scheme_id)
            .first()
        )
        if fy is None:
            raise NotFoundError("Financial year not found")
        return fy

    def get_current_financial_year(self, scheme_id: int) -> FinancialYear | None:
        """The financial year flagged current, or None when none is flagged."""
        return (
            self.db.query(FinancialYear)
            .filter(FinancialYear.scheme_id == scheme_id, FinancialYear.is_current.is_(True))
            .first()
        )

    def get_previous_financial_year(self, fy: FinancialYear) -> FinancialYear | None:
        """Latest financial year of the scheme ending before ``fy`` starts."""
        return (
            self.db.query(FinancialYear)
            .filter(FinancialYear.scheme_id == fy.scheme_id, FinancialYear.end_date < fy.start_date)
            .order_by(FinancialYear.end_date.desc())
            .first()
        )


__all__ = ["SchemeService"]
