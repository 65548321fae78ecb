"""Levy item bookkeeping: calculation per period and paid/status maintenance."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session, joinedload

from strata.errors import ConflictError, InvalidInputError, NotFoundError, OverAllocationError
from strata.models.levy_item import LevyItem, LevyItemStatus
from strata.models.levy_period import LevyPeriod, LevyPeriodStatus
from strata.models.levy_schedule import LevySchedule
from strata.models.payment import PaymentAllocation
from strata.models.scheme import Lot, Scheme
from strata.services.allocation_service import AllocationService
from strata.services.audit_service import AuditService
from strata.services.context import RequestContext
from strata.services.locale_service import format_amount
from strata.services.money import ZERO, money_add, to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevyCalculation:
    """Result of raising levies for a period."""

    items_created: int
    rounding_note: str | None = None


class LevyItemService:
    """Service for levy item operations.

    Owns the derived bookkeeping on levy items: ``amount_paid`` is always the
    sum of the item's allocations and ``status`` follows from it.
    """

    def __init__(self, db_session: Session, allocation_service: AllocationService | None = None):
        """Initialize with database session."""
        self.db = db_session
        self.allocation_service = allocation_service or AllocationService()

    def get_period(self, scheme: Scheme, period_id: int) -> LevyPeriod:
        """Fetch a levy period belonging to one of the scheme's schedules.

        Raises:
            NotFoundError: If no such period exists for the scheme
        """
        period = (
            self.db.query(LevyPeriod)
            .join(LevySchedule, LevyPeriod.levy_schedule_id == LevySchedule.id)
            .filter(LevyPeriod.id == period_id, LevySchedule.scheme_id == scheme.id)
            .first()
        )
        if period is None:
            raise NotFoundError("Levy period not found")
        return period

    def list_items_for_period(self, period_id: int) -> list[LevyItem]:
        """Levy items of a period ordered by lot number."""
        return (
            self.db.query(LevyItem)
            .join(Lot, LevyItem.lot_id == Lot.id)
            .options(joinedload(LevyItem.lot))
            .filter(LevyItem.levy_period_id == period_id)
            .order_by(Lot.lot_number)
            .all()
        )

    def get_item(self, scheme: Scheme, item_id: int) -> LevyItem:
        item = (
            self.db.query(LevyItem)
            .filter(LevyItem.id == item_id, LevyItem.scheme_id == scheme.id)
            .first()
        )
        if item is None:
            raise NotFoundError("Levy item not found")
        return item

    def calculate_levies_for_period(
        self, ctx: RequestContext, scheme: Scheme, period_id: int
    ) -> LevyCalculation:
        """Create one levy item per active lot for the period.

        The schedule's annual fund totals are divided evenly across its
        periods, then split between lots by unit entitlement. Each split is
        sum-preserving to the cent; any difference between the rounded
        per-period amounts and the annual totals is reported in a note.

        Raises:
            NotFoundError: If the period does not belong to the scheme
            ConflictError: If levies were already calculated for the period
            InvalidInputError: If the scheme has no active lots
        """
        period = self.get_period(scheme, period_id)

        existing = self.db.query(LevyItem).filter(LevyItem.levy_period_id == period.id).count()
        if existing:
            logger.warning("Levies already calculated for period %s (%d items)", period.id, existing)
            raise ConflictError("Levies have already been calculated for this period")

        lots = (
            self.db.query(Lot)
            .filter(Lot.scheme_id == scheme.id, Lot.is_active.is_(True))
            .order_by(Lot.lot_number)
            .all()
        )
        if not lots:
            raise InvalidInputError("No active lots found for this scheme")

        schedule = period.schedule
        ppy = schedule.periods_per_year
        admin_per_period = to_money(Decimal(schedule.admin_fund_total) / ppy)
        capital_per_period = to_money(Decimal(schedule.capital_works_fund_total) / ppy)

        shares = {lot.id: lot.unit_entitlement for lot in lots}
        admin_split = self.allocation_service.distribute_with_remainder(admin_per_period, shares)
        capital_split = self.allocation_service.distribute_with_remainder(capital_per_period, shares)

        for lot in lots:
            self.db.add(
                LevyItem(
                    scheme_id=scheme.id,
                    lot_id=lot.id,
                    levy_period_id=period.id,
                    admin_levy_amount=admin_split[lot.id],
                    capital_levy_amount=capital_split[lot.id],
                    amount_paid=ZERO,
                    status=LevyItemStatus.PENDING,
                    due_date=period.due_date,
                )
            )
        period.status = LevyPeriodStatus.ACTIVE

        AuditService.log(
            self.db,
            "levy_period",
            period.id,
            "calculate",
            actor_id=ctx.user_id,
            changes={"items_created": len(lots)},
        )
        self.db.commit()

        note = self._rounding_note(
            ppy,
            [
                ("admin fund", admin_per_period, schedule.admin_fund_total),
                ("capital works fund", capital_per_period, schedule.capital_works_fund_total),
            ],
        )
        logger.info("Calculated levies for period %s: %d items", period.id, len(lots))
        return LevyCalculation(items_created=len(lots), rounding_note=note)

    @staticmethod
    def _rounding_note(periods_per_year: int, funds) -> str | None:
        parts = []
        for label, per_period, annual in funds:
            billed = to_money(per_period * periods_per_year)
            if billed != to_money(annual):
                parts.append(
                    f"{label}: {periods_per_year} x {format_amount(per_period)} = "
                    f"{format_amount(billed)} against an annual total of {format_amount(annual)}"
                )
        if not parts:
            return None
        return "Per-period amounts were rounded to the cent (" + "; ".join(parts) + ")."

    def apply_allocations(self, levy_item_ids) -> list[LevyItem]:
        """Recompute amount_paid and status for the given items from their allocations.

        Must run in the same unit of work that wrote the allocations; nothing
        is committed here.

        Raises:
            OverAllocationError: If allocations against an item exceed its total levy
        """
        ids = sorted(set(levy_item_ids))
        if not ids:
            return []
        self.db.flush()

        paid: dict[int, Decimal] = {item_id: ZERO for item_id in ids}
        rows = (
            self.db.query(PaymentAllocation.levy_item_id, PaymentAllocation.allocated_amount)
            .filter(PaymentAllocation.levy_item_id.in_(ids))
            .all()
        )
        for item_id, amount in rows:
            paid[item_id] = money_add(paid[item_id], amount)

        items = self.db.query(LevyItem).filter(LevyItem.id.in_(ids)).all()
        for item in items:
            total_paid = paid[item.id]
            if total_paid > item.total_levy_amount:
                raise OverAllocationError(
                    f"Allocations of {total_paid} exceed the levy total of "
                    f"{item.total_levy_amount} for levy item {item.id}"
                )
            item.amount_paid = total_paid
            item.status = self._status_for(item)
        return items

    @staticmethod
    def _status_for(item: LevyItem) -> LevyItemStatus:
        if item.amount_paid >= item.total_levy_amount:
            return LevyItemStatus.PAID
        if item.amount_paid > 0:
            return LevyItemStatus.PARTIAL
        if item.status in (LevyItemStatus.PAID, LevyItemStatus.PARTIAL):
            return LevyItemStatus.PENDING
        return item.status

    def mark_overdue(self, scheme: Scheme, as_of: date) -> int:
        """Flag unpaid pending or sent items due before ``as_of`` as overdue.

        Returns:
            Number of items updated
        """
        items = (
            self.db.query(LevyItem)
            .filter(
                LevyItem.scheme_id == scheme.id,
                LevyItem.status.in_((LevyItemStatus.PENDING, LevyItemStatus.SENT)),
                LevyItem.due_date < as_of,
            )
            .all()
        )
        for item in items:
            item.status = LevyItemStatus.OVERDUE
        self.db.commit()
        if items:
            logger.info("Marked %d levy items overdue for scheme %s as of %s", len(items), scheme.id, as_of)
        return len(items)


__all__ = ["LevyCalculation", "LevyItemService"]
