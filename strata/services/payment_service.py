"""Payment recording with FIFO allocation to outstanding levy items."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from strata.errors import AppError
from strata.models.levy_item import OUTSTANDING_STATUSES, LevyItem, LevyItemStatus
from strata.models.payment import Payment, PaymentAllocation
from strata.models.scheme import Scheme
from strata.schemas.payments import PaymentCreate
from strata.services.allocation_service import Allocation, AllocationService
from strata.services.audit_service import AuditService
from strata.services.context import RequestContext
from strata.services.ledger_service import ArrearsSummary, summarise_arrears
from strata.services.levy_item_service import LevyItemService
from strata.services.locale_service import format_amount
from strata.services.money import ZERO, to_money
from strata.services.result import Outcome
from strata.services.scheme_service import SchemeService

logger = logging.getLogger(__name__)

NO_OUTSTANDING_NOTE = "No outstanding levy items found for this lot. Payment recorded but not allocated."


@dataclass
class PaymentRecord:
    """A saved payment and how it was allocated."""

    payment: Payment
    allocations: list[Allocation] = field(default_factory=list)
    total_allocated: Decimal = ZERO
    unallocated_amount: Decimal = ZERO
    note: str | None = None


@dataclass
class ArrearsReport:
    items: list[LevyItem]
    summary: ArrearsSummary


class PaymentService:
    """Service for payment operations.

    The payment row is committed before allocation is attempted, so money
    received is never lost when allocation fails; the failure comes back as
    an ``Outcome`` warning instead.
    """

    def __init__(self, db_session: Session, allocation_service: AllocationService | None = None):
        """Initialize with database session."""
        self.db = db_session
        self.allocation_service = allocation_service or AllocationService()
        self.levy_items = LevyItemService(db_session, self.allocation_service)

    def record_payment(
        self, ctx: RequestContext, scheme: Scheme, data: PaymentCreate
    ) -> Outcome[PaymentRecord]:
        """Save a payment for a lot and allocate it oldest-due-first.

        Args:
            ctx: Caller identity, stored as created_by
            scheme: Scheme the payment belongs to
            data: Validated payment payload

        Returns:
            Outcome with the PaymentRecord; warning set when the payment was
            saved but could not be allocated

        Raises:
            NotFoundError: If the lot does not belong to the scheme
        """
        lot = SchemeService(self.db).get_lot(scheme.id, data.lot_id)

        payment = Payment(
            scheme_id=scheme.id,
            lot_id=lot.id,
            amount=to_money(data.amount),
            payment_date=data.payment_date,
            payment_method=data.payment_method,
            reference=data.reference,
            notes=data.notes,
            created_by=ctx.user_id,
        )
        self.db.add(payment)
        self.db.flush()
        AuditService.log(
            self.db,
            "payment",
            payment.id,
            "create",
            actor_id=ctx.user_id,
            changes={"amount": str(payment.amount), "lot_id": lot.id},
        )
        self.db.commit()
        self.db.refresh(payment)
        logger.info("Recorded payment %s of %s for lot %s", payment.id, payment.amount, lot.lot_number)

        try:
            outstanding = self._outstanding_items(scheme.id, lot.id, for_update=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to fetch outstanding items for payment %s: %s", payment.id, e)
            return Outcome(
                PaymentRecord(payment=payment, unallocated_amount=payment.amount),
                warning=f"Payment recorded but FIFO allocation failed: {e}",
            )

        if not outstanding:
            self.db.commit()
            return Outcome(
                PaymentRecord(payment=payment, unallocated_amount=payment.amount, note=NO_OUTSTANDING_NOTE)
            )

        result = self.allocation_service.allocate_fifo(payment.amount, outstanding)

        try:
            for allocation in result.allocations:
                self.db.add(
                    PaymentAllocation(
                        payment_id=payment.id,
                        levy_item_id=allocation.levy_item_id,
                        allocated_amount=allocation.amount,
                    )
                )
            self.levy_items.apply_allocations(a.levy_item_id for a in result.allocations)
            self.db.commit()
        except (SQLAlchemyError, AppError) as e:
            self.db.rollback()
            message = e.message if isinstance(e, AppError) else str(e)
            logger.error("Allocation failed for payment %s: %s", payment.id, message)
            return Outcome(
                PaymentRecord(payment=payment, unallocated_amount=payment.amount),
                warning=f"Payment recorded but allocation failed: {message}",
            )

        self.db.refresh(payment)
        note = None
        if result.unallocated > 0:
            note = (
                f"{format_amount(result.unallocated)} could not be allocated "
                "(no more outstanding levy items). Consider recording a credit."
            )
        return Outcome(
            PaymentRecord(
                payment=payment,
                allocations=result.allocations,
                total_allocated=result.allocated,
                unallocated_amount=result.unallocated,
                note=note,
            )
        )

    def _outstanding_items(self, scheme_id: int, lot_id: int, for_update: bool = False) -> list[LevyItem]:
        query = (
            self.db.query(LevyItem)
            .filter(
                LevyItem.scheme_id == scheme_id,
                LevyItem.lot_id == lot_id,
                LevyItem.status.in_(OUTSTANDING_STATUSES),
            )
            .order_by(LevyItem.due_date, LevyItem.id)
        )
        if for_update:
            # Serializes concurrent payments for the same lot where the backend supports row locks
            query = query.with_for_update()
        return query.all()

    def get_outstanding_items(self, scheme: Scheme, lot_id: int) -> list[LevyItem]:
        """Unpaid levy items for a lot, oldest due first (allocation preview)."""
        SchemeService(self.db).get_lot(scheme.id, lot_id)
        return self._outstanding_items(scheme.id, lot_id)

    def list_payments(self, scheme: Scheme) -> list[Payment]:
        """All payments of a scheme, newest first."""
        return (
            self.db.query(Payment)
            .options(selectinload(Payment.allocations))
            .filter(Payment.scheme_id == scheme.id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .all()
        )

    def list_payments_for_lot(self, scheme: Scheme, lot_id: int) -> list[Payment]:
        """Payment history of one lot, newest first."""
        SchemeService(self.db).get_lot(scheme.id, lot_id)
        return (
            self.db.query(Payment)
            .options(selectinload(Payment.allocations))
            .filter(Payment.scheme_id == scheme.id, Payment.lot_id == lot_id)
            .order_by(Payment.payment_date.desc(), Payment.id.desc())
            .all()
        )

    def get_arrears(self, scheme: Scheme, today: date | None = None) -> ArrearsReport:
        """Overdue and part-paid items with totals and aging buckets."""
        items = (
            self.db.query(LevyItem)
            .filter(
                LevyItem.scheme_id == scheme.id,
                LevyItem.status.in_((LevyItemStatus.OVERDUE, LevyItemStatus.PARTIAL)),
            )
            .order_by(LevyItem.due_date, LevyItem.id)
            .all()
        )
        return ArrearsReport(items=items, summary=summarise_arrears(items, today or date.today()))


__all__ = ["ArrearsReport", "PaymentRecord", "PaymentService", "NO_OUTSTANDING_NOTE"]
