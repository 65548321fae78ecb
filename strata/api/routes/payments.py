"""Payment recording, lot history and arrears API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from strata.api.deps import get_request_context, get_scheme
from strata.api.responses import envelope
from strata.models.scheme import Scheme
from strata.schemas.levies import LevyItemResponse
from strata.schemas.payments import (
    AllocationLine,
    PaymentCreate,
    PaymentResponse,
    RecordPaymentResponse,
)
from strata.services import get_db
from strata.services.context import RequestContext
from strata.services.payment_service import PaymentRecord, PaymentService
from strata.services.scheme_service import SchemeService

router = APIRouter(prefix="/api/schemes/{scheme_id}", tags=["payments"])


def _record_response(record: PaymentRecord) -> RecordPaymentResponse:
    return RecordPaymentResponse(
        payment=PaymentResponse.model_validate(record.payment),
        allocations=[AllocationLine.model_validate(a) for a in record.allocations],
        total_allocated=record.total_allocated,
        unallocated_amount=record.unallocated_amount,
        note=record.note,
    )


@router.post("/payments", status_code=status.HTTP_201_CREATED)
async def record_payment(
    payload: PaymentCreate,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Record a payment and allocate it to the lot's oldest outstanding levies.

    Returns:
        201: Payment, allocations and any unallocated remainder; ``warning``
             set when the payment was saved but allocation failed
        400: Invalid payment
        404: Lot not found in the scheme
    """
    outcome = PaymentService(db).record_payment(ctx, scheme, payload)
    return envelope(_record_response(outcome.value), outcome.warning)


@router.get("/payments")
async def list_payments(
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    payments = PaymentService(db).list_payments(scheme)
    return envelope([PaymentResponse.model_validate(p) for p in payments])


@router.get("/lots/{lot_id}/payments")
async def list_lot_payments(
    lot_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Payment history of one lot, newest first."""
    lot = SchemeService(db).get_lot(scheme.id, lot_id)
    payments = PaymentService(db).list_payments_for_lot(scheme, lot.id)
    return envelope([PaymentResponse.model_validate(p) for p in payments])


@router.get("/lots/{lot_id}/outstanding-items")
async def list_outstanding_items(
    lot_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Unpaid levy items of a lot in the order payments are applied to them."""
    lot = SchemeService(db).get_lot(scheme.id, lot_id)
    items = PaymentService(db).get_outstanding_items(scheme, lot.id)
    return envelope([LevyItemResponse.model_validate(item) for item in items])


@router.get("/arrears")
async def get_arrears(
    as_of: date | None = Query(None, description="Reference date for aging (default: today)"),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Overdue and part-paid levies with aging buckets."""
    report = PaymentService(db).get_arrears(scheme, as_of)
    return envelope(
        {
            "items": [LevyItemResponse.model_validate(item) for item in report.items],
            "summary": report.summary,
        }
    )
