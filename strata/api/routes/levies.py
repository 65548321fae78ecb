"""Levy schedule, period, item and notice API routes."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from strata.api.deps import (
    get_blob_store,
    get_document_renderer,
    get_email_sender,
    get_request_context,
    get_scheme,
)
from strata.api.responses import envelope
from strata.models.scheme import Scheme
from strata.schemas.levies import (
    LevyCalculationResponse,
    LevyItemResponse,
    LevyPeriodResponse,
    LevyScheduleCreate,
    LevyScheduleResponse,
    NoticeBatchResponse,
    NoticeResultResponse,
)
from strata.services import get_db
from strata.services.collaborators import BlobStore, DocumentRenderer, EmailSender
from strata.services.context import RequestContext
from strata.services.levy_item_service import LevyItemService
from strata.services.levy_schedule_service import LevyScheduleService
from strata.services.notice_service import NoticeBatch, NoticeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schemes/{scheme_id}", tags=["levies"])


def _batch_response(batch: NoticeBatch) -> NoticeBatchResponse:
    return NoticeBatchResponse(
        results=[NoticeResultResponse(**vars(r)) for r in batch.results],
        succeeded=batch.succeeded,
        failed=batch.failed,
    )


def _notice_service(db, blob_store, email_sender, renderer) -> NoticeService:
    return NoticeService(db, blob_store=blob_store, email_sender=email_sender, renderer=renderer)


@router.get("/levy-schedules")
async def list_schedules(
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """List the scheme's levy schedules, newest budget year first."""
    schedules = LevyScheduleService(db).list_schedules(scheme)
    return envelope([LevyScheduleResponse.model_validate(s) for s in schedules])


@router.post("/levy-schedules", status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: LevyScheduleCreate,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Create a levy schedule and generate its billing periods.

    Returns:
        201: Schedule with periods; ``warning`` set if periods failed
        400: Invalid schedule terms
        409: An active schedule already exists for the budget year
    """
    outcome = LevyScheduleService(db).create_schedule(ctx, scheme, payload)
    return envelope(LevyScheduleResponse.model_validate(outcome.value), outcome.warning)


@router.get("/levy-schedules/{schedule_id}")
async def get_schedule(
    schedule_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    schedule = LevyScheduleService(db).get_schedule(scheme, schedule_id)
    return envelope(LevyScheduleResponse.model_validate(schedule))


@router.put("/levy-schedules/{schedule_id}")
async def update_schedule(
    schedule_id: int,
    payload: LevyScheduleCreate,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Replace a schedule's terms and regenerate its periods.

    Returns:
        200: Updated schedule
        409: Levies have already been raised against the schedule
    """
    schedule = LevyScheduleService(db).update_schedule(ctx, scheme, schedule_id, payload)
    return envelope(LevyScheduleResponse.model_validate(schedule))


@router.delete("/levy-schedules/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Delete a schedule, or deactivate it when levies reference it."""
    deleted = LevyScheduleService(db).delete_schedule(ctx, scheme, schedule_id)
    return envelope({"deleted": deleted, "deactivated": not deleted})


@router.get("/levy-periods/{period_id}")
async def get_period(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    period = LevyItemService(db).get_period(scheme, period_id)
    return envelope(LevyPeriodResponse.model_validate(period))


@router.post("/levy-periods/{period_id}/calculate", status_code=status.HTTP_201_CREATED)
async def calculate_levies(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Raise one levy item per active lot for the period.

    Returns:
        201: Number of items created and any rounding note
        400: Scheme has no active lots
        409: Levies already calculated for the period
    """
    result = LevyItemService(db).calculate_levies_for_period(ctx, scheme, period_id)
    return envelope(LevyCalculationResponse.model_validate(result))


@router.get("/levy-periods/{period_id}/items")
async def list_period_items(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    service = LevyItemService(db)
    period = service.get_period(scheme, period_id)
    items = service.list_items_for_period(period.id)
    return envelope([LevyItemResponse.model_validate(item) for item in items])


@router.post("/levy-items/mark-overdue")
async def mark_overdue(
    as_of: date | None = Query(None, description="Reference date (default: today)"),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Flag unpaid items whose due date has passed."""
    updated = LevyItemService(db).mark_overdue(scheme, as_of or date.today())
    return envelope({"updated": updated})


@router.post("/levy-items/{item_id}/notice")
async def generate_notice(
    item_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
    renderer: DocumentRenderer = Depends(get_document_renderer),
):
    """
    Render and store a levy notice for one item.

    Returns:
        200: Storage path of the notice
        502: Upload failed
    """
    service = _notice_service(db, blob_store, email_sender, renderer)
    outcome = await service.generate_notice(ctx, scheme, item_id)
    return envelope({"storage_path": outcome.value}, outcome.warning)


@router.post("/levy-items/{item_id}/notice/send")
async def send_notice(
    item_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
    renderer: DocumentRenderer = Depends(get_document_renderer),
):
    """
    Email a levy notice to the lot's contact, generating it first if needed.

    Returns:
        200: Email message id
        400: Lot has no contact email
        502: Storage or email provider failed
    """
    service = _notice_service(db, blob_store, email_sender, renderer)
    outcome = await service.send_notice(ctx, scheme, item_id)
    return envelope({"email_id": outcome.value}, outcome.warning)


@router.post("/levy-periods/{period_id}/notices")
async def generate_period_notices(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
    renderer: DocumentRenderer = Depends(get_document_renderer),
):
    service = _notice_service(db, blob_store, email_sender, renderer)
    batch = await service.generate_all_notices_for_period(ctx, scheme, period_id)
    return envelope(_batch_response(batch))


@router.post("/levy-periods/{period_id}/notices/send")
async def send_period_notices(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    email_sender: EmailSender = Depends(get_email_sender),
    renderer: DocumentRenderer = Depends(get_document_renderer),
):
    """
    Email every generated notice of a period.

    Returns:
        200: Per-item results
        409: No notices have been generated for the period
    """
    service = _notice_service(db, blob_store, email_sender, renderer)
    batch = await service.send_all_notices_for_period(ctx, scheme, period_id)
    logger.info("Sent notices for period %s: %d succeeded, %d failed", period_id, batch.succeeded, batch.failed)
    return envelope(_batch_response(batch))
