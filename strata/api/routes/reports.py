"""Financial report API routes."""

import base64
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from strata.api.deps import get_blob_store, get_document_renderer, get_request_context, get_scheme
from strata.api.responses import envelope
from strata.config import get_settings
from strata.models.account import FundType
from strata.models.scheme import Scheme
from strata.schemas.reports import (
    CategoryTransactionsResponse,
    LevyRollResponse,
    ReportExportRequest,
    ReportExportResponse,
)
from strata.services import get_db
from strata.services.collaborators import BlobStore, DocumentRenderer
from strata.services.context import RequestContext
from strata.services.dates import financial_year_bounds
from strata.services.report_service import ReportService

router = APIRouter(prefix="/api/schemes/{scheme_id}/reports", tags=["reports"])


@router.get("/trial-balance")
async def trial_balance(
    as_at: date | None = Query(None, description="Include transactions up to this date"),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    return envelope(ReportService(db).trial_balance(scheme, as_at))


@router.get("/fund-summary")
async def fund_summary(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Opening, receipts, payments and closing balance for both funds."""
    summary = ReportService(db).fund_balance_summary(scheme, start_date, end_date)
    return envelope(summary.as_list())


@router.get("/income-statement")
async def income_statement(
    start_date: date | None = Query(None, description="Default: start of the current financial year"),
    end_date: date | None = Query(None, description="Default: end of the current financial year"),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    default_start, default_end = financial_year_bounds(date.today(), get_settings().financial_year_start_month)
    statement = ReportService(db).income_statement(scheme, start_date or default_start, end_date or default_end)
    return envelope(statement)


@router.get("/categories/{category_id}/transactions")
async def transactions_by_category(
    category_id: int,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Drill-down from a report line to its transactions."""
    result = ReportService(db).transactions_by_category(scheme, category_id, start_date, end_date)
    return envelope(CategoryTransactionsResponse.model_validate(result))


@router.get("/ledger-balance")
async def ledger_balance(
    fund_type: FundType = Query(FundType.ADMIN),
    as_at: date | None = Query(None),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Balance of the fund's trust bank account."""
    return envelope(ReportService(db).ledger_balance(scheme, fund_type, as_at))


@router.get("/levy-roll/{period_id}")
async def levy_roll(
    period_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    roll = ReportService(db).levy_roll(scheme, period_id)
    return envelope(LevyRollResponse.model_validate(roll))


@router.post("/export")
async def export_report(
    payload: ReportExportRequest,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
    renderer: DocumentRenderer = Depends(get_document_renderer),
    blob_store: BlobStore = Depends(get_blob_store),
):
    """
    Render a report document, optionally saving it to storage.

    Returns:
        200: File name with either the inline content (base64) or the
             storage path and a signed URL; ``warning`` set when storage
             failed after rendering
        400: Missing report parameter
        404: Referenced period, year or budget not found
    """
    outcome = await ReportService(db).export_report(ctx, scheme, payload, renderer, blob_store)
    export = outcome.value
    response = ReportExportResponse(
        file_name=export.file_name,
        saved=export.saved,
        url=export.url,
        storage_path=export.storage_path,
        content_base64=base64.b64encode(export.content).decode("ascii") if export.content else None,
    )
    return envelope(response, outcome.warning)
