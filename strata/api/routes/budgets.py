"""Budget lifecycle and budget-vs-actual API routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from strata.api.deps import get_request_context, get_scheme
from strata.api.responses import envelope
from strata.models.account import FundType
from strata.models.scheme import Scheme
from strata.schemas.budgets import (
    BudgetApprove,
    BudgetCreate,
    BudgetLineItemUpdate,
    BudgetResponse,
    BudgetVsActualRowResponse,
    LineItemTotalResponse,
)
from strata.services import get_db
from strata.services.budget_service import BudgetService
from strata.services.context import RequestContext

router = APIRouter(prefix="/api/schemes/{scheme_id}", tags=["budgets"])


@router.get("/budgets")
async def list_budgets(
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    budgets = BudgetService(db).list_budgets(scheme)
    return envelope([BudgetResponse.model_validate(b) for b in budgets])


@router.post("/budgets", status_code=status.HTTP_201_CREATED)
async def create_budget(
    payload: BudgetCreate,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Create a draft budget with one line per category of the fund.

    Returns:
        201: Budget with line items; ``warning`` set if line items failed
        404: Financial year not found
        409: A budget already exists for the year and fund
    """
    outcome = BudgetService(db).create_budget(ctx, scheme, payload)
    return envelope(BudgetResponse.model_validate(outcome.value), outcome.warning)


@router.get("/budgets/{budget_id}")
async def get_budget(
    budget_id: int,
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    budget = BudgetService(db).get_budget(scheme, budget_id)
    return envelope(BudgetResponse.model_validate(budget))


@router.patch("/budgets/line-items/{line_item_id}")
async def update_line_item(
    line_item_id: int,
    payload: BudgetLineItemUpdate,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """Set a line's budgeted amount; returns the recomputed budget total."""
    result = BudgetService(db).update_line_item(ctx, scheme, line_item_id, payload)
    return envelope(LineItemTotalResponse(line_item_id=result.line_item_id, total_amount=result.total_amount))


@router.post("/budgets/{budget_id}/submit")
async def submit_budget(
    budget_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    budget = BudgetService(db).submit_for_review(ctx, scheme, budget_id)
    return envelope(BudgetResponse.model_validate(budget))


@router.post("/budgets/{budget_id}/approve")
async def approve_budget(
    budget_id: int,
    payload: BudgetApprove | None = None,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    """
    Approve a draft or review budget.

    Returns:
        200: Approved budget
        409: Budget is not in draft or review
    """
    approved_at = payload.approved_at if payload else None
    budget = BudgetService(db).approve_budget(ctx, scheme, budget_id, approved_at)
    return envelope(BudgetResponse.model_validate(budget))


@router.post("/budgets/{budget_id}/amend")
async def amend_budget(
    budget_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    budget = BudgetService(db).amend_budget(ctx, scheme, budget_id)
    return envelope(BudgetResponse.model_validate(budget))


@router.delete("/budgets/{budget_id}")
async def delete_budget(
    budget_id: int,
    scheme: Scheme = Depends(get_scheme),
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
):
    BudgetService(db).delete_budget(ctx, scheme, budget_id)
    return envelope({"deleted": True})


@router.get("/budget-vs-actual")
async def budget_vs_actual(
    financial_year_id: int = Query(...),
    fund_type: FundType = Query(FundType.ADMIN),
    scheme: Scheme = Depends(get_scheme),
    db: Session = Depends(get_db),
):
    """Budgeted against actual spend per category, with variance status."""
    rows = BudgetService(db).budget_vs_actual(scheme, financial_year_id, fund_type)
    return envelope([BudgetVsActualRowResponse.model_validate(row) for row in rows])
