"""Risk register routes: risks, treatments, review history and dashboards."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from app.core.config import settings
from app.core.context import RequestContext
from app.core.deps import (
    get_request_context,
    get_review_log,
    get_risk_store,
    get_treatment_ledger,
)
from app.core.risk_matrix import (
    build_heat_grid,
    level_distribution,
    overdue_reviews,
    upcoming_reviews,
)
from app.core.time import utc_now
from app.schemas.risk import (
    DeletedResponse,
    MatrixResponse,
    ReviewCreate,
    ReviewResponse,
    RiskCreate,
    RiskDetail,
    RiskSummary,
    RiskUpdate,
    TreatmentCreate,
    TreatmentResponse,
    TreatmentUpdate,
    TrendPoint,
)
from app.services.review_log import ReviewHistoryLog
from app.services.risk_store import RiskStore
from app.services.treatment_ledger import TreatmentLedger

router = APIRouter()


# ============================================================================
# Risks
# ============================================================================

@router.get("/", response_model=List[RiskSummary])
def list_risks(
    risk_level: Optional[str] = Query(None, description="Filter by level (low, medium, high, critical)"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by lifecycle status"),
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """List risks of the current tenant, newest first."""
    return store.list_risks(
        ctx,
        risk_level=risk_level,
        status=status_filter,
        category=category,
        limit=limit,
        offset=offset,
    )


@router.post("/", response_model=RiskDetail, status_code=status.HTTP_201_CREATED)
def create_risk(
    payload: RiskCreate,
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Create a risk; its code and level are assigned by the server."""
    data = payload.model_dump(exclude_unset=True)
    risk = store.create(ctx, data)
    return store.load(ctx, risk.risk_id, with_children=True)


@router.get("/matrix", response_model=MatrixResponse)
def get_risk_matrix(
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """5x5 heat map plus the per-level distribution."""
    risks = store.list_risks(ctx)
    return {
        "total": len(risks),
        "cells": build_heat_grid(risks),
        "distribution": level_distribution(risks),
    }


@router.get("/overdue-reviews", response_model=List[RiskSummary])
def list_overdue_reviews(
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Risks whose next review date has passed, oldest due date first."""
    return overdue_reviews(store.list_risks(ctx), utc_now())


@router.get("/upcoming-reviews", response_model=List[RiskSummary])
def list_upcoming_reviews(
    days: Optional[int] = Query(None, ge=0, le=366, description="Look-ahead window in days"),
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Risks due for review within the look-ahead window."""
    window = settings.UPCOMING_REVIEW_DAYS if days is None else days
    return upcoming_reviews(store.list_risks(ctx), utc_now(), window)


@router.get("/{risk_id}", response_model=RiskDetail)
def get_risk(
    risk_id: int,
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Risk with treatments and review history."""
    return store.get(ctx, risk_id)


@router.patch("/{risk_id}", response_model=RiskDetail)
def update_risk(
    risk_id: int,
    payload: RiskUpdate,
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Partial update; risk_level is recomputed when probability or impact change."""
    store.update(ctx, risk_id, payload.model_dump(exclude_unset=True))
    return store.load(ctx, risk_id, with_children=True)


@router.delete("/{risk_id}", response_model=DeletedResponse)
def delete_risk(
    risk_id: int,
    ctx: RequestContext = Depends(get_request_context),
    store: RiskStore = Depends(get_risk_store),
):
    """Delete a risk with its treatments and review history."""
    store.delete(ctx, risk_id)
    return {"deleted": True}


# ============================================================================
# Treatments
# ============================================================================

@router.get("/{risk_id}/treatments", response_model=List[TreatmentResponse])
def list_treatments(
    risk_id: int,
    ctx: RequestContext = Depends(get_request_context),
    ledger: TreatmentLedger = Depends(get_treatment_ledger),
):
    return ledger.list_treatments(ctx, risk_id)


@router.post(
    "/{risk_id}/treatments",
    response_model=TreatmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_treatment(
    risk_id: int,
    payload: TreatmentCreate,
    ctx: RequestContext = Depends(get_request_context),
    ledger: TreatmentLedger = Depends(get_treatment_ledger),
):
    """Add a planned treatment to a risk."""
    return ledger.add_treatment(
        ctx,
        risk_id,
        payload.description,
        control_implementation_id=payload.control_implementation_id,
    )


@router.patch("/{risk_id}/treatments", response_model=TreatmentResponse)
def update_treatment(
    risk_id: int,
    payload: TreatmentUpdate,
    treatment_id: int = Query(..., alias="id", description="Treatment to update"),
    ctx: RequestContext = Depends(get_request_context),
    ledger: TreatmentLedger = Depends(get_treatment_ledger),
):
    """Change a treatment's status and/or description."""
    return ledger.update_treatment(
        ctx,
        risk_id,
        treatment_id,
        status=payload.status,
        description=payload.description,
    )


@router.delete("/{risk_id}/treatments", response_model=DeletedResponse)
def remove_treatment(
    risk_id: int,
    treatment_id: int = Query(..., alias="id", description="Treatment to remove"),
    ctx: RequestContext = Depends(get_request_context),
    ledger: TreatmentLedger = Depends(get_treatment_ledger),
):
    ledger.remove_treatment(ctx, risk_id, treatment_id)
    return {"deleted": True}


# ============================================================================
# Review history
# ============================================================================

@router.get("/{risk_id}/history", response_model=List[ReviewResponse])
def list_reviews(
    risk_id: int,
    ctx: RequestContext = Depends(get_request_context),
    review_log: ReviewHistoryLog = Depends(get_review_log),
):
    """Review entries, oldest first."""
    return review_log.list_reviews(ctx, risk_id)


@router.post(
    "/{risk_id}/history",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_review(
    risk_id: int,
    payload: ReviewCreate,
    ctx: RequestContext = Depends(get_request_context),
    review_log: ReviewHistoryLog = Depends(get_review_log),
):
    """Record a reassessment without changing the risk's current assessment."""
    return review_log.record_review(
        ctx,
        risk_id,
        probability=payload.probability,
        impact=payload.impact,
        status=payload.status,
        residual_probability=payload.residual_probability,
        residual_impact=payload.residual_impact,
        review_notes=payload.review_notes,
    )


@router.get("/{risk_id}/history/trend", response_model=List[TrendPoint])
def get_review_trend(
    risk_id: int,
    ctx: RequestContext = Depends(get_request_context),
    review_log: ReviewHistoryLog = Depends(get_review_log),
):
    """Score over time, one point per review entry."""
    return review_log.trend(ctx, risk_id)


@router.post("/{risk_id}/history/{review_id}/apply", response_model=RiskDetail)
def apply_review(
    risk_id: int,
    review_id: int,
    ctx: RequestContext = Depends(get_request_context),
    review_log: ReviewHistoryLog = Depends(get_review_log),
    store: RiskStore = Depends(get_risk_store),
):
    """Make a recorded review the risk's current assessment."""
    review_log.apply_review(ctx, risk_id, review_id)
    return store.load(ctx, risk_id, with_children=True)
