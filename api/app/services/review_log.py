"""Review History Log.

Append-only journal of periodic reassessments. Recording a review never
changes the risk's current probability, impact or status; promoting a
review to the current assessment is the separate ``apply_review`` step, so
point-in-time submissions and the accepted current state stay distinct in
the audit trail.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from app.core.context import RequestContext
from app.core.exceptions import NotFoundError
from app.core.review_schedule import calculate_next_review_date
from app.core.risk_constants import RiskStatus, parse_enum
from app.core.risk_scoring import (
    calculate_risk_score,
    residual_risk_score,
    risk_level,
    validate_assessment,
    validate_residual,
)
from app.core.time import utc_now
from app.models.risk import Risk, RiskReviewEntry
from app.services.audit import ACTION_APPLY_REVIEW, ACTION_CREATE
from app.services.risk_store import RiskStore

logger = logging.getLogger(__name__)

ENTITY_TYPE = "RiskReviewEntry"


@dataclass(frozen=True)
class ReviewTrendPoint:
    review_id: int
    reviewed_at: datetime
    probability: int
    impact: int
    risk_score: int
    risk_level: str
    residual_risk_score: Optional[int]
    residual_risk_level: Optional[str]
    status: str


class ReviewHistoryLog:
    """Records and reads review entries for risks in the caller's tenant."""

    def __init__(self, store: RiskStore):
        self.store = store
        self.db = store.db

    def record_review(
        self,
        ctx: RequestContext,
        risk_id: int,
        probability: int,
        impact: int,
        status: str,
        residual_probability: Optional[int] = None,
        residual_impact: Optional[int] = None,
        review_notes: Optional[str] = None,
    ) -> RiskReviewEntry:
        """
        Append an immutable review entry.

        The entry's risk_level is computed now and never recomputed. The
        parent risk only gets its review dates stamped: last_review_date
        becomes now and, with a monitoring frequency set, next_review_date
        moves one period ahead.
        """
        self.store._require(ctx, "update")
        risk = self.store.load(ctx, risk_id)

        probability, impact = validate_assessment(probability, impact)
        validate_residual(residual_probability, residual_impact)
        status_value = parse_enum(RiskStatus, status, "status").value

        now = utc_now()
        entry = RiskReviewEntry(
            tenant_id=ctx.tenant_id,
            risk_id=risk.risk_id,
            probability=probability,
            impact=impact,
            risk_level=risk_level(probability, impact).value,
            residual_probability=residual_probability,
            residual_impact=residual_impact,
            status=status_value,
            review_notes=review_notes or None,
            reviewed_by_id=ctx.user_id,
            created_at=now,
        )
        self.db.add(entry)

        risk.last_review_date = now
        if risk.monitoring_frequency:
            risk.next_review_date = calculate_next_review_date(now, risk.monitoring_frequency)

        self.store._commit()
        self.db.refresh(entry)
        logger.info(
            "Review %s recorded for risk %s (level=%s)", entry.review_id, risk.code, entry.risk_level
        )

        self.store._audit(ctx, ACTION_CREATE, ENTITY_TYPE, entry.review_id, {
            "risk_id": risk.risk_id,
            "probability": entry.probability,
            "impact": entry.impact,
            "risk_level": entry.risk_level,
            "residual_probability": entry.residual_probability,
            "residual_impact": entry.residual_impact,
            "status": entry.status,
        })
        return entry

    def list_reviews(self, ctx: RequestContext, risk_id: int) -> List[RiskReviewEntry]:
        """Entries oldest first."""
        self.store._require(ctx, "read")
        self.store.load(ctx, risk_id)
        return (
            self.db.query(RiskReviewEntry)
            .filter(
                RiskReviewEntry.risk_id == risk_id,
                RiskReviewEntry.tenant_id == ctx.tenant_id,
            )
            .order_by(RiskReviewEntry.created_at.asc(), RiskReviewEntry.review_id.asc())
            .all()
        )

    def trend(self, ctx: RequestContext, risk_id: int) -> List[ReviewTrendPoint]:
        """Score over time, reconstructed from the review entries."""
        return [
            ReviewTrendPoint(
                review_id=entry.review_id,
                reviewed_at=entry.created_at,
                probability=entry.probability,
                impact=entry.impact,
                risk_score=calculate_risk_score(entry.probability, entry.impact),
                risk_level=entry.risk_level,
                residual_risk_score=residual_risk_score(
                    entry.residual_probability, entry.residual_impact
                ),
                residual_risk_level=entry.residual_risk_level,
                status=entry.status,
            )
            for entry in self.list_reviews(ctx, risk_id)
        ]

    def apply_review(self, ctx: RequestContext, risk_id: int, review_id: int) -> Risk:
        """
        Make a recorded review the risk's current assessment.

        Goes through ``RiskStore.update``, so level recomputation, the status
        rules and auditing are the same as for a direct update. Residual
        values the review left empty keep their current value.
        """
        self.store._require(ctx, "update")
        self.store.load(ctx, risk_id)
        entry = (
            self.db.query(RiskReviewEntry)
            .filter(
                RiskReviewEntry.review_id == review_id,
                RiskReviewEntry.risk_id == risk_id,
                RiskReviewEntry.tenant_id == ctx.tenant_id,
            )
            .first()
        )
        if entry is None:
            raise NotFoundError("Review entry", review_id)

        patch = {
            "probability": entry.probability,
            "impact": entry.impact,
            "status": entry.status,
        }
        if entry.residual_probability is not None:
            patch["residual_probability"] = entry.residual_probability
        if entry.residual_impact is not None:
            patch["residual_impact"] = entry.residual_impact

        risk = self.store.update(ctx, risk_id, patch)
        self.store._audit(ctx, ACTION_APPLY_REVIEW, ENTITY_TYPE, review_id, {"risk_id": risk_id})
        return risk
