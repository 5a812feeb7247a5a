"""Risk Record Store.

Owns Risk rows and their lifecycle. Every operation checks permission first
and existence second, so a forbidden caller learns nothing about whether a
risk exists. ``risk_level`` is recomputed in the same flush as any
probability/impact change and is never accepted as input.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.context import RequestContext
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.review_schedule import calculate_next_review_date
from app.core.risk_constants import (
    INITIAL_RISK_STATUS,
    TERMINAL_RISK_STATUSES,
    MonitoringFrequency,
    RiskCategory,
    RiskLevel,
    RiskStatus,
    TreatmentStrategy,
    parse_enum,
)
from app.core.risk_scoring import risk_level, validate_assessment, validate_residual
from app.core.time import as_naive_utc, utc_now
from app.models.risk import Risk
from app.models.user import User
from app.services.audit import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_STATUS_CHANGE,
    ACTION_UPDATE,
    diff_values,
)
from app.services.base import RiskServiceBase
from app.services.notifications import EVENT_RISK_ASSIGNED, EVENT_RISK_CRITICAL

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Risk"

# Fields a caller may set on create / patch on update
MUTABLE_FIELDS = frozenset({
    "title",
    "description",
    "category",
    "probability",
    "impact",
    "residual_probability",
    "residual_impact",
    "treatment",
    "treatment_plan",
    "status",
    "monitoring_frequency",
    "next_review_date",
    "risk_appetite",
    "responsible_id",
})

# Computed on write or on read; rejected when supplied
DERIVED_FIELDS = frozenset({
    "risk_level",
    "risk_score",
    "residual_risk_level",
    "residual_risk_score",
})

REQUIRED_ON_CREATE = ("title", "description", "category", "probability", "impact")

TITLE_MAX_LENGTH = 255


class RiskStore(RiskServiceBase):
    """Create, read, update and delete risks inside the caller's tenant."""

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _tenant_query(self, ctx: RequestContext):
        return self.db.query(Risk).filter(Risk.tenant_id == ctx.tenant_id)

    def load(self, ctx: RequestContext, risk_id: int, with_children: bool = False) -> Risk:
        """Tenant-scoped lookup without a permission check. Callers check first."""
        query = self._tenant_query(ctx)
        if with_children:
            query = query.options(
                selectinload(Risk.treatments),
                selectinload(Risk.reviews),
                selectinload(Risk.responsible),
            )
        risk = query.filter(Risk.risk_id == risk_id).first()
        if risk is None:
            raise NotFoundError("Risk", risk_id)
        return risk

    def get(self, ctx: RequestContext, risk_id: int) -> Risk:
        """Risk with its treatments and review history."""
        self._require(ctx, "read")
        return self.load(ctx, risk_id, with_children=True)

    def list_risks(
        self,
        ctx: RequestContext,
        risk_level: Optional[str] = None,
        status: Optional[str] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Risk]:
        """Tenant risks, newest first, with optional filters."""
        self._require(ctx, "read")
        query = self._tenant_query(ctx)
        if risk_level:
            query = query.filter(Risk.risk_level == parse_enum(RiskLevel, risk_level, "risk_level").value)
        if status:
            query = query.filter(Risk.status == parse_enum(RiskStatus, status, "status").value)
        if category:
            query = query.filter(Risk.category == parse_enum(RiskCategory, category, "category").value)
        query = query.order_by(Risk.created_at.desc(), Risk.risk_id.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(self, ctx: RequestContext, data: Dict[str, Any]) -> Risk:
        """
        Create a risk.

        Args:
            ctx: Request context (tenant and acting user)
            data: Field values; title, description, category, probability and
                impact are required. Status defaults to ``identified``.

        Returns:
            The persisted Risk with its computed risk_level and code.

        Raises:
            PermissionDeniedError: Caller may not create risks
            ValidationError: Missing, unknown, derived or out-of-range fields
            ConflictError: Another create took the generated code first
        """
        self._require(ctx, "create")

        missing = [name for name in REQUIRED_ON_CREATE if data.get(name) is None]
        if missing:
            raise ValidationError(f"{missing[0]} is required", field=missing[0])

        values = self._clean_fields(ctx, data)
        probability, impact = validate_assessment(values["probability"], values["impact"])

        status = values.get("status", INITIAL_RISK_STATUS.value)
        now = utc_now()
        next_review_date = values.get("next_review_date")
        if next_review_date is None and values.get("monitoring_frequency"):
            next_review_date = calculate_next_review_date(now, values["monitoring_frequency"])

        risk = Risk(
            tenant_id=ctx.tenant_id,
            code=self._next_code(ctx),
            title=values["title"],
            description=values["description"],
            category=values["category"],
            probability=probability,
            impact=impact,
            risk_level=risk_level(probability, impact).value,
            residual_probability=values.get("residual_probability"),
            residual_impact=values.get("residual_impact"),
            treatment=values.get("treatment"),
            treatment_plan=values.get("treatment_plan"),
            status=status,
            monitoring_frequency=values.get("monitoring_frequency"),
            next_review_date=next_review_date,
            risk_appetite=values.get("risk_appetite"),
            responsible_id=values.get("responsible_id"),
            created_by_id=ctx.user_id,
            created_at=now,
            updated_at=now,
        )
        code = risk.code
        self.db.add(risk)
        try:
            self._commit()
        except IntegrityError:
            # Another create took the same code between _next_code and commit
            logger.warning("Risk code %s already taken in tenant %s", code, ctx.tenant_id)
            raise ConflictError(
                f"Risk code {code} was taken by a concurrent create; resubmit",
                field="code",
            )
        self.db.refresh(risk)
        logger.info(
            "Risk %s created in tenant %s (level=%s)", risk.code, ctx.tenant_id, risk.risk_level
        )

        self._audit(ctx, ACTION_CREATE, ENTITY_TYPE, risk.risk_id, {
            "code": risk.code,
            "title": risk.title,
            "probability": risk.probability,
            "impact": risk.impact,
            "risk_level": risk.risk_level,
            "status": risk.status,
        })
        if risk.responsible_id is not None:
            self._notify(EVENT_RISK_ASSIGNED, self._assignment_payload(ctx, risk))
        if risk.risk_level == RiskLevel.CRITICAL.value:
            self._notify(EVENT_RISK_CRITICAL, {
                "tenant_id": ctx.tenant_id,
                "risk_id": risk.risk_id,
                "risk_code": risk.code,
                "risk_title": risk.title,
                "risk_level": risk.risk_level,
            })
        return risk

    def update(self, ctx: RequestContext, risk_id: int, patch: Dict[str, Any]) -> Risk:
        """
        Apply a partial update.

        Only keys present in ``patch`` change. When probability or impact is
        present the level is recomputed from the merged pair before the
        single commit. Closing a risk has no cascade: treatments and history
        stay in place.
        """
        self._require(ctx, "update")
        risk = self.load(ctx, risk_id)
        values = self._clean_fields(ctx, patch)

        if "probability" in values or "impact" in values:
            probability, impact = validate_assessment(
                values.get("probability", risk.probability),
                values.get("impact", risk.impact),
            )
            values["probability"] = probability
            values["impact"] = impact
            values["risk_level"] = risk_level(probability, impact).value

        if "status" in values:
            self._check_transition(risk.status, values["status"])

        old_values = {name: getattr(risk, name) for name in values}
        previous_responsible = risk.responsible_id

        for name, value in values.items():
            setattr(risk, name, value)
        risk.updated_at = utc_now()
        self._commit()
        self.db.refresh(risk)

        changes = diff_values(old_values, {name: getattr(risk, name) for name in values})
        if changes:
            action = ACTION_STATUS_CHANGE if "status" in changes else ACTION_UPDATE
            logger.info("Risk %s updated: %s", risk.code, ", ".join(changes))
            self._audit(ctx, action, ENTITY_TYPE, risk.risk_id, changes)
        if (
            risk.responsible_id is not None
            and risk.responsible_id != previous_responsible
        ):
            self._notify(EVENT_RISK_ASSIGNED, self._assignment_payload(ctx, risk))
        return risk

    def delete(self, ctx: RequestContext, risk_id: int) -> None:
        """Delete a risk together with its treatments and review entries."""
        self._require(ctx, "delete")
        risk = self.load(ctx, risk_id)
        summary = {
            "code": risk.code,
            "title": risk.title,
            "treatments_removed": len(risk.treatments),
            "reviews_removed": len(risk.reviews),
        }
        self.db.delete(risk)
        self._commit()
        logger.info("Risk %s deleted from tenant %s", summary["code"], ctx.tenant_id)
        self._audit(ctx, ACTION_DELETE, ENTITY_TYPE, risk_id, summary)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_code(self, ctx: RequestContext) -> str:
        """Next tenant-unique code: highest existing numeric suffix + 1."""
        prefix = f"{settings.RISK_CODE_PREFIX}-"
        codes = (
            self.db.query(Risk.code)
            .filter(Risk.tenant_id == ctx.tenant_id, Risk.code.like(f"{prefix}%"))
            .all()
        )
        highest = 0
        for (code,) in codes:
            suffix = code[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:03d}"

    def _check_transition(self, current: str, new: str) -> None:
        if current == new:
            return
        if RiskStatus(current) in TERMINAL_RISK_STATUSES:
            raise ValidationError(
                f"Risk is {current}; status cannot change to {new}", field="status"
            )

    def _clean_fields(self, ctx: RequestContext, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and normalize caller-supplied fields. Nothing is clamped."""
        for name in data:
            if name in DERIVED_FIELDS:
                raise ValidationError(
                    f"{name} is derived from probability and impact and cannot be set",
                    field=name,
                )
            if name not in MUTABLE_FIELDS:
                raise ValidationError(f"Unknown field '{name}'", field=name)

        values: Dict[str, Any] = {}
        for name, value in data.items():
            if name in ("title", "description"):
                values[name] = self._clean_text(name, value)
            elif name == "category":
                values[name] = parse_enum(RiskCategory, value, name).value
            elif name in ("probability", "impact"):
                if value is None:
                    raise ValidationError(f"{name} cannot be null", field=name)
                values[name] = value
            elif name == "status":
                if value is None:
                    raise ValidationError("status cannot be null", field=name)
                values[name] = parse_enum(RiskStatus, value, name).value
            elif name == "treatment":
                values[name] = None if value is None else parse_enum(TreatmentStrategy, value, name).value
            elif name == "monitoring_frequency":
                values[name] = None if value is None else parse_enum(MonitoringFrequency, value, name).value
            elif name == "next_review_date":
                values[name] = self._clean_datetime(name, value)
            elif name == "responsible_id":
                values[name] = self._clean_responsible(ctx, value)
            else:
                values[name] = value

        if "probability" in values:
            validate_assessment(values["probability"], 1)
        if "impact" in values:
            validate_assessment(1, values["impact"])
        validate_residual(values.get("residual_probability"), values.get("residual_impact"))
        return values

    @staticmethod
    def _clean_text(name: str, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{name} is required", field=name)
        value = value.strip()
        if name == "title" and len(value) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"title must be at most {TITLE_MAX_LENGTH} characters", field=name
            )
        return value

    @staticmethod
    def _clean_datetime(name: str, value: Any) -> Optional[datetime]:
        if value is None:
            return None
        if isinstance(value, datetime):
            return as_naive_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        raise ValidationError(f"{name} must be a date", field=name)

    def _clean_responsible(self, ctx: RequestContext, value: Any) -> Optional[int]:
        if value is None:
            return None
        user = (
            self.db.query(User)
            .filter(User.user_id == value, User.tenant_id == ctx.tenant_id)
            .first()
        )
        if user is None:
            raise ValidationError(
                "responsible_id must reference a member of this tenant",
                field="responsible_id",
            )
        return user.user_id

    @staticmethod
    def _assignment_payload(ctx: RequestContext, risk: Risk) -> Dict[str, Any]:
        return {
            "tenant_id": ctx.tenant_id,
            "risk_id": risk.risk_id,
            "risk_code": risk.code,
            "risk_title": risk.title,
            "responsible_id": risk.responsible_id,
            "assigned_by": ctx.user_id,
        }
