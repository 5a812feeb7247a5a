"""Treatment Ledger: remediation actions owned by a risk."""
import logging
from typing import List, Optional

from app.core.context import RequestContext
from app.core.exceptions import NotFoundError, ValidationError
from app.core.risk_constants import INITIAL_TREATMENT_STATUS, TreatmentStatus, parse_enum
from app.core.time import utc_now
from app.models.control import ControlImplementation
from app.models.risk import RiskTreatment
from app.services.audit import (
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_STATUS_CHANGE,
    ACTION_UPDATE,
    diff_values,
)
from app.services.risk_store import RiskStore

logger = logging.getLogger(__name__)

ENTITY_TYPE = "RiskTreatment"


class TreatmentLedger:
    """
    Ordered treatments of a risk.

    Treatment status transitions are deliberately unconstrained: any of
    planned / in_progress / completed / cancelled may follow any other.
    Treatments never affect the parent's risk_level.
    """

    def __init__(self, store: RiskStore):
        self.store = store
        self.db = store.db

    def list_treatments(self, ctx: RequestContext, risk_id: int) -> List[RiskTreatment]:
        self.store._require(ctx, "read")
        risk = self.store.load(ctx, risk_id)
        return list(risk.treatments)

    def add_treatment(
        self,
        ctx: RequestContext,
        risk_id: int,
        description: str,
        control_implementation_id: Optional[int] = None,
    ) -> RiskTreatment:
        """Append a ``planned`` treatment to the risk."""
        self.store._require(ctx, "update")
        risk = self.store.load(ctx, risk_id)
        description = self._clean_description(description)
        control_id = self._check_control(ctx, control_implementation_id)

        now = utc_now()
        treatment = RiskTreatment(
            tenant_id=ctx.tenant_id,
            risk_id=risk.risk_id,
            description=description,
            status=INITIAL_TREATMENT_STATUS.value,
            control_implementation_id=control_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(treatment)
        self.store._commit()
        self.db.refresh(treatment)
        logger.info("Treatment %s added to risk %s", treatment.treatment_id, risk.code)

        self.store._audit(ctx, ACTION_CREATE, ENTITY_TYPE, treatment.treatment_id, {
            "risk_id": risk.risk_id,
            "description": treatment.description,
            "status": treatment.status,
            "control_implementation_id": control_id,
        })
        return treatment

    def update_treatment(
        self,
        ctx: RequestContext,
        risk_id: int,
        treatment_id: int,
        status: Optional[str] = None,
        description: Optional[str] = None,
    ) -> RiskTreatment:
        """Change a treatment's status and/or description."""
        self.store._require(ctx, "update")
        self.store.load(ctx, risk_id)
        treatment = self._load_treatment(ctx, risk_id, treatment_id)

        if status is None and description is None:
            raise ValidationError("Provide a status or description to update", field="status")

        values = {}
        if status is not None:
            values["status"] = parse_enum(TreatmentStatus, status, "status").value
        if description is not None:
            values["description"] = self._clean_description(description)

        old_values = {name: getattr(treatment, name) for name in values}
        for name, value in values.items():
            setattr(treatment, name, value)
        treatment.updated_at = utc_now()
        self.store._commit()
        self.db.refresh(treatment)

        changes = diff_values(old_values, values)
        if changes:
            action = ACTION_STATUS_CHANGE if "status" in changes else ACTION_UPDATE
            changes["risk_id"] = risk_id
            self.store._audit(ctx, action, ENTITY_TYPE, treatment.treatment_id, changes)
        return treatment

    def update_treatment_status(
        self, ctx: RequestContext, risk_id: int, treatment_id: int, status: str
    ) -> RiskTreatment:
        if status is None:
            raise ValidationError("status is required", field="status")
        return self.update_treatment(ctx, risk_id, treatment_id, status=status)

    def remove_treatment(self, ctx: RequestContext, risk_id: int, treatment_id: int) -> None:
        """Hard delete; no tombstone is kept."""
        self.store._require(ctx, "delete")
        self.store.load(ctx, risk_id)
        treatment = self._load_treatment(ctx, risk_id, treatment_id)
        summary = {"risk_id": risk_id, "description": treatment.description}
        self.db.delete(treatment)
        self.store._commit()
        logger.info("Treatment %s removed from risk %s", treatment_id, risk_id)
        self.store._audit(ctx, ACTION_DELETE, ENTITY_TYPE, treatment_id, summary)

    def _load_treatment(
        self, ctx: RequestContext, risk_id: int, treatment_id: int
    ) -> RiskTreatment:
        treatment = (
            self.db.query(RiskTreatment)
            .filter(
                RiskTreatment.treatment_id == treatment_id,
                RiskTreatment.risk_id == risk_id,
                RiskTreatment.tenant_id == ctx.tenant_id,
            )
            .first()
        )
        if treatment is None:
            raise NotFoundError("Treatment", treatment_id)
        return treatment

    @staticmethod
    def _clean_description(description) -> str:
        if not isinstance(description, str) or not description.strip():
            raise ValidationError("description is required", field="description")
        return description.strip()

    def _check_control(
        self, ctx: RequestContext, control_implementation_id: Optional[int]
    ) -> Optional[int]:
        if control_implementation_id is None:
            return None
        control = (
            self.db.query(ControlImplementation)
            .filter(
                ControlImplementation.control_implementation_id == control_implementation_id,
                ControlImplementation.tenant_id == ctx.tenant_id,
            )
            .first()
        )
        if control is None:
            raise ValidationError(
                "control_implementation_id does not reference a control of this tenant",
                field="control_implementation_id",
            )
        return control.control_implementation_id
