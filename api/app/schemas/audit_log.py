"""Audit trail schemas for risk register changes."""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict
from app.schemas.user import UserBrief


class AuditLogResponse(BaseModel):
    """One recorded change. ``changes`` holds either a field diff
    (``{"field": {"old": ..., "new": ...}}``) or a creation/deletion summary."""
    model_config = ConfigDict(from_attributes=True)

    log_id: int
    tenant_id: int
    entity_type: str  # Risk, RiskTreatment, RiskReviewEntry
    entity_id: int
    action: str
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    timestamp: datetime
    user_id: Optional[int] = None
    user: Optional[UserBrief] = None  # None once the user row is gone
