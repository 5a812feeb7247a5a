"""Audit logs routes."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload
from app.core.context import RequestContext
from app.core.database import get_db
from app.core.deps import get_permission_policy, get_request_context
from app.core.permissions import PermissionPolicy, require_permission
from app.models.audit_log import AuditLog
from app.schemas.audit_log import AuditLogResponse

router = APIRouter()


@router.get("/", response_model=List[AuditLogResponse])
def list_audit_logs(
    entity_type: Optional[str] = Query(None, description="Filter by entity type (e.g., Risk, RiskTreatment)"),
    entity_id: Optional[int] = Query(None, description="Filter by specific entity ID"),
    action: Optional[str] = Query(None, description="Filter by action (CREATE, UPDATE, STATUS_CHANGE, DELETE)"),
    user_id: Optional[int] = Query(None, description="Filter by user who made the change"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db),
    ctx: RequestContext = Depends(get_request_context),
    policy: PermissionPolicy = Depends(get_permission_policy),
):
    """List the current tenant's audit logs with optional filters."""
    require_permission(policy, ctx, "audit_log", "read")

    query = (
        db.query(AuditLog)
        .options(joinedload(AuditLog.user))
        .filter(AuditLog.tenant_id == ctx.tenant_id)
    )

    # Apply filters
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)

    # Most recent first, then paginate
    return (
        query.order_by(AuditLog.timestamp.desc(), AuditLog.log_id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
