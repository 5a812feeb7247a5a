"""Shared plumbing for the risk services: permission, commit, sidecars."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.permissions import PermissionPolicy, require_permission
from app.core.sidecar import SidecarDispatcher
from app.services.audit import AuditEntry, AuditSink
from app.services.notifications import NotificationSink

logger = logging.getLogger(__name__)

RISK_RESOURCE = "risk"


class RiskServiceBase:
    """Holds the collaborators every risk service needs for one request."""

    def __init__(
        self,
        db: Session,
        policy: PermissionPolicy,
        sidecars: Optional[SidecarDispatcher] = None,
        audit_sink: Optional[AuditSink] = None,
        notifier: Optional[NotificationSink] = None,
    ):
        self.db = db
        self.policy = policy
        self.sidecars = sidecars if sidecars is not None else SidecarDispatcher()
        self.audit_sink = audit_sink
        self.notifier = notifier

    def _require(self, ctx: RequestContext, action: str) -> None:
        require_permission(self.policy, ctx, RISK_RESOURCE, action)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _audit(
        self,
        ctx: RequestContext,
        action: str,
        entity_type: str,
        entity_id: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue an audit entry; call only after the primary write committed."""
        if self.audit_sink is None:
            return
        entry = AuditEntry(
            tenant_id=ctx.tenant_id,
            user_id=ctx.user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata or {},
            ip_address=ctx.ip_address,
        )
        self.sidecars.dispatch(
            f"audit:{entity_type}:{action}", self.audit_sink.record, entry
        )

    def _notify(self, event: str, payload: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        self.sidecars.dispatch(f"notify:{event}", self.notifier.notify, event, payload)
