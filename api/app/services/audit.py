"""Audit-log sink.

Services never write audit rows inside the primary transaction. They build
an ``AuditEntry`` and queue ``AuditSink.record`` on the request's sidecar
dispatcher; the default sink persists it through its own session.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import sessionmaker

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

ACTION_CREATE = "CREATE"
ACTION_UPDATE = "UPDATE"
ACTION_STATUS_CHANGE = "STATUS_CHANGE"
ACTION_DELETE = "DELETE"
ACTION_APPLY_REVIEW = "APPLY_REVIEW"


@dataclass(frozen=True)
class AuditEntry:
    tenant_id: int
    user_id: Optional[int]
    action: str
    entity_type: str
    entity_id: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None


class AuditSink(Protocol):
    def record(self, entry: AuditEntry) -> None:
        ...


class DatabaseAuditSink:
    """Writes audit entries to the audit_logs table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self, entry: AuditEntry) -> None:
        db = self.session_factory()
        try:
            db.add(AuditLog(
                tenant_id=entry.tenant_id,
                user_id=entry.user_id,
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                changes=to_json_safe(entry.metadata),
                ip_address=entry.ip_address,
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        logger.debug(
            "Audit %s %s#%s recorded", entry.action, entry.entity_type, entry.entity_id
        )


def to_json_safe(value: Any) -> Any:
    """Convert datetimes and enums inside ``value`` to JSON-friendly values."""
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def diff_values(old_values: dict, new_values: dict) -> dict:
    """Field-level ``{"field": {"old": ..., "new": ...}}`` for changed keys only."""
    changes = {}
    for key in sorted(set(old_values.keys()) | set(new_values.keys())):
        old_val = old_values.get(key)
        new_val = new_values.get(key)
        if old_val != new_val:
            changes[key] = {'old': to_json_safe(old_val), 'new': to_json_safe(new_val)}
    return changes
