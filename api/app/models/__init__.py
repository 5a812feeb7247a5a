"""Models package."""
from app.models.tenant import Tenant
from app.models.user import User
from app.models.control import ControlImplementation
from app.models.risk import Risk, RiskTreatment, RiskReviewEntry
from app.models.audit_log import AuditLog

__all__ = [
    "Tenant",
    "User",
    "ControlImplementation",
    "Risk",
    "RiskTreatment",
    "RiskReviewEntry",
    "AuditLog",
]
