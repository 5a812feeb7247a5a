"""Tenant role codes and their risk-register capabilities.

Only the default permission policy (``app.core.permissions``) reads this
module; the risk services never look at roles directly.
"""
from __future__ import annotations

import enum
from typing import Dict, FrozenSet, Optional


class RoleCode(str, enum.Enum):
    TENANT_ADMIN = "tenant_admin"
    PROJECT_MANAGER = "project_manager"
    SENIOR_CONSULTANT = "senior_consultant"
    JUNIOR_CONSULTANT = "junior_consultant"
    INTERNAL_AUDITOR = "internal_auditor"
    EXTERNAL_AUDITOR = "external_auditor"
    CLIENT_VIEWER = "client_viewer"


ROLE_CODE_TO_DISPLAY: Dict[str, str] = {
    RoleCode.TENANT_ADMIN.value: "Tenant Admin",
    RoleCode.PROJECT_MANAGER.value: "Project Manager",
    RoleCode.SENIOR_CONSULTANT.value: "Senior Consultant",
    RoleCode.JUNIOR_CONSULTANT.value: "Junior Consultant",
    RoleCode.INTERNAL_AUDITOR.value: "Internal Auditor",
    RoleCode.EXTERNAL_AUDITOR.value: "External Auditor",
    RoleCode.CLIENT_VIEWER.value: "Client Viewer",
}

_CRUD = frozenset({"create", "read", "update", "delete"})
_CRU = frozenset({"create", "read", "update"})
_RU = frozenset({"read", "update"})
_R = frozenset({"read"})

# resource -> allowed actions, per role
ROLE_CAPABILITIES: Dict[str, Dict[str, FrozenSet[str]]] = {
    RoleCode.TENANT_ADMIN.value: {"risk": _CRUD, "audit_log": _R},
    RoleCode.PROJECT_MANAGER.value: {"risk": _CRU, "audit_log": _R},
    RoleCode.SENIOR_CONSULTANT.value: {"risk": _CRU},
    RoleCode.JUNIOR_CONSULTANT.value: {"risk": _RU},
    RoleCode.INTERNAL_AUDITOR.value: {"risk": _R, "audit_log": _R},
    RoleCode.EXTERNAL_AUDITOR.value: {"risk": _R},
    RoleCode.CLIENT_VIEWER.value: {"risk": _R},
}


def normalize_role_code(value: str | None) -> Optional[str]:
    if not value:
        return None
    normalized = value.strip().lower().replace(" ", "_").replace("-", "_")
    if normalized in ROLE_CODE_TO_DISPLAY:
        return normalized
    return None


def get_role_display(role_code: str | None, fallback: str | None = None) -> Optional[str]:
    if not role_code:
        return fallback
    return ROLE_CODE_TO_DISPLAY.get(role_code, fallback)


def role_allows(role_code: str | None, resource: str, action: str) -> bool:
    code = normalize_role_code(role_code)
    if code is None:
        return False
    return action in ROLE_CAPABILITIES[code].get(resource, frozenset())
