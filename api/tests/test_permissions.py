"""Tests for the default role-based permission policy."""
import pytest

from app.core.context import RequestContext
from app.core.exceptions import PermissionDeniedError
from app.core.permissions import RolePermissionPolicy, require_permission
from app.core.roles import get_role_display, normalize_role_code, role_allows


@pytest.mark.parametrize("role,action,allowed", [
    ("tenant_admin", "delete", True),
    ("project_manager", "create", True),
    ("project_manager", "delete", False),
    ("senior_consultant", "update", True),
    ("junior_consultant", "update", True),
    ("junior_consultant", "create", False),
    ("internal_auditor", "read", True),
    ("internal_auditor", "update", False),
    ("external_auditor", "read", True),
    ("client_viewer", "read", True),
    ("client_viewer", "update", False),
])
def test_risk_capabilities(role, action, allowed):
    assert role_allows(role, "risk", action) is allowed


def test_audit_log_read():
    assert role_allows("internal_auditor", "audit_log", "read")
    assert not role_allows("external_auditor", "audit_log", "read")


def test_unknown_role_denied():
    assert not role_allows("superuser", "risk", "read")
    assert not role_allows(None, "risk", "read")


def test_role_normalization():
    assert normalize_role_code("Tenant Admin") == "tenant_admin"
    assert normalize_role_code("project-manager") == "project_manager"
    assert get_role_display("client_viewer") == "Client Viewer"


def test_require_permission_raises():
    ctx = RequestContext(tenant_id=1, user_id=1, role="client_viewer")
    with pytest.raises(PermissionDeniedError) as exc_info:
        require_permission(RolePermissionPolicy(), ctx, "risk", "delete")
    assert exc_info.value.action == "delete"


def test_custom_policy_is_honoured(store, db_session, admin_ctx, risk_payload):
    class DenyAll:
        def evaluate(self, actor, resource, action):
            return False

    store.policy = DenyAll()
    with pytest.raises(PermissionDeniedError):
        store.create(admin_ctx, risk_payload)
