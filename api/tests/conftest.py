"""Pytest fixtures for API and service testing."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.context import RequestContext
from app.core.database import get_db, get_session_factory
from app.core.permissions import RolePermissionPolicy
from app.core.security import create_access_token
from app.core.sidecar import SidecarDispatcher
from app.models.base import Base
from app.models.control import ControlImplementation
from app.models.risk import Risk
from app.models.tenant import Tenant
from app.models.user import User
from app.services.audit import DatabaseAuditSink
from app.services.review_log import ReviewHistoryLog
from app.services.risk_store import RiskStore
from app.services.treatment_ledger import TreatmentLedger

# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


def override_get_session_factory():
    """Audit sink sessions use the same in-memory database."""
    return TestingSessionLocal


class RecordingNotifier:
    """Notification sink that keeps events in memory."""

    def __init__(self):
        self.events = []

    def notify(self, event, payload):
        self.events.append((event, payload))


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """Test client with database override.

    Note: db_session already created tables, so we don't need to create them again.
    """
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = override_get_session_factory

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# Tenants and users
# ============================================================================

@pytest.fixture
def tenant(db_session):
    tenant = Tenant(slug="acme", name="Acme Manufacturing")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session):
    tenant = Tenant(slug="globex", name="Globex Logistics")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


def _create_user(db_session, tenant, email, full_name, role):
    user = User(
        tenant_id=tenant.tenant_id,
        email=email,
        full_name=full_name,
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session, tenant):
    return _create_user(db_session, tenant, "admin@acme.example.com", "Ada Admin", "tenant_admin")


@pytest.fixture
def manager_user(db_session, tenant):
    return _create_user(
        db_session, tenant, "pm@acme.example.com", "Pat Manager", "project_manager"
    )


@pytest.fixture
def junior_user(db_session, tenant):
    return _create_user(
        db_session, tenant, "junior@acme.example.com", "Jo Junior", "junior_consultant"
    )


@pytest.fixture
def viewer_user(db_session, tenant):
    return _create_user(
        db_session, tenant, "viewer@acme.example.com", "Val Viewer", "client_viewer"
    )


@pytest.fixture
def auditor_user(db_session, tenant):
    return _create_user(
        db_session, tenant, "auditor@acme.example.com", "Ivy Auditor", "internal_auditor"
    )


@pytest.fixture
def other_admin_user(db_session, other_tenant):
    return _create_user(
        db_session, other_tenant, "admin@globex.example.com", "Gus Admin", "tenant_admin"
    )


def _headers_for(user):
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user):
    """Get authorization headers for the tenant admin."""
    return _headers_for(admin_user)


@pytest.fixture
def manager_headers(manager_user):
    return _headers_for(manager_user)


@pytest.fixture
def junior_headers(junior_user):
    return _headers_for(junior_user)


@pytest.fixture
def viewer_headers(viewer_user):
    return _headers_for(viewer_user)


@pytest.fixture
def auditor_headers(auditor_user):
    return _headers_for(auditor_user)


@pytest.fixture
def other_tenant_headers(other_admin_user):
    return _headers_for(other_admin_user)


# ============================================================================
# Domain rows
# ============================================================================

@pytest.fixture
def control(db_session, tenant):
    """Control implementation treatments can reference."""
    row = ControlImplementation(
        tenant_id=tenant.tenant_id,
        control_code="A.8.13",
        title="Information backup",
        status="implemented",
    )
    db_session.add(row)
    db_session.commit()
    db_session.refresh(row)
    return row


@pytest.fixture
def sample_risk(db_session, tenant, admin_user):
    """High risk (3 x 4) in the 'identified' state."""
    risk = Risk(
        tenant_id=tenant.tenant_id,
        code="R-001",
        title="Backup restore untested",
        description="Nightly backups have never been restored end to end.",
        category="technology",
        probability=3,
        impact=4,
        risk_level="high",
        status="identified",
        created_by_id=admin_user.user_id,
    )
    db_session.add(risk)
    db_session.commit()
    db_session.refresh(risk)
    return risk


@pytest.fixture
def other_tenant_risk(db_session, other_tenant, other_admin_user):
    risk = Risk(
        tenant_id=other_tenant.tenant_id,
        code="R-001",
        title="Carrier insolvency",
        description="Main freight carrier may fail.",
        category="financial",
        probability=2,
        impact=5,
        risk_level="high",
        status="identified",
        created_by_id=other_admin_user.user_id,
    )
    db_session.add(risk)
    db_session.commit()
    db_session.refresh(risk)
    return risk


# ============================================================================
# Service-level fixtures
# ============================================================================

def make_ctx(user):
    return RequestContext(tenant_id=user.tenant_id, user_id=user.user_id, role=user.role)


@pytest.fixture
def admin_ctx(admin_user):
    return make_ctx(admin_user)


@pytest.fixture
def ctx_for():
    """Build a RequestContext for any user fixture."""
    return make_ctx


@pytest.fixture
def sidecars():
    return SidecarDispatcher()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def store(db_session, sidecars, notifier):
    return RiskStore(
        db_session,
        RolePermissionPolicy(),
        sidecars=sidecars,
        audit_sink=DatabaseAuditSink(TestingSessionLocal),
        notifier=notifier,
    )


@pytest.fixture
def ledger(store):
    return TreatmentLedger(store)


@pytest.fixture
def review_log(store):
    return ReviewHistoryLog(store)


@pytest.fixture
def risk_payload():
    return {
        "title": "Supplier outage",
        "description": "Single supplier for packaging material.",
        "category": "operational",
        "probability": 3,
        "impact": 4,
    }
