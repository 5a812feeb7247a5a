"""FastAPI dependencies: current user, request context and risk services."""
from fastapi import BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.context import RequestContext
from app.core.database import get_db, get_session_factory
from app.core.permissions import PermissionPolicy, RolePermissionPolicy
from app.core.security import decode_token
from app.core.sidecar import SidecarDispatcher
from app.models.user import User
from app.services.audit import AuditSink, DatabaseAuditSink
from app.services.notifications import LoggingNotificationSink, NotificationSink
from app.services.review_log import ReviewHistoryLog
from app.services.risk_store import RiskStore
from app.services.treatment_ledger import TreatmentLedger

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from the bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    payload = decode_token(token)
    if payload is None:
        raise credentials_exception

    email = payload.get("sub")
    if email is None:
        raise credentials_exception

    user = db.query(User).filter(User.email == email).first()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def get_request_context(
    request: Request,
    current_user: User = Depends(get_current_user)
) -> RequestContext:
    return RequestContext(
        tenant_id=current_user.tenant_id,
        user_id=current_user.user_id,
        role=current_user.role,
        ip_address=request.client.host if request.client else None,
    )


def get_permission_policy() -> PermissionPolicy:
    return RolePermissionPolicy()


def get_sidecars(background_tasks: BackgroundTasks) -> SidecarDispatcher:
    """Per-request dispatcher, drained after the response is sent."""
    dispatcher = SidecarDispatcher()
    background_tasks.add_task(dispatcher.drain)
    return dispatcher


def get_audit_sink(session_factory=Depends(get_session_factory)) -> AuditSink:
    return DatabaseAuditSink(session_factory)


def get_notifier() -> NotificationSink:
    return LoggingNotificationSink()


def get_risk_store(
    db: Session = Depends(get_db),
    policy: PermissionPolicy = Depends(get_permission_policy),
    sidecars: SidecarDispatcher = Depends(get_sidecars),
    audit_sink: AuditSink = Depends(get_audit_sink),
    notifier: NotificationSink = Depends(get_notifier),
) -> RiskStore:
    return RiskStore(
        db, policy, sidecars=sidecars, audit_sink=audit_sink, notifier=notifier
    )


def get_treatment_ledger(store: RiskStore = Depends(get_risk_store)) -> TreatmentLedger:
    return TreatmentLedger(store)


def get_review_log(store: RiskStore = Depends(get_risk_store)) -> ReviewHistoryLog:
    return ReviewHistoryLog(store)
