"""Request-scoped context carried into every store, ledger and log call."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RequestContext:
    """Who is acting, and inside which tenant.

    Every query issued by the risk services is filtered on ``tenant_id``
    from this object; no service accepts a tenant identifier any other way.
    """
    tenant_id: int
    user_id: int
    role: Optional[str] = None
    ip_address: Optional[str] = None
