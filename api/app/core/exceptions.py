"""Domain errors raised by the risk engine.

The HTTP layer maps these onto status codes in ``app.main``:
ValidationError -> 400, PermissionDeniedError -> 403, NotFoundError -> 404,
ConflictError -> 409.
"""
from typing import Optional


class RiskEngineError(Exception):
    """Base class for risk engine errors."""


class ValidationError(RiskEngineError):
    """Malformed or out-of-range input."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


class PermissionDeniedError(RiskEngineError):
    """The caller lacks the capability for this action.

    Carries no information about whether the target entity exists.
    """

    def __init__(self, resource: str, action: str):
        super().__init__(f"Forbidden: {action} on {resource}")
        self.resource = resource
        self.action = action


class NotFoundError(RiskEngineError):
    """Tenant-scoped entity does not exist."""

    def __init__(self, entity: str, entity_id=None):
        detail = f"{entity} not found"
        super().__init__(detail)
        self.entity = entity
        self.entity_id = entity_id
        self.message = detail


class ConflictError(RiskEngineError):
    """A write lost a race on a unique key; the caller may resubmit."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
