"""Permission policy collaborator.

The risk services call ``require_permission`` before touching storage. The
policy is injected, so the role taxonomy stays outside the engine.
"""
from typing import Protocol

from app.core.context import RequestContext
from app.core.exceptions import PermissionDeniedError
from app.core.roles import role_allows


class PermissionPolicy(Protocol):
    def evaluate(self, actor: RequestContext, resource: str, action: str) -> bool:
        ...


class RolePermissionPolicy:
    """Default policy: allow when the actor's tenant role grants the action."""

    def evaluate(self, actor: RequestContext, resource: str, action: str) -> bool:
        return role_allows(actor.role, resource, action)


def require_permission(
    policy: PermissionPolicy, ctx: RequestContext, resource: str, action: str
) -> None:
    """Raise PermissionDeniedError unless ``policy`` allows the action."""
    if not policy.evaluate(ctx, resource, action):
        raise PermissionDeniedError(resource, action)
