"""
Guards over the access-control evaluator.

A guard answers ``allows(evaluator)`` and can ``render`` one of two
payloads: the protected children when allowed, the fallback (or None)
otherwise. ``require_permission`` and ``require_roles`` wrap the same
checks as FastAPI dependencies that answer 403.
"""

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from opsportal.core.exceptions import forbidden
from opsportal.features.rbac.constants import split_permission
from opsportal.features.rbac.evaluator import AccessControlEvaluator
from opsportal.features.session.dependencies import EvaluatorDep

T = TypeVar("T")


class Guard:
    """Base guard."""

    async def allows(self, evaluator: AccessControlEvaluator) -> bool:
        raise NotImplementedError

    async def render(
        self,
        evaluator: AccessControlEvaluator,
        children: T,
        fallback: T | None = None,
    ) -> T | None:
        if await self.allows(evaluator):
            return children
        return fallback


class CapabilityGuard(Guard):
    """Passes when the session may perform ``action`` on ``resource``."""

    def __init__(
        self,
        resource: str,
        action: str,
        conditions: Mapping[str, Any] | None = None,
    ) -> None:
        self.resource = resource
        self.action = action
        self.conditions = conditions

    async def allows(self, evaluator: AccessControlEvaluator) -> bool:
        return await evaluator.can(self.resource, self.action, self.conditions)


class RoleGuard(Guard):
    """Passes when the session holds any (or all) of ``roles``."""

    def __init__(self, roles: Iterable[str], require_all: bool = False) -> None:
        self.roles = list(roles)
        self.require_all = require_all

    async def allows(self, evaluator: AccessControlEvaluator) -> bool:
        if not self.roles:
            return False
        if self.require_all:
            return await evaluator.has_all_roles(self.roles)
        return await evaluator.has_any_role(self.roles)


class PermissionGuard(Guard):
    """Passes when the session holds any (or all) of ``permissions`` ("resource.action")."""

    def __init__(self, permissions: Iterable[str], require_all: bool = False) -> None:
        self.permissions = list(permissions)
        self.require_all = require_all

    async def allows(self, evaluator: AccessControlEvaluator) -> bool:
        if not self.permissions:
            return False
        for name in self.permissions:
            resource, action = split_permission(name)
            allowed = await evaluator.can(resource, action)
            # first grant decides "any", first denial decides "all"
            if allowed != self.require_all:
                return allowed
        return self.require_all


def require_permission(resource: str, action: str):
    """
    Dependency factory for capability-based access control.

    Usage:
        @router.get("/itsm/tickets")
        async def list_tickets(
            evaluator: AccessControlEvaluator = Depends(require_permission("itsm", "read"))
        ):
            ...
    """
    guard = CapabilityGuard(resource, action)

    async def permission_checker(evaluator: EvaluatorDep) -> AccessControlEvaluator:
        if not await guard.allows(evaluator):
            raise forbidden(f"Permission required: {resource}.{action}")
        return evaluator

    return permission_checker


def require_roles(*roles: str, require_all: bool = False):
    """Dependency factory for role-based access control."""
    guard = RoleGuard(roles, require_all=require_all)

    async def role_checker(evaluator: EvaluatorDep) -> AccessControlEvaluator:
        if not await guard.allows(evaluator):
            qualifier = "all of" if require_all else "one of"
            raise forbidden(f"Role required ({qualifier}): {', '.join(roles)}")
        return evaluator

    return role_checker
