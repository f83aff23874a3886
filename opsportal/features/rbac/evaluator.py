"""
Access-control evaluation for one session context.

Fails closed: when role or permission data cannot be loaded the answer is
deny. MSP admins bypass capability checks, never role checks.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.core.logging_config import get_logger
from opsportal.core.metrics import access_decisions_total
from opsportal.features.rbac.queries import load_active_user_roles, load_granted_permissions
from opsportal.schemas.rbac import AccessConditions
from opsportal.schemas.session import SessionContext

logger = get_logger(__name__)


class AccessControlEvaluator:
    """
    Answers allow/deny for a session context.

    Role and permission data are loaded once per evaluator; build a new one
    when the context changes.
    """

    def __init__(self, db: AsyncSession, context: SessionContext | None) -> None:
        self.db = db
        self.context = context
        self._role_names: frozenset[str] | None = None
        self._permissions: frozenset[tuple[str, str]] | None = None
        self._permission_names: frozenset[str] | None = None

    async def can(
        self,
        resource: str,
        action: str,
        conditions: AccessConditions | Mapping[str, Any] | None = None,
    ) -> bool:
        """Whether the session may perform ``action`` on ``resource``."""
        context = self.context
        if context is None:
            return self._decide(False, "no_context", resource, action)

        if context.is_msp_admin:
            return self._decide(True, "msp_admin", resource, action)

        if not (context.organization_id and context.team_id):
            return self._decide(False, "no_context", resource, action)

        if conditions is not None and not self._scope_matches(conditions):
            return self._decide(False, "scope_mismatch", resource, action)

        if not await self._load():
            return self._decide(False, "lookup_error", resource, action)

        allowed = (resource, action) in self._permissions
        return self._decide(allowed, "granted" if allowed else "not_granted", resource, action)

    async def has_role(self, role_name: str) -> bool:
        if self.context is None or not await self._load():
            return False
        return role_name in self._role_names

    async def has_any_role(self, role_names: Iterable[str]) -> bool:
        names = list(role_names)
        if not names or self.context is None or not await self._load():
            return False
        return any(name in self._role_names for name in names)

    async def has_all_roles(self, role_names: Iterable[str]) -> bool:
        """Every role of ``role_names``; an empty list denies."""
        names = list(role_names)
        if not names or self.context is None or not await self._load():
            return False
        return all(name in self._role_names for name in names)

    async def permission_names(self) -> list[str]:
        """Granted permission names of the session, sorted."""
        if self.context is None or not await self._load():
            return []
        return sorted(self._permission_names)

    def _scope_matches(self, conditions: AccessConditions | Mapping[str, Any]) -> bool:
        if isinstance(conditions, AccessConditions):
            conditions = conditions.model_dump(exclude_none=True)

        team_id = conditions.get("team_id")
        if team_id is not None and team_id != self.context.team_id:
            return False

        organization_id = conditions.get("organization_id")
        if organization_id is not None and organization_id != self.context.organization_id:
            return False

        return True

    async def _load(self) -> bool:
        if self._permissions is not None:
            return True

        context = self.context
        try:
            user_roles = await load_active_user_roles(
                self.db, context.user_id, context.organization_id, context.team_id
            )
            permissions = await load_granted_permissions(
                self.db, [user_role.role_id for user_role in user_roles]
            )
        except Exception:
            logger.exception("permission_lookup_failed", user_id=context.user_id)
            return False

        self._role_names = frozenset(user_role.role.name for user_role in user_roles)
        self._permissions = frozenset((p.resource, p.action) for p in permissions)
        self._permission_names = frozenset(p.name for p in permissions)
        return True

    def _decide(self, allowed: bool, reason: str, resource: str, action: str) -> bool:
        access_decisions_total.labels(
            decision="allow" if allowed else "deny",
            reason=reason,
        ).inc()
        if not allowed:
            logger.debug(
                "access_denied",
                resource=resource,
                action=action,
                reason=reason,
                user_id=self.context.user_id if self.context else None,
            )
        return allowed
