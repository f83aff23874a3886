"""
Session context of one identity.

The manager owns an immutable ``SessionContext`` snapshot. Only
``initialize_session``, ``switch_context`` and ``clear_session`` replace
it; they serialize on an asyncio lock, so a second switch always observes
the fully-applied result of the first. Readers get the snapshot as a whole
and never see a half-updated scope.

Subscribers are notified synchronously, in subscription order, before the
mutator returns. Mutating the session from inside a notification, or from
a task spawned by a subscriber, raises ``NestedContextSwitchError``.
"""

import asyncio
import contextvars
from collections.abc import Callable
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from opsportal.core.exceptions import NestedContextSwitchError
from opsportal.core.logging_config import get_logger
from opsportal.core.metrics import context_switches_total
from opsportal.schemas.session import RoleAssignment, SessionContext, UserProfileRead
from opsportal.schemas.tenant import TenantResolution

logger = get_logger(__name__)

Subscriber = Callable[[SessionContext | None], None]

# ids of the managers currently notifying in this task (and tasks it spawns)
_notifying: contextvars.ContextVar[frozenset[int]] = contextvars.ContextVar(
    "session_notifying", default=frozenset()
)


class Directory(Protocol):
    async def get_profile(self, user_id: str) -> UserProfileRead | None: ...

    async def team_organization(self, team_id: str) -> str | None: ...

    async def is_organization_member(self, user_id: str, organization_id: str) -> bool: ...

    async def is_team_member(self, user_id: str, team_id: str) -> bool: ...

    async def role_assignments(
        self, user_id: str, organization_id: str, team_id: str
    ) -> tuple[RoleAssignment, ...]: ...


class SessionContextManager:
    """Active (organization, team, roles) scope of one identity."""

    def __init__(self, user_id: str, directory: Directory) -> None:
        self.user_id = user_id
        self._directory = directory
        self._lock = asyncio.Lock()
        self._context: SessionContext | None = None
        self._profile: UserProfileRead | None = None
        self._subscribers: dict[int, Subscriber] = {}
        self._next_token = 0

    # Subscriptions

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a listener for context changes.

        Returns:
            A function that removes the listener
        """
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    # Mutators

    async def initialize_session(
        self,
        organization_id: str | None = None,
        team_id: str | None = None,
        tenant: TenantResolution | None = None,
    ) -> bool:
        """
        Establish the session from the given scope, or the profile defaults.

        On a tenant host the organization must be admitted by ``tenant``.
        Never raises for access or backend problems: returns False and
        clears the session instead.
        """
        self._ensure_not_nested()

        async with self._lock:
            try:
                profile = await self._directory.get_profile(self.user_id)
                if profile is None or not profile.is_active:
                    return self._fail_initialize("profile_unavailable")

                organization_id = organization_id or profile.default_organization_id
                team_id = team_id or profile.default_team_id
                if not organization_id or not team_id:
                    return self._fail_initialize("no_default_scope")

                if tenant is not None and not tenant.admits(organization_id, profile.is_msp_admin):
                    return self._fail_initialize("tenant_access_denied")

                if not await self._authorize(profile, organization_id, team_id):
                    return self._fail_initialize("access_denied")

                roles = await self._directory.role_assignments(
                    self.user_id, organization_id, team_id
                )
            except SQLAlchemyError as e:
                logger.error("session_initialize_failed", user_id=self.user_id, error=str(e))
                return self._fail_initialize("backend_error")

            self._profile = profile
            self._apply(self._snapshot(profile, organization_id, team_id, roles))
            context_switches_total.labels(operation="initialize", outcome="success").inc()
            logger.info(
                "session_initialized",
                user_id=self.user_id,
                organization_id=organization_id,
                team_id=team_id,
            )
            return True

    async def switch_context(
        self,
        organization_id: str,
        team_id: str,
        tenant: TenantResolution | None = None,
    ) -> bool:
        """
        Replace the active scope.

        MSP admins may switch to any existing team of the organization;
        other identities need membership of both, and on a tenant host an
        organization admitted by ``tenant``. On failure the previous context
        stays in place.
        """
        self._ensure_not_nested()

        async with self._lock:
            if self._context is None:
                return self._reject_switch("no_session", organization_id, team_id)

            try:
                profile = await self._directory.get_profile(self.user_id)
                if profile is None or not profile.is_active:
                    return self._reject_switch("profile_unavailable", organization_id, team_id)

                if tenant is not None and not tenant.admits(organization_id, profile.is_msp_admin):
                    return self._reject_switch("tenant_access_denied", organization_id, team_id)

                if not await self._authorize(profile, organization_id, team_id):
                    return self._reject_switch("access_denied", organization_id, team_id)

                roles = await self._directory.role_assignments(
                    self.user_id, organization_id, team_id
                )
            except SQLAlchemyError as e:
                logger.error("session_switch_failed", user_id=self.user_id, error=str(e))
                return self._reject_switch("backend_error", organization_id, team_id)

            self._profile = profile
            self._apply(self._snapshot(profile, organization_id, team_id, roles))
            context_switches_total.labels(operation="switch", outcome="success").inc()
            logger.info(
                "session_context_switched",
                user_id=self.user_id,
                organization_id=organization_id,
                team_id=team_id,
            )
            return True

    async def clear_session(self) -> None:
        """Sign-out teardown; subscribers receive None."""
        self._ensure_not_nested()
        async with self._lock:
            self._clear()
            logger.info("session_cleared", user_id=self.user_id)

    # Accessors

    def get_session_context(self) -> SessionContext | None:
        return self._context

    def get_user_profile(self) -> UserProfileRead | None:
        return self._profile

    def has_valid_context(self) -> bool:
        context = self._context
        return context is not None and bool(context.organization_id) and bool(context.team_id)

    def is_msp_admin(self) -> bool:
        context = self._context
        return context is not None and context.is_msp_admin

    def get_current_team_id(self) -> str | None:
        context = self._context
        return context.team_id if context else None

    def get_current_organization_id(self) -> str | None:
        context = self._context
        return context.organization_id if context else None

    # Internals

    def _ensure_not_nested(self) -> None:
        if id(self) in _notifying.get():
            raise NestedContextSwitchError(
                "Session context cannot change while subscribers are being notified",
                {"user_id": self.user_id},
            )

    async def _authorize(self, profile: UserProfileRead, organization_id: str, team_id: str) -> bool:
        team_organization = await self._directory.team_organization(team_id)
        if team_organization != organization_id:
            return False
        if profile.is_msp_admin:
            return True
        return (
            await self._directory.is_organization_member(self.user_id, organization_id)
            and await self._directory.is_team_member(self.user_id, team_id)
        )

    def _snapshot(
        self,
        profile: UserProfileRead,
        organization_id: str,
        team_id: str,
        roles: tuple[RoleAssignment, ...],
    ) -> SessionContext:
        return SessionContext(
            user_id=self.user_id,
            organization_id=organization_id,
            team_id=team_id,
            is_msp_admin=profile.is_msp_admin,
            role_assignments=roles,
        )

    def _apply(self, context: SessionContext | None) -> None:
        self._context = context
        self._notify(context)

    def _clear(self) -> None:
        self._profile = None
        self._apply(None)

    def _fail_initialize(self, reason: str) -> bool:
        context_switches_total.labels(operation="initialize", outcome=reason).inc()
        logger.warning("session_initialize_rejected", user_id=self.user_id, reason=reason)
        self._clear()
        return False

    def _reject_switch(self, reason: str, organization_id: str, team_id: str) -> bool:
        context_switches_total.labels(operation="switch", outcome=reason).inc()
        logger.warning(
            "session_switch_rejected",
            user_id=self.user_id,
            organization_id=organization_id,
            team_id=team_id,
            reason=reason,
        )
        return False

    def _notify(self, context: SessionContext | None) -> None:
        marker = _notifying.set(_notifying.get() | {id(self)})
        try:
            for callback in list(self._subscribers.values()):
                try:
                    callback(context)
                except Exception:
                    logger.exception("session_subscriber_failed", user_id=self.user_id)
        finally:
            _notifying.reset(marker)
