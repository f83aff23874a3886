"""
Session dependencies: registry, manager of the caller, evaluator.
"""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsportal.core.context import set_request_context
from opsportal.core.database import get_db, get_session_factory
from opsportal.features.identity.dependencies import CurrentProfile
from opsportal.features.rbac.evaluator import AccessControlEvaluator
from opsportal.features.session.manager import SessionContextManager
from opsportal.features.session.registry import SessionRegistry
from opsportal.features.tenants.dependencies import CurrentTenant
from opsportal.schemas.session import SessionContext

SESSION_HEADER = "X-Session-ID"


def get_session_registry(
    request: Request,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
) -> SessionRegistry:
    """Registry owned by the application (created on first use)."""
    registry = getattr(request.app.state, "session_registry", None)
    if registry is None:
        registry = SessionRegistry(session_factory)
        request.app.state.session_registry = registry
    return registry


def get_client_session_id(
    x_session_id: Annotated[str | None, Header(alias=SESSION_HEADER, min_length=1, max_length=64)] = None,
) -> str | None:
    """Client session (tab) the request belongs to, if it sent one."""
    return x_session_id


def get_session_manager(
    profile: CurrentProfile,
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
    session_id: Annotated[str | None, Depends(get_client_session_id)],
) -> SessionContextManager:
    """
    Manager of the caller's client session.

    Without a session id the manager lives for this request only.
    """
    if session_id is None:
        return SessionContextManager(profile.id, registry.directory)
    return registry.get_or_create(profile.id, session_id)


async def get_session_context(
    manager: Annotated[SessionContextManager, Depends(get_session_manager)],
    tenant: CurrentTenant,
) -> SessionContext | None:
    """
    Session context of the caller.

    Lazily initializes the session from the profile defaults.
    """
    if manager.get_session_context() is None:
        await manager.initialize_session(tenant=tenant)
    context = manager.get_session_context()
    if context is not None:
        set_request_context(organization_id=context.organization_id)
    return context


def get_evaluator(
    context: Annotated[SessionContext | None, Depends(get_session_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccessControlEvaluator:
    """Evaluator bound to the caller's session context."""
    return AccessControlEvaluator(db, context)


SessionManagerDep = Annotated[SessionContextManager, Depends(get_session_manager)]
SessionRegistryDep = Annotated[SessionRegistry, Depends(get_session_registry)]
ClientSessionId = Annotated[str | None, Depends(get_client_session_id)]
ActiveContext = Annotated[SessionContext | None, Depends(get_session_context)]
EvaluatorDep = Annotated[AccessControlEvaluator, Depends(get_evaluator)]
