"""
Session context endpoints.

Each browser tab holds its own session context, addressed by the
``X-Session-ID`` header that ``POST /session/initialize`` hands out.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Response, status

from opsportal.features.identity.dependencies import CurrentProfile
from opsportal.features.session.dependencies import (
    SESSION_HEADER,
    ClientSessionId,
    SessionManagerDep,
    SessionRegistryDep,
)
from opsportal.features.session.manager import SessionContextManager
from opsportal.features.tenants.dependencies import CurrentTenant
from opsportal.schemas.session import (
    SessionInitializeRequest,
    SessionState,
    SessionSwitchRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["Session"])


def _state(
    manager: SessionContextManager,
    session_id: str | None,
    success: bool = True,
) -> SessionState:
    return SessionState(
        success=success,
        session_id=session_id,
        has_valid_context=manager.has_valid_context(),
        context=manager.get_session_context(),
        profile=manager.get_user_profile(),
    )


@router.get("", response_model=SessionState)
async def get_session(manager: SessionManagerDep, session_id: ClientSessionId) -> SessionState:
    """Current session context of the caller's tab (not initialized implicitly)."""
    return _state(manager, session_id)


@router.post("/initialize", response_model=SessionState)
async def initialize_session(
    response: Response,
    profile: CurrentProfile,
    registry: SessionRegistryDep,
    session_id: ClientSessionId,
    tenant: CurrentTenant,
    data: Annotated[SessionInitializeRequest | None, Body()] = None,
) -> SessionState:
    """
    Establish the session context of a tab.

    Without a body the profile's default organization and team are used.
    A request without ``X-Session-ID`` starts a new tab session; the id is
    returned in the body and the response header. ``success`` is false,
    and the context empty, when the identity has no usable default, lacks
    membership of the requested scope, or its organization is not allowed
    on the tenant of the requested host.
    """
    session_id = session_id or registry.new_session_id()
    manager = registry.get_or_create(profile.id, session_id)
    data = data or SessionInitializeRequest()
    success = await manager.initialize_session(data.organization_id, data.team_id, tenant=tenant)
    response.headers[SESSION_HEADER] = session_id
    return _state(manager, session_id, success)


@router.post("/switch", response_model=SessionState)
async def switch_context(
    data: SessionSwitchRequest,
    manager: SessionManagerDep,
    session_id: ClientSessionId,
    tenant: CurrentTenant,
) -> SessionState:
    """
    Move the tab's session to another organization and team.

    A refused switch leaves the previous context in place.
    """
    success = await manager.switch_context(data.organization_id, data.team_id, tenant=tenant)
    return _state(manager, session_id, success)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_session(
    profile: CurrentProfile,
    registry: SessionRegistryDep,
    session_id: ClientSessionId,
) -> Response:
    """
    Sign-out teardown.

    Clears the tab named by ``X-Session-ID``, or every session of the
    identity when no id is sent.
    """
    if session_id is not None:
        manager = registry.get(profile.id, session_id)
        managers = [manager] if manager is not None else []
    else:
        managers = registry.sessions_of(profile.id)

    for manager in managers:
        await manager.clear_session()

    if session_id is not None:
        registry.discard(profile.id, session_id)
    else:
        registry.discard_user(profile.id)
    logger.info(f"Session cleared for {profile.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
