"""
Identity dependencies.

Bearer tokens are issued by the external identity service; their subject
is the id of the caller's profile.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.core.context import set_request_context
from opsportal.core.database import get_db
from opsportal.core.exceptions import AuthenticationError, forbidden, unauthorized
from opsportal.core.security import get_identity_subject
from opsportal.models.profile import UserProfile

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_profile(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> UserProfile:
    """Profile of the authenticated caller."""
    if not credentials:
        raise unauthorized("Authentication required")

    try:
        user_id = get_identity_subject(credentials.credentials)
    except AuthenticationError as e:
        raise unauthorized(e.message)

    profile = await db.get(UserProfile, user_id)

    if not profile:
        logger.warning(f"Token valid but profile not found: {user_id}")
        raise unauthorized("Profile not found")

    if not profile.is_active:
        raise forbidden("User account is inactive")

    request.state.user_id = profile.id
    set_request_context(user_id=profile.id)

    return profile


async def get_current_msp_admin(
    profile: Annotated[UserProfile, Depends(get_current_profile)],
) -> UserProfile:
    """Require the MSP admin flag."""
    if not profile.is_msp_admin:
        raise forbidden("MSP admin access required")
    return profile


CurrentProfile = Annotated[UserProfile, Depends(get_current_profile)]
MspAdmin = Annotated[UserProfile, Depends(get_current_msp_admin)]
