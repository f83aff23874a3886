"""
Pydantic schemas for the session context.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from opsportal.schemas.common import BaseSchema


class RoleAssignment(BaseModel):
    """One active role of the session identity."""

    model_config = ConfigDict(frozen=True)

    role_id: str
    role_name: str
    organization_id: str | None = None
    team_id: str | None = None
    expires_at: datetime | None = None


class SessionContext(BaseModel):
    """
    Immutable snapshot of the active session scope.

    Replaced as a whole on every initialize/switch; never mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    organization_id: str | None = None
    team_id: str | None = None
    is_msp_admin: bool = False
    role_assignments: tuple[RoleAssignment, ...] = ()


class UserProfileRead(BaseSchema):

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool
    is_msp_admin: bool
    default_organization_id: str | None = None
    default_team_id: str | None = None


class SessionInitializeRequest(BaseModel):
    organization_id: str | None = None
    team_id: str | None = None


class SessionSwitchRequest(BaseModel):
    organization_id: str = Field(..., min_length=1)
    team_id: str = Field(..., min_length=1)


class SessionState(BaseModel):
    """Response of the session endpoints."""

    success: bool = True
    session_id: str | None = None
    has_valid_context: bool
    context: SessionContext | None = None
    profile: UserProfileRead | None = None
