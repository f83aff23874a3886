"""
Pydantic schemas for access checks and role administration.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from opsportal.schemas.common import BaseSchema


class AccessConditions(BaseModel):
    """Scope a capability check must match."""

    organization_id: str | None = None
    team_id: str | None = None


class AccessCheckRequest(BaseModel):
    resource: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    conditions: AccessConditions | None = None


class AccessCheckResponse(BaseModel):
    resource: str
    action: str
    allowed: bool


class RoleCheckRequest(BaseModel):
    roles: list[str] = Field(..., min_length=1)
    require_all: bool = False


class RoleCheckResponse(BaseModel):
    roles: list[str]
    require_all: bool
    allowed: bool


class PermissionList(BaseModel):
    permissions: list[str]


class UserRoleAssign(BaseModel):
    """Payload for assigning a role to a profile."""

    user_id: str
    role_id: str
    organization_id: str | None = None
    team_id: str | None = None
    expires_at: datetime | None = None


class UserRoleRead(BaseSchema):

    id: str
    user_id: str
    role_id: str
    organization_id: str | None = None
    team_id: str | None = None
    is_active: bool
    granted_by: str | None = None
    granted_at: datetime
    expires_at: datetime | None = None


class RolePermissionGrant(BaseModel):
    role_id: str
    permission_name: str = Field(..., pattern=r"^[a-z0-9_-]+\.[a-z0-9_-]+$")
