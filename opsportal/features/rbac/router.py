"""
Access-control endpoints: checks for the current session and role administration.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.core.database import get_db
from opsportal.features.identity.dependencies import MspAdmin
from opsportal.features.rbac.guards import CapabilityGuard, RoleGuard
from opsportal.features.rbac.service import RBACService
from opsportal.features.session.dependencies import EvaluatorDep
from opsportal.schemas.common import MessageResponse
from opsportal.schemas.rbac import (
    AccessCheckRequest,
    AccessCheckResponse,
    PermissionList,
    RoleCheckRequest,
    RoleCheckResponse,
    RolePermissionGrant,
    UserRoleAssign,
    UserRoleRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/access", tags=["Access Control"])


def get_rbac_service(db: Annotated[AsyncSession, Depends(get_db)]) -> RBACService:
    return RBACService(db)


RBACServiceDep = Annotated[RBACService, Depends(get_rbac_service)]


# Checks against the caller's session

@router.post("/check", response_model=AccessCheckResponse)
async def check_access(data: AccessCheckRequest, evaluator: EvaluatorDep) -> AccessCheckResponse:
    """Whether the session may perform ``action`` on ``resource``."""
    guard = CapabilityGuard(data.resource, data.action, data.conditions)
    return AccessCheckResponse(
        resource=data.resource,
        action=data.action,
        allowed=await guard.allows(evaluator),
    )


@router.post("/roles/check", response_model=RoleCheckResponse)
async def check_roles(data: RoleCheckRequest, evaluator: EvaluatorDep) -> RoleCheckResponse:
    guard = RoleGuard(data.roles, require_all=data.require_all)
    return RoleCheckResponse(
        roles=data.roles,
        require_all=data.require_all,
        allowed=await guard.allows(evaluator),
    )


@router.get("/permissions", response_model=PermissionList)
async def list_permissions(evaluator: EvaluatorDep) -> PermissionList:
    """Permission names granted to the session's active roles."""
    return PermissionList(permissions=await evaluator.permission_names())


# Administration (MSP admins)

@router.post("/user-roles", response_model=UserRoleRead, status_code=status.HTTP_201_CREATED)
async def assign_role(
    data: UserRoleAssign,
    service: RBACServiceDep,
    admin: MspAdmin,
) -> UserRoleRead:
    user_role = await service.assign_role(
        user_id=data.user_id,
        role_id=data.role_id,
        organization_id=data.organization_id,
        team_id=data.team_id,
        granted_by=admin.id,
        expires_at=data.expires_at,
    )
    return UserRoleRead.model_validate(user_role)


@router.delete("/user-roles/{user_role_id}", response_model=UserRoleRead)
async def revoke_role(
    user_role_id: str,
    service: RBACServiceDep,
    admin: MspAdmin,
) -> UserRoleRead:
    return UserRoleRead.model_validate(await service.revoke_role(user_role_id))


@router.post("/role-permissions", response_model=MessageResponse)
async def grant_permission(
    data: RolePermissionGrant,
    service: RBACServiceDep,
    admin: MspAdmin,
) -> MessageResponse:
    await service.grant_permission(data.role_id, data.permission_name)
    return MessageResponse(message=f"Permission {data.permission_name} granted")


@router.delete("/role-permissions", response_model=MessageResponse)
async def revoke_permission(
    data: RolePermissionGrant,
    service: RBACServiceDep,
    admin: MspAdmin,
) -> MessageResponse:
    await service.revoke_permission(data.role_id, data.permission_name)
    return MessageResponse(message=f"Permission {data.permission_name} revoked")
