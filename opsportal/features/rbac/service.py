"""
Role assignment and permission grants (write path).
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.core.exceptions import ResourceNotFoundError
from opsportal.models.rbac import Permission, Role, RolePermission, UserRole

logger = logging.getLogger(__name__)


class RBACService:
    """Mutations of the role graph. Errors propagate to the caller."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def assign_role(
        self,
        user_id: str,
        role_id: str,
        organization_id: str | None = None,
        team_id: str | None = None,
        granted_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> UserRole:
        """
        Assign a role to a profile in a scope.

        Re-assigning an existing (user, role, scope) reactivates it.
        """
        if await self.db.get(Role, role_id) is None:
            raise ResourceNotFoundError("Role not found", {"role_id": role_id})

        user_role = await self.db.scalar(
            select(UserRole).where(
                UserRole.user_id == user_id,
                UserRole.role_id == role_id,
                UserRole.organization_id.is_(None) if organization_id is None
                else UserRole.organization_id == organization_id,
                UserRole.team_id.is_(None) if team_id is None else UserRole.team_id == team_id,
            )
        )
        if user_role is None:
            user_role = UserRole(
                user_id=user_id,
                role_id=role_id,
                organization_id=organization_id,
                team_id=team_id,
            )
            self.db.add(user_role)

        user_role.is_active = True
        user_role.granted_by = granted_by
        user_role.expires_at = expires_at

        await self.db.commit()
        await self.db.refresh(user_role)

        logger.info(f"Role {role_id} assigned to {user_id} (org={organization_id}, team={team_id})")
        return user_role

    async def revoke_role(self, user_role_id: str) -> UserRole:
        user_role = await self.db.get(UserRole, user_role_id)
        if user_role is None:
            raise ResourceNotFoundError("Role assignment not found", {"id": user_role_id})

        user_role.is_active = False
        await self.db.commit()
        await self.db.refresh(user_role)

        logger.info(f"Role assignment {user_role_id} revoked")
        return user_role

    async def grant_permission(self, role_id: str, permission_name: str) -> RolePermission:
        return await self._set_grant(role_id, permission_name, granted=True)

    async def revoke_permission(self, role_id: str, permission_name: str) -> RolePermission:
        return await self._set_grant(role_id, permission_name, granted=False)

    async def _set_grant(self, role_id: str, permission_name: str, granted: bool) -> RolePermission:
        if await self.db.get(Role, role_id) is None:
            raise ResourceNotFoundError("Role not found", {"role_id": role_id})

        permission = await self.db.scalar(
            select(Permission).where(Permission.name == permission_name)
        )
        if permission is None:
            raise ResourceNotFoundError("Permission not found", {"name": permission_name})

        role_permission = await self.db.scalar(
            select(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission.id,
            )
        )
        if role_permission is None:
            role_permission = RolePermission(role_id=role_id, permission_id=permission.id)
            self.db.add(role_permission)

        role_permission.granted = granted
        await self.db.commit()
        await self.db.refresh(role_permission)

        logger.info(f"Permission {permission_name} {'granted to' if granted else 'revoked from'} role {role_id}")
        return role_permission
