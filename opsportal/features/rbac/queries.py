"""
Shared RBAC lookups.
"""

from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.models.rbac import Permission, RolePermission, UserRole


def as_utc(value: datetime) -> datetime:
    """Stores without timezone support hand back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(user_role: UserRole, now: datetime | None = None) -> bool:
    if user_role.expires_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return as_utc(user_role.expires_at) <= now


async def load_active_user_roles(
    db: AsyncSession,
    user_id: str,
    organization_id: str | None,
    team_id: str | None,
) -> list[UserRole]:
    """
    Active, non-expired role assignments of a user in a scope.

    An assignment applies when its organization/team is unset (global) or
    equal to the current one.
    """
    result = await db.execute(
        select(UserRole)
        .where(
            UserRole.user_id == user_id,
            UserRole.is_active.is_(True),
            or_(UserRole.organization_id.is_(None), UserRole.organization_id == organization_id),
            or_(UserRole.team_id.is_(None), UserRole.team_id == team_id),
        )
        .order_by(UserRole.granted_at)
    )
    now = datetime.now(timezone.utc)
    return [user_role for user_role in result.unique().scalars().all() if not is_expired(user_role, now)]


async def load_granted_permissions(db: AsyncSession, role_ids: list[str]) -> list[Permission]:
    """Permissions granted to any of ``role_ids``."""
    if not role_ids:
        return []
    result = await db.execute(
        select(Permission)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .where(
            RolePermission.role_id.in_(role_ids),
            RolePermission.granted.is_(True),
        )
        .distinct()
    )
    return list(result.scalars().all())
