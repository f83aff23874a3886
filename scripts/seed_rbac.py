"""
Seed RBAC data (system permissions and roles).
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from opsportal.core.database import db_manager
from opsportal.features.rbac.constants import SYSTEM_PERMISSIONS, SYSTEM_ROLES, split_permission
from opsportal.models.rbac import Permission, Role, RolePermission


async def seed_rbac() -> None:
    """Create system permissions and roles (idempotent)."""
    print("Seeding RBAC data...")

    db_manager.init()

    async for db in db_manager.get_session():
        permission_map: dict[str, Permission] = {}

        for perm_name, display_name, category in SYSTEM_PERMISSIONS:
            permission = await db.scalar(select(Permission).where(Permission.name == perm_name))

            if not permission:
                resource, action = split_permission(perm_name)
                permission = Permission(
                    name=perm_name,
                    display_name=display_name,
                    category=category,
                    resource=resource,
                    action=action,
                    is_system=True,
                )
                db.add(permission)
                await db.flush()
                print(f"  Created permission: {perm_name}")

            permission_map[perm_name] = permission

        for role_name, (display_name, role_perms, is_default) in SYSTEM_ROLES.items():
            role = await db.scalar(
                select(Role).where(
                    Role.name == role_name,
                    Role.organization_id.is_(None),
                    Role.team_id.is_(None),
                )
            )

            if not role:
                role = Role(
                    name=role_name,
                    display_name=display_name,
                    is_system=True,
                    is_default=is_default,
                )
                db.add(role)
                await db.flush()
                print(f"  Created role: {role_name}")

            existing = set(
                (await db.scalars(
                    select(RolePermission.permission_id).where(RolePermission.role_id == role.id)
                )).all()
            )
            for perm_name in role_perms:
                permission = permission_map[perm_name]
                if permission.id not in existing:
                    db.add(RolePermission(role_id=role.id, permission_id=permission.id, granted=True))

        await db.commit()

    await db_manager.close()
    print("RBAC seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_rbac())
