"""
Factory pattern for creating test data.

Provides easy-to-use functions for creating test objects
with sensible defaults and optional overrides.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from faker import Faker
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.config import settings
from opsportal.features.rbac.constants import split_permission
from opsportal.models import (
    MspClientRelation,
    Organization,
    OrganizationMembership,
    Permission,
    Role,
    RolePermission,
    Team,
    TeamMembership,
    TenantAccessConfig,
    TenantDomain,
    UserProfile,
    UserRole,
)

fake = Faker()


def make_token(subject: str, token_type: str = "access", expires_in: int = 900) -> str:
    """Sign a token the way the identity service does."""
    payload = {
        "sub": subject,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


async def _save(db: AsyncSession, instance: Any) -> Any:
    db.add(instance)
    await db.commit()
    await db.refresh(instance)
    return instance


class OrganizationFactory:
    """Factory for creating test organizations."""

    @staticmethod
    async def create(db: AsyncSession, **kwargs: Any) -> Organization:
        """
        Create a test organization.

        Usage:
            org = await OrganizationFactory.create(db, type="esn")
        """
        defaults = {
            "name": fake.company(),
            "type": "client",
            "is_active": True,
        }
        defaults.update(kwargs)
        return await _save(db, Organization(**defaults))


class TeamFactory:

    @staticmethod
    async def create(db: AsyncSession, organization: Organization, **kwargs: Any) -> Team:
        defaults = {
            "name": fake.job()[:60],
            "organization_id": organization.id,
        }
        defaults.update(kwargs)
        return await _save(db, Team(**defaults))


class ProfileFactory:
    """Factory for creating test profiles."""

    @staticmethod
    async def create(db: AsyncSession, **kwargs: Any) -> UserProfile:
        defaults = {
            "email": fake.unique.email(),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "is_active": True,
            "is_msp_admin": False,
        }
        defaults.update(kwargs)
        return await _save(db, UserProfile(**defaults))


class MembershipFactory:
    """Organization membership plus (optionally) team membership."""

    @staticmethod
    async def create(
        db: AsyncSession,
        profile: UserProfile,
        organization: Organization,
        team: Team | None = None,
    ) -> None:
        db.add(OrganizationMembership(user_id=profile.id, organization_id=organization.id))
        if team is not None:
            db.add(TeamMembership(user_id=profile.id, team_id=team.id))
        await db.commit()


class RelationFactory:

    @staticmethod
    async def create(
        db: AsyncSession,
        msp: Organization,
        client: Organization,
        esn: Organization | None = None,
        **kwargs: Any,
    ) -> MspClientRelation:
        defaults = {
            "msp_organization_id": msp.id,
            "client_organization_id": client.id,
            "esn_organization_id": esn.id if esn else None,
            "relation_type": "via_esn" if esn else "direct",
            "is_active": True,
        }
        defaults.update(kwargs)
        return await _save(db, MspClientRelation(**defaults))


class TenantDomainFactory:
    """Factory for creating tenant domains."""

    @staticmethod
    async def create(
        db: AsyncSession,
        organization: Organization,
        **kwargs: Any,
    ) -> TenantDomain:
        """
        Create a tenant domain owned by ``organization``.

        Usage:
            domain = await TenantDomainFactory.create(db, org, domain_name="acme")
        """
        domain_name = kwargs.pop("domain_name", fake.unique.domain_word())
        defaults = {
            "domain_name": domain_name,
            "full_url": f"https://{domain_name}.example.com",
            "organization_id": organization.id,
            "tenant_type": organization.type,
            "is_active": True,
            "branding": {"company_name": organization.name},
            "ui_config": {"theme": "light"},
            "extra_metadata": {},
        }
        defaults.update(kwargs)
        return await _save(db, TenantDomain(**defaults))


class AccessConfigFactory:

    @staticmethod
    async def create(
        db: AsyncSession,
        domain: TenantDomain,
        organization: Organization,
        **kwargs: Any,
    ) -> TenantAccessConfig:
        defaults = {
            "tenant_domain_id": domain.id,
            "organization_id": organization.id,
            "access_type": "full",
            "allowed_modules": ["*"],
            "access_restrictions": {},
            "is_active": True,
        }
        defaults.update(kwargs)
        return await _save(db, TenantAccessConfig(**defaults))


class RoleFactory:
    """Factory for roles with granted permissions."""

    @staticmethod
    async def create(
        db: AsyncSession,
        permissions: list[str] | None = None,
        **kwargs: Any,
    ) -> Role:
        """
        Create a role granting ``permissions`` ("resource.action").

        Missing permissions are created on the fly.
        """
        defaults = {
            "name": fake.unique.slug(),
            "display_name": fake.catch_phrase(),
        }
        defaults.update(kwargs)
        role = Role(**defaults)
        db.add(role)
        await db.flush()

        for name in permissions or []:
            permission = await db.scalar(select(Permission).where(Permission.name == name))
            if permission is None:
                resource, action = split_permission(name)
                permission = Permission(name=name, resource=resource, action=action)
                db.add(permission)
                await db.flush()
            db.add(RolePermission(role_id=role.id, permission_id=permission.id, granted=True))

        await db.commit()
        await db.refresh(role)
        return role


class UserRoleFactory:

    @staticmethod
    async def create(
        db: AsyncSession,
        profile: UserProfile,
        role: Role,
        **kwargs: Any,
    ) -> UserRole:
        defaults = {
            "user_id": profile.id,
            "role_id": role.id,
            "is_active": True,
        }
        defaults.update(kwargs)
        return await _save(db, UserRole(**defaults))
