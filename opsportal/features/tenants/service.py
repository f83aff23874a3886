"""
Tenant domain administration (write path).

Write errors propagate to the caller; nothing here retries. Every write
drops the cached resolutions of the domain names it touches.
"""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.core.exceptions import DomainConflictError, ResourceNotFoundError
from opsportal.features.tenants.access_store import AccessConfigStore
from opsportal.features.tenants.preview import generate_preview_url
from opsportal.features.tenants.resolver import TenantResolver
from opsportal.models.tenant import TenantAccessConfig, TenantDomain
from opsportal.schemas.tenant import (
    TenantAccessConfigUpsert,
    TenantDomainCreate,
    TenantDomainUpdate,
    TenantStats,
)

logger = logging.getLogger(__name__)


class TenantService:
    """Tenant domain business logic."""

    def __init__(self, db: AsyncSession, resolver: TenantResolver) -> None:
        self.db = db
        self.resolver = resolver
        self.access = AccessConfigStore(db)

    async def list_domains(
        self,
        tenant_type: str | None = None,
        organization_id: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[TenantDomain], int]:
        """
        List tenant domains, newest first.

        Returns:
            (domains, total matching count)
        """
        query = select(TenantDomain)

        if tenant_type:
            query = query.where(TenantDomain.tenant_type == tenant_type)
        if organization_id:
            query = query.where(TenantDomain.organization_id == organization_id)
        if is_active is not None:
            query = query.where(TenantDomain.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.where(
                or_(
                    func.lower(TenantDomain.domain_name).like(pattern),
                    func.lower(TenantDomain.full_url).like(pattern),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        result = await self.db.execute(
            query.order_by(TenantDomain.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def get_domain(self, tenant_id: str) -> TenantDomain:
        domain = await self.db.get(TenantDomain, tenant_id)
        if domain is None:
            raise ResourceNotFoundError("Tenant domain not found", {"id": tenant_id})
        return domain

    async def create_domain(
        self,
        data: TenantDomainCreate,
        created_by: str | None = None,
        current_host: str | None = None,
    ) -> TenantDomain:
        """
        Register a domain and create its default access rows.

        Raises:
            DomainConflictError: If an active domain already owns the name
        """
        if not await self.resolver.validate_domain_availability(data.domain_name):
            raise DomainConflictError(data.domain_name)

        domain = TenantDomain(
            domain_name=data.domain_name,
            full_url=data.full_url or generate_preview_url(data.domain_name, current_host or ""),
            organization_id=data.organization_id,
            tenant_type=data.tenant_type,
            branding=data.branding.to_storage(),
            ui_config=data.ui_config.to_storage(),
            extra_metadata=dict(data.metadata),
            created_by=created_by,
            is_active=True,
        )
        self.db.add(domain)
        await self._commit_or_conflict(data.domain_name)
        await self.db.refresh(domain)

        logger.info(f"Tenant domain created: {domain.domain_name} (org {domain.organization_id})")

        # Default access rows are best effort; the domain stays registered.
        try:
            await self.access.configure_auto_access(domain)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self.db.refresh(domain)
            logger.error(f"Auto access configuration failed for {domain.domain_name}: {e}")

        await self.resolver.invalidate(domain.domain_name)
        return domain

    async def update_domain(self, tenant_id: str, data: TenantDomainUpdate) -> TenantDomain:
        """
        Update a domain.

        Raises:
            ResourceNotFoundError: If the domain doesn't exist
            DomainConflictError: If the new name is owned by another active domain
        """
        domain = await self.get_domain(tenant_id)
        previous_name = domain.domain_name

        updates = data.model_dump(exclude_unset=True)

        new_name = updates.get("domain_name")
        becomes_active = updates.get("is_active", domain.is_active)
        renamed = bool(new_name) and new_name != previous_name
        if becomes_active and (renamed or not domain.is_active):
            name = new_name or previous_name
            if not await self.resolver.validate_domain_availability(name, exclude_id=tenant_id):
                raise DomainConflictError(name)

        for field, value in updates.items():
            if value is None and field in ("domain_name", "full_url", "tenant_type", "is_active"):
                continue
            if field == "branding":
                domain.branding = data.branding.to_storage() if data.branding else {}
            elif field == "ui_config":
                domain.ui_config = data.ui_config.to_storage() if data.ui_config else {}
            elif field == "metadata":
                domain.extra_metadata = dict(value or {})
            else:
                setattr(domain, field, value)

        await self._commit_or_conflict(domain.domain_name)
        await self.db.refresh(domain)

        await self.resolver.invalidate(previous_name)
        if domain.domain_name != previous_name:
            await self.resolver.invalidate(domain.domain_name)

        logger.info(f"Tenant domain updated: {domain.domain_name}")
        return domain

    async def delete_domain(self, tenant_id: str) -> None:
        domain = await self.get_domain(tenant_id)
        name = domain.domain_name

        await self.db.delete(domain)
        await self.db.commit()

        await self.resolver.invalidate(name)
        logger.info(f"Tenant domain deleted: {name}")

    async def toggle_active(self, tenant_id: str, is_active: bool) -> TenantDomain:
        return await self.update_domain(tenant_id, TenantDomainUpdate(is_active=is_active))

    async def list_access(self, tenant_id: str) -> list[TenantAccessConfig]:
        await self.get_domain(tenant_id)
        return await self.access.list_for_domain(tenant_id)

    async def configure_access(
        self,
        tenant_id: str,
        data: TenantAccessConfigUpsert,
    ) -> TenantAccessConfig:
        domain = await self.get_domain(tenant_id)

        config = await self.access.configure_access(domain.id, data)
        await self.db.commit()
        await self.db.refresh(config)

        await self.resolver.invalidate(domain.domain_name)
        return config

    async def tenant_stats(self, tenant_id: str) -> TenantStats:
        await self.get_domain(tenant_id)
        return await self.access.tenant_stats(tenant_id)

    async def _commit_or_conflict(self, domain_name: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if "unique" not in str(e.orig).lower():
                raise
            logger.warning(f"Domain uniqueness violation on commit: {domain_name}")
            raise DomainConflictError(domain_name) from e
