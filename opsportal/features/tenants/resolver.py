"""
Tenant resolution: host name -> TenantResolution.

Resolutions are cached in Redis under the normalized domain string. Both
outcomes ("resolved" and "not registered") are cached for the configured
TTL; backend failures are never cached and surface as
``TenantResolutionError`` so callers can tell them apart from an unknown
domain.
"""

import time
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsportal.config import settings
from opsportal.core.cache import CacheManager
from opsportal.core.exceptions import TenantResolutionError
from opsportal.core.logging_config import get_logger
from opsportal.core.metrics import tenant_resolution_duration_seconds, tenant_resolutions_total
from opsportal.features.tenants.access_store import AccessConfigStore
from opsportal.models.organization import MspClientRelation, Organization
from opsportal.models.tenant import TenantDomain
from opsportal.schemas.tenant import TenantAccessConfigRead, TenantResolution

logger = get_logger(__name__)

CACHE_NAMESPACE = "tenant_resolution"


def normalize_domain(domain: str | None) -> str:
    """Trim and lower-case a domain; cache keys and lookups use this form."""
    return (domain or "").strip().lower()


def split_host(host: str) -> str:
    """Strip the port from a Host header value."""
    host = normalize_domain(host)
    if host.startswith("["):
        # IPv6 literal
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if ":" in host else host


class TenantResolver:
    """
    Resolves host names to tenants.

    Long-lived: opens one short database session per backend lookup.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheManager,
        ttl: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._ttl = ttl or settings.cache_tenant_ttl

    async def resolve_by_domain(
        self,
        domain: str,
        use_cache: bool = True,
    ) -> TenantResolution | None:
        """
        Resolve a domain name to its active tenant.

        Returns:
            The resolution, or None when no active domain matches.

        Raises:
            TenantResolutionError: If the backend lookup fails
        """
        key = normalize_domain(domain)
        if not key:
            return None

        if use_cache:
            cached = await self._cache.get(CACHE_NAMESPACE, key)
            hit = self._from_cache(key, cached)
            if hit is not None:
                tenant_resolutions_total.labels(outcome="cache_hit").inc()
                found, resolution = hit
                return resolution if found else None

        start = time.perf_counter()
        try:
            async with self._session_factory() as session:
                resolution = await self._lookup(session, key)
        except SQLAlchemyError as e:
            tenant_resolutions_total.labels(outcome="failed").inc()
            logger.error("tenant_resolution_failed", domain=key, error=str(e))
            raise TenantResolutionError(key) from e
        finally:
            tenant_resolution_duration_seconds.observe(time.perf_counter() - start)

        if resolution is None:
            tenant_resolutions_total.labels(outcome="not_found").inc()
            logger.debug("tenant_not_found", domain=key)
        else:
            tenant_resolutions_total.labels(outcome="resolved").inc()
            logger.info(
                "tenant_resolved",
                domain=key,
                tenant_id=resolution.tenant_id,
                organization_id=resolution.organization_id,
            )

        await self._cache.set(
            CACHE_NAMESPACE,
            key,
            {
                "found": resolution is not None,
                "resolution": resolution.model_dump(mode="json") if resolution else None,
            },
            ttl=self._ttl,
        )
        return resolution

    async def resolve_from_host(self, host: str) -> TenantResolution | None:
        """
        Resolve the tenant of an inbound Host header.

        Tries the full host name first, then its first label
        (``acme.portal.example.com`` -> ``acme``).
        """
        hostname = split_host(host)
        if not hostname:
            return None

        tenant = await self.resolve_by_domain(hostname)
        subdomain = hostname.split(".")[0]
        if tenant is None and subdomain != hostname:
            tenant = await self.resolve_by_domain(subdomain)
        return tenant

    async def refetch(self, domain: str) -> TenantResolution | None:
        """Drop the cached entry and resolve again from the backend."""
        await self.invalidate(domain)
        return await self.resolve_by_domain(domain, use_cache=False)

    async def invalidate(self, domain: str) -> None:
        key = normalize_domain(domain)
        if key:
            await self._cache.delete(CACHE_NAMESPACE, key)

    async def validate_domain_availability(
        self,
        domain_name: str,
        exclude_id: str | None = None,
    ) -> bool:
        """
        Check that no other active domain owns ``domain_name``.

        Matches on ``domain_name`` or ``full_url``. Best effort: the unique
        index is the final authority. Backend errors answer False.
        """
        name = normalize_domain(domain_name)
        if not name:
            return False

        query = select(TenantDomain.id).where(
            TenantDomain.is_active.is_(True),
            (func.lower(TenantDomain.domain_name) == name) | (func.lower(TenantDomain.full_url) == name),
        )
        if exclude_id:
            query = query.where(TenantDomain.id != exclude_id)

        try:
            async with self._session_factory() as session:
                result = await session.execute(query.limit(1))
                return result.first() is None
        except SQLAlchemyError as e:
            logger.error("domain_availability_check_failed", domain=name, error=str(e))
            return False

    # Internals

    def _from_cache(self, key: str, cached: Any) -> tuple[bool, TenantResolution | None] | None:
        if not isinstance(cached, dict) or "found" not in cached:
            return None
        if not cached["found"]:
            return False, None
        try:
            return True, TenantResolution.model_validate(cached.get("resolution"))
        except ValidationError:
            logger.warning("tenant_cache_entry_invalid", domain=key)
            return None

    async def _lookup(self, session: AsyncSession, key: str) -> TenantResolution | None:
        result = await session.execute(
            select(TenantDomain, Organization)
            .outerjoin(Organization, Organization.id == TenantDomain.organization_id)
            .where(
                func.lower(TenantDomain.domain_name) == key,
                TenantDomain.is_active.is_(True),
            )
            .limit(1)
        )
        row = result.first()
        if row is None:
            return None

        domain, organization = row

        access_config = await AccessConfigStore(session).get_primary(domain.id, domain.organization_id)

        allowed_organizations = [domain.organization_id]
        metadata = dict(domain.extra_metadata or {})
        organization_type = organization.type if organization else domain.tenant_type
        try:
            allowed_organizations, metadata = await self._enrich(
                session, domain.organization_id, organization_type, metadata
            )
        except SQLAlchemyError as e:
            logger.warning(
                "tenant_enrichment_failed",
                domain=key,
                organization_id=domain.organization_id,
                error=str(e),
            )

        return TenantResolution(
            tenant_id=domain.id,
            organization_id=domain.organization_id,
            organization_name=organization.name if organization else None,
            tenant_type=domain.tenant_type,
            domain_name=domain.domain_name,
            full_url=domain.full_url,
            branding=domain.branding or {},
            ui_config=domain.ui_config or {},
            allowed_organizations=allowed_organizations,
            metadata=metadata,
            access_config=(
                TenantAccessConfigRead.model_validate(access_config) if access_config else None
            ),
        )

    async def _enrich(
        self,
        session: AsyncSession,
        organization_id: str,
        organization_type: str,
        metadata: dict[str, Any],
    ) -> tuple[list[str], dict[str, Any]]:
        """
        Widen allowed organizations along MSP/client/ESN relations.

        client -> [client, msp, esn?]; esn -> [esn, *clients]; msp -> [msp].
        """
        allowed = [organization_id]

        if organization_type == "client":
            relation = await session.scalar(
                select(MspClientRelation)
                .where(
                    MspClientRelation.client_organization_id == organization_id,
                    MspClientRelation.is_active.is_(True),
                )
                .order_by(MspClientRelation.created_at)
                .limit(1)
            )
            if relation is not None:
                names = await self._organization_names(
                    session,
                    [relation.msp_organization_id, relation.esn_organization_id],
                )
                allowed.append(relation.msp_organization_id)
                metadata["relation_type"] = relation.relation_type
                metadata["msp_organization"] = names.get(relation.msp_organization_id)
                if relation.esn_organization_id:
                    allowed.append(relation.esn_organization_id)
                    metadata["esn_organization"] = names.get(relation.esn_organization_id)

        elif organization_type == "esn":
            result = await session.execute(
                select(MspClientRelation.client_organization_id)
                .where(
                    MspClientRelation.esn_organization_id == organization_id,
                    MspClientRelation.is_active.is_(True),
                )
                .order_by(MspClientRelation.created_at)
            )
            client_ids = list(dict.fromkeys(
                client_id for client_id in result.scalars() if client_id != organization_id
            ))
            allowed.extend(client_ids)
            names = await self._organization_names(session, client_ids)
            metadata["clients"] = [names[client_id] for client_id in client_ids if client_id in names]

        return allowed, metadata

    async def _organization_names(
        self,
        session: AsyncSession,
        organization_ids: list[str | None],
    ) -> dict[str, dict[str, str]]:
        ids = [org_id for org_id in organization_ids if org_id]
        if not ids:
            return {}
        result = await session.execute(
            select(Organization.id, Organization.name).where(Organization.id.in_(ids))
        )
        return {org_id: {"id": org_id, "name": name} for org_id, name in result.all()}
