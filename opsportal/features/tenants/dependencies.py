"""
Tenant dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsportal.core.cache import CacheManager, get_cache
from opsportal.core.context import set_request_context
from opsportal.core.database import get_db, get_session_factory
from opsportal.features.tenants.resolver import TenantResolver
from opsportal.features.tenants.service import TenantService
from opsportal.schemas.tenant import TenantResolution


def get_tenant_resolver(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    cache: Annotated[CacheManager, Depends(get_cache)],
) -> TenantResolver:
    return TenantResolver(session_factory, cache)


def get_tenant_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    resolver: Annotated[TenantResolver, Depends(get_tenant_resolver)],
) -> TenantService:
    return TenantService(db, resolver)


def get_request_host(request: Request) -> str:
    """Host the caller addressed (set by TenantHostMiddleware)."""
    host = getattr(request.state, "tenant_host", None)
    if host:
        return host
    return request.headers.get("x-forwarded-host") or request.headers.get("host", "")


async def get_current_tenant(
    request: Request,
    resolver: Annotated[TenantResolver, Depends(get_tenant_resolver)],
) -> TenantResolution | None:
    """
    Tenant of the inbound host, or None.

    TenantResolutionError propagates (answered with 503).
    """
    tenant = await resolver.resolve_from_host(get_request_host(request))
    if tenant is not None:
        request.state.tenant_id = tenant.tenant_id
        set_request_context(tenant_id=tenant.tenant_id)
    return tenant


ResolverDep = Annotated[TenantResolver, Depends(get_tenant_resolver)]
TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]
CurrentTenant = Annotated[TenantResolution | None, Depends(get_current_tenant)]
RequestHost = Annotated[str, Depends(get_request_host)]
