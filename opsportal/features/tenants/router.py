"""
Tenant resolution and tenant domain management endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from opsportal.config import settings
from opsportal.features.identity.dependencies import CurrentProfile, MspAdmin
from opsportal.features.tenants.dependencies import (
    CurrentTenant,
    RequestHost,
    ResolverDep,
    TenantServiceDep,
)
from opsportal.features.tenants.preview import generate_preview_url
from opsportal.schemas.common import PaginatedResponse
from opsportal.schemas.tenant import (
    DomainAvailability,
    PreviewURL,
    TenantAccessConfigRead,
    TenantAccessConfigUpsert,
    TenantDomainCreate,
    TenantDomainRead,
    TenantDomainUpdate,
    TenantResolution,
    TenantStats,
    TenantToggle,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


# Resolution (public: the login page is branded too)

@router.get("/resolve", response_model=TenantResolution | None)
async def resolve_tenant(
    resolver: ResolverDep,
    domain: str = Query(..., min_length=1, max_length=255),
) -> TenantResolution | None:
    """
    Resolve a domain to its tenant.

    ``null`` when the domain is not registered; 503 when the lookup fails.
    """
    return await resolver.resolve_by_domain(domain)


@router.get("/current", response_model=TenantResolution | None)
async def current_tenant(tenant: CurrentTenant) -> TenantResolution | None:
    """Tenant of the host this request was sent to."""
    return tenant


@router.post("/resolve/refetch", response_model=TenantResolution | None)
async def refetch_tenant(
    resolver: ResolverDep,
    profile: CurrentProfile,
    domain: str = Query(..., min_length=1, max_length=255),
) -> TenantResolution | None:
    """Drop the cached resolution of a domain and resolve it again."""
    return await resolver.refetch(domain)


# Administration (MSP admins)

@router.get("/availability", response_model=DomainAvailability)
async def domain_availability(
    resolver: ResolverDep,
    admin: MspAdmin,
    domain_name: str = Query(..., min_length=1, max_length=255),
    exclude_id: str | None = Query(None),
) -> DomainAvailability:
    available = await resolver.validate_domain_availability(domain_name, exclude_id=exclude_id)
    return DomainAvailability(domain_name=domain_name.strip().lower(), available=available)


@router.get("/preview-url", response_model=PreviewURL)
async def preview_url(
    host: RequestHost,
    admin: MspAdmin,
    domain_name: str = Query(..., min_length=1, max_length=255),
) -> PreviewURL:
    url = generate_preview_url(domain_name, host, settings.preview_dev_port)
    return PreviewURL(domain_name=domain_name, url=url)


@router.get("", response_model=PaginatedResponse[TenantDomainRead])
async def list_tenant_domains(
    service: TenantServiceDep,
    admin: MspAdmin,
    tenant_type: Annotated[str | None, Query(pattern="^(esn|client|msp)$")] = None,
    organization_id: str | None = None,
    is_active: bool | None = None,
    search: str | None = Query(None, max_length=255),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> PaginatedResponse[TenantDomainRead]:
    domains, total = await service.list_domains(
        tenant_type=tenant_type,
        organization_id=organization_id,
        is_active=is_active,
        search=search,
        skip=skip,
        limit=limit,
    )
    return PaginatedResponse[TenantDomainRead](
        items=[TenantDomainRead.model_validate(domain) for domain in domains],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.post("", response_model=TenantDomainRead, status_code=status.HTTP_201_CREATED)
async def create_tenant_domain(
    data: TenantDomainCreate,
    service: TenantServiceDep,
    admin: MspAdmin,
    host: RequestHost,
) -> TenantDomainRead:
    """
    Register a tenant domain.

    Default access rows are created for the owner and its related MSP/ESN.
    409 when an active domain already owns the name.
    """
    domain = await service.create_domain(data, created_by=admin.id, current_host=host)
    logger.info(f"Tenant domain {domain.domain_name} created by {admin.id}")
    return TenantDomainRead.model_validate(domain)


@router.get("/{tenant_id}", response_model=TenantDomainRead)
async def get_tenant_domain(
    tenant_id: str,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> TenantDomainRead:
    return TenantDomainRead.model_validate(await service.get_domain(tenant_id))


@router.patch("/{tenant_id}", response_model=TenantDomainRead)
async def update_tenant_domain(
    tenant_id: str,
    data: TenantDomainUpdate,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> TenantDomainRead:
    domain = await service.update_domain(tenant_id, data)
    logger.info(f"Tenant domain {tenant_id} updated by {admin.id}")
    return TenantDomainRead.model_validate(domain)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant_domain(
    tenant_id: str,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> Response:
    await service.delete_domain(tenant_id)
    logger.info(f"Tenant domain {tenant_id} deleted by {admin.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{tenant_id}/toggle", response_model=TenantDomainRead)
async def toggle_tenant_domain(
    tenant_id: str,
    data: TenantToggle,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> TenantDomainRead:
    domain = await service.toggle_active(tenant_id, data.is_active)
    return TenantDomainRead.model_validate(domain)


@router.get("/{tenant_id}/stats", response_model=TenantStats)
async def tenant_domain_stats(
    tenant_id: str,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> TenantStats:
    return await service.tenant_stats(tenant_id)


@router.get("/{tenant_id}/access", response_model=list[TenantAccessConfigRead])
async def list_tenant_access(
    tenant_id: str,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> list[TenantAccessConfigRead]:
    configs = await service.list_access(tenant_id)
    return [TenantAccessConfigRead.model_validate(config) for config in configs]


@router.put("/{tenant_id}/access", response_model=TenantAccessConfigRead)
async def configure_tenant_access(
    tenant_id: str,
    data: TenantAccessConfigUpsert,
    service: TenantServiceDep,
    admin: MspAdmin,
) -> TenantAccessConfigRead:
    """Create or replace the access config of one organization on a domain."""
    config = await service.configure_access(tenant_id, data)
    return TenantAccessConfigRead.model_validate(config)
