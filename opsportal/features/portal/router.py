"""
Portal detection endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from opsportal.core.exceptions import TenantAccessDeniedError
from opsportal.features.portal.detector import PortalDetector
from opsportal.features.portal.portal_config import build_portal_config
from opsportal.features.session.dependencies import ActiveContext
from opsportal.features.tenants.dependencies import CurrentTenant
from opsportal.schemas.portal import PortalConfig, PortalDetection
from opsportal.schemas.tenant import TenantResolution

router = APIRouter(prefix="/portal", tags=["Portal"])

detector = PortalDetector()


def get_accessible_tenant(tenant: CurrentTenant, context: ActiveContext) -> TenantResolution | None:
    """
    Tenant of the requested host, provided the session may work on it.

    Raises:
        TenantAccessDeniedError: If the session organization is not allowed on the tenant
    """
    if tenant is None:
        return None
    organization_id = context.organization_id if context else None
    if not tenant.admits(organization_id, context.is_msp_admin if context else False):
        raise TenantAccessDeniedError(tenant.domain_name, organization_id)
    return tenant


AccessibleTenant = Annotated[TenantResolution | None, Depends(get_accessible_tenant)]


@router.get("/detect", response_model=PortalDetection)
async def detect_portal(tenant: AccessibleTenant, context: ActiveContext) -> PortalDetection:
    """Portal type and modules for the caller on the requested host."""
    return detector.detect(tenant, context)


@router.get("/config", response_model=PortalConfig)
async def portal_config(tenant: AccessibleTenant, context: ActiveContext) -> PortalConfig:
    """Branding, UI flags and module permissions of the detected portal."""
    detection = detector.detect(tenant, context)
    return build_portal_config(detection, tenant)
