"""
Portal detection: which UI surface and which modules to render.

Pure composition of a tenant resolution and a session context; no I/O.
"""

from opsportal.features.portal.modules import (
    ADMIN_MODULES,
    DEFAULT_MODULES,
    FALLBACK_MODULES,
    PORTAL_TYPES,
)
from opsportal.features.tenants.access_store import ALL_MODULES
from opsportal.schemas.portal import PortalDetection, TenantInfo, UserAccess
from opsportal.schemas.session import SessionContext
from opsportal.schemas.tenant import TenantAccessConfigRead, TenantResolution


def accessible_modules(
    portal_type: str,
    access_config: TenantAccessConfigRead | None,
) -> list[str]:
    """
    Modules of a portal type under an access config.

    Full or absent config gives the defaults; otherwise the defaults that
    appear in ``allowed_modules``, in default order. ``"*"`` allows all.
    """
    defaults = DEFAULT_MODULES[portal_type]
    if access_config is None or access_config.access_type == "full":
        return list(defaults)

    allowed = set(access_config.allowed_modules)
    if ALL_MODULES in allowed:
        return list(defaults)
    return [module for module in defaults if module in allowed]


def detect(
    tenant: TenantResolution | None,
    context: SessionContext | None,
) -> PortalDetection:
    """Derive the portal detection of a (tenant, session) pair."""
    is_msp_admin = bool(context and context.is_msp_admin)

    if tenant is None:
        if is_msp_admin:
            portal_type, modules = "msp_admin", list(ADMIN_MODULES)
        else:
            portal_type, modules = "client_portal", list(FALLBACK_MODULES)
        tenant_info = None
    else:
        portal_type = PORTAL_TYPES[tenant.tenant_type]
        modules = accessible_modules(portal_type, tenant.access_config)
        tenant_info = TenantInfo(
            domain_name=tenant.domain_name,
            organization_id=tenant.organization_id,
            organization_name=tenant.organization_name,
        )

    return PortalDetection(
        portal_type=portal_type,
        is_msp_admin_portal=portal_type == "msp_admin",
        is_client_portal=portal_type != "msp_admin",
        tenant_info=tenant_info,
        user_access=UserAccess(
            has_admin_access=is_msp_admin,
            can_switch_organizations=is_msp_admin,
            accessible_modules=modules,
        ),
    )


class PortalDetector:
    """Portal detection behind an injectable object."""

    def detect(
        self,
        tenant: TenantResolution | None,
        context: SessionContext | None,
    ) -> PortalDetection:
        return detect(tenant, context)
