"""
Render-time portal configuration derived from a detection.
"""

from opsportal.features.portal.modules import READ_ONLY_MODULES
from opsportal.schemas.portal import (
    ModulePermission,
    PortalBranding,
    PortalConfig,
    PortalDetection,
    PortalFeatures,
    PortalUIConfig,
)
from opsportal.schemas.tenant import TenantResolution

MSP_BRANDING = PortalBranding(
    company_name="MSP Administration",
    primary_color="#3b82f6",
    accent_color="#1e40af",
)

CLIENT_PRIMARY_COLOR = "#059669"
CLIENT_ACCENT_COLOR = "#047857"
CLIENT_COMPANY_NAME = "Client Portal"


def build_portal_config(
    detection: PortalDetection,
    tenant: TenantResolution | None,
) -> PortalConfig:
    """Branding, UI flags and features of the detected portal."""
    modules = list(detection.user_access.accessible_modules)

    if detection.portal_type == "msp_admin":
        config = PortalConfig(
            type="msp_admin",
            allowed_modules=modules,
            branding=MSP_BRANDING.model_copy(),
            ui_config=PortalUIConfig(
                show_msp_branding=True,
                show_organization_selector=True,
                show_team_selector=True,
                theme="light",
            ),
            features=PortalFeatures(
                multi_tenant_access=True,
                cross_organization_view=True,
                admin_settings_access=True,
                cloud_management=True,
                user_management=True,
            ),
        )
    else:
        tenant_info = detection.tenant_info
        branding = PortalBranding(
            company_name=(tenant_info.organization_name if tenant_info else None) or CLIENT_COMPANY_NAME,
            primary_color=CLIENT_PRIMARY_COLOR,
            accent_color=CLIENT_ACCENT_COLOR,
        )
        theme = "light"

        if tenant is not None:
            custom = tenant.branding
            branding = PortalBranding(
                company_name=custom.company_name or branding.company_name,
                primary_color=custom.primary_color or branding.primary_color,
                accent_color=custom.accent_color or branding.accent_color,
                logo=custom.logo,
                favicon=custom.favicon,
            )
            theme = tenant.ui_config.theme or theme

        config = PortalConfig(
            type=detection.portal_type,
            tenant_domain=tenant.domain_name if tenant else None,
            organization_id=tenant_info.organization_id if tenant_info else None,
            allowed_modules=modules,
            branding=branding,
            ui_config=PortalUIConfig(
                show_msp_branding=False,
                show_organization_selector=False,
                show_team_selector=True,
                theme=theme,
            ),
            features=PortalFeatures(
                cloud_management="cloud" in modules,
                user_management="users" in modules,
            ),
        )

    config.module_permissions = {
        module: module_permission(config, module) for module in modules
    }
    return config


def can_access_module(config: PortalConfig, module_id: str) -> bool:
    return module_id in config.allowed_modules


def module_permission(config: PortalConfig, module_id: str) -> ModulePermission:
    """
    Access level of a module.

    ``admin`` everywhere on the MSP portal; on client portals ``read`` for
    monitoring and security, ``write`` for the rest.
    """
    if not can_access_module(config, module_id):
        return "none"
    if config.type == "msp_admin":
        return "admin"
    if module_id in READ_ONLY_MODULES:
        return "read"
    return "write"
