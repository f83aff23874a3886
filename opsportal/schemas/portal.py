"""
Pydantic schemas for portal detection and configuration.
"""

from typing import Literal

from pydantic import BaseModel, Field

PortalType = Literal["msp_admin", "client_portal", "esn_portal"]
ModulePermission = Literal["none", "read", "write", "admin"]


class TenantInfo(BaseModel):
    domain_name: str
    organization_id: str
    organization_name: str | None = None


class UserAccess(BaseModel):
    has_admin_access: bool = False
    can_switch_organizations: bool = False
    accessible_modules: list[str] = Field(default_factory=list)


class PortalDetection(BaseModel):
    """Which UI surface to render, and with which modules."""

    portal_type: PortalType
    is_msp_admin_portal: bool
    is_client_portal: bool
    tenant_info: TenantInfo | None = None
    user_access: UserAccess


class PortalBranding(BaseModel):
    company_name: str
    primary_color: str
    accent_color: str | None = None
    logo: str | None = None
    favicon: str | None = None


class PortalUIConfig(BaseModel):
    show_msp_branding: bool
    show_organization_selector: bool
    show_team_selector: bool
    theme: Literal["light", "dark", "auto"] = "light"


class PortalFeatures(BaseModel):
    multi_tenant_access: bool = False
    cross_organization_view: bool = False
    admin_settings_access: bool = False
    cloud_management: bool = False
    user_management: bool = False


class PortalConfig(BaseModel):
    """Render-time configuration derived from a detection."""

    type: PortalType
    tenant_domain: str | None = None
    organization_id: str | None = None
    allowed_modules: list[str]
    branding: PortalBranding
    ui_config: PortalUIConfig
    features: PortalFeatures
    module_permissions: dict[str, ModulePermission] = Field(default_factory=dict)
