"""
Pydantic schemas for tenant domains, access configs and resolutions.
"""

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from opsportal.schemas.common import BaseSchema

TenantType = Literal["esn", "client", "msp"]
AccessType = Literal["full", "limited", "readonly"]


class ExtensibleConfig(BaseModel):
    """
    Typed view over an open-ended configuration mapping.

    Recognized keys are validated; unknown keys, and recognized keys whose
    value is not acceptable, are kept untouched in ``extensions``.
    """

    model_config = ConfigDict(extra="ignore")

    # key -> accepted type, or tuple of accepted values
    recognized: ClassVar[dict[str, Any]] = {}

    extensions: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def split_extensions(cls, data: Any) -> Any:
        if data is None:
            return {"extensions": {}}
        if not isinstance(data, dict):
            return data

        extensions = dict(data.get("extensions") or {})
        values: dict[str, Any] = {}

        for key, value in data.items():
            if key == "extensions":
                continue
            accepted = cls.recognized.get(key)
            if accepted is None:
                extensions[key] = value
            elif value is None or cls._accepts(accepted, value):
                values[key] = value
            else:
                extensions[key] = value

        values["extensions"] = extensions
        return values

    @staticmethod
    def _accepts(accepted: Any, value: Any) -> bool:
        if isinstance(accepted, tuple):
            return value in accepted
        if accepted is str:
            return isinstance(value, str)
        if accepted is bool:
            return isinstance(value, bool)
        return isinstance(value, accepted)

    def to_storage(self) -> dict[str, Any]:
        """Flatten back to the stored mapping (known keys win over extensions)."""
        known = self.model_dump(exclude={"extensions"}, exclude_none=True)
        return {**self.extensions, **known}


class TenantBranding(ExtensibleConfig):
    """Branding hints of a tenant domain. Every field is optional."""

    recognized: ClassVar[dict[str, Any]] = {
        "logo": str,
        "company_name": str,
        "favicon": str,
        "primary_color": str,
        "secondary_color": str,
        "accent_color": str,
        "custom_css": str,
    }

    logo: str | None = None
    company_name: str | None = None
    favicon: str | None = None
    primary_color: str | None = None
    secondary_color: str | None = None
    accent_color: str | None = None
    custom_css: str | None = None


class TenantUIConfig(ExtensibleConfig):
    """UI configuration hints of a tenant domain. Every field is optional."""

    recognized: ClassVar[dict[str, Any]] = {
        "primary_color": str,
        "secondary_color": str,
        "sidebar_style": ("classic", "modern", "minimal"),
        "theme": ("light", "dark", "auto"),
        "logo_position": ("left", "center", "right"),
        "show_organization_switcher": bool,
        "custom_navigation": list,
    }

    primary_color: str | None = None
    secondary_color: str | None = None
    sidebar_style: Literal["classic", "modern", "minimal"] | None = None
    theme: Literal["light", "dark", "auto"] | None = None
    logo_position: Literal["left", "center", "right"] | None = None
    show_organization_switcher: bool | None = None
    custom_navigation: list[Any] | None = None


# Access configs

class TenantAccessConfigBase(BaseSchema):
    """Module access of one organization on one tenant domain."""

    organization_id: str
    access_type: AccessType = "full"
    allowed_modules: list[str] = Field(default_factory=list)
    access_restrictions: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class TenantAccessConfigUpsert(TenantAccessConfigBase):
    """Payload for PUT /tenants/{id}/access."""
    pass


class TenantAccessConfigRead(TenantAccessConfigBase):

    id: str
    tenant_domain_id: str


# Tenant domains

def _normalize_domain(value: str) -> str:
    value = value.strip().lower()
    if not value:
        raise ValueError("domain_name must not be empty")
    if any(ch.isspace() for ch in value) or "/" in value:
        raise ValueError("domain_name must be a host name")
    return value


class TenantDomainCreate(BaseSchema):
    """Schema for registering a new tenant domain."""

    domain_name: str = Field(..., min_length=1, max_length=255, description="Host name or sub-domain label")
    full_url: str | None = Field(None, max_length=512, description="Defaults to the preview URL of the domain")
    organization_id: str
    tenant_type: TenantType
    branding: TenantBranding = Field(default_factory=TenantBranding)
    ui_config: TenantUIConfig = Field(default_factory=TenantUIConfig)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("domain_name")
    @classmethod
    def normalize_domain_name(cls, value: str) -> str:
        return _normalize_domain(value)


class TenantDomainUpdate(BaseSchema):
    """Schema for updating a tenant domain (all fields optional)."""

    domain_name: str | None = Field(None, min_length=1, max_length=255)
    full_url: str | None = Field(None, max_length=512)
    tenant_type: TenantType | None = None
    is_active: bool | None = None
    branding: TenantBranding | None = None
    ui_config: TenantUIConfig | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("domain_name")
    @classmethod
    def normalize_domain_name(cls, value: str | None) -> str | None:
        return _normalize_domain(value) if value is not None else None


class TenantDomainRead(BaseSchema):
    """Schema for reading tenant domain data."""

    id: str
    domain_name: str
    full_url: str
    organization_id: str
    tenant_type: TenantType
    is_active: bool
    branding: TenantBranding
    ui_config: TenantUIConfig
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra_metadata", "metadata"),
    )
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class TenantToggle(BaseModel):
    is_active: bool


class TenantStats(BaseModel):
    """Usage statistics of a tenant domain."""

    total_organizations: int = 0
    organizations_by_type: dict[str, int] = Field(default_factory=dict)
    access_levels: dict[str, int] = Field(default_factory=dict)


class DomainAvailability(BaseModel):
    domain_name: str
    available: bool


class PreviewURL(BaseModel):
    domain_name: str
    url: str


# Resolution

class TenantResolution(BaseModel):
    """
    Outcome of resolving a host to a tenant.

    Derived on each resolution and cached by domain; never persisted.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    organization_id: str
    organization_name: str | None = None
    tenant_type: TenantType
    domain_name: str
    full_url: str
    branding: TenantBranding = Field(default_factory=TenantBranding)
    ui_config: TenantUIConfig = Field(default_factory=TenantUIConfig)
    allowed_organizations: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    access_config: TenantAccessConfigRead | None = None

    def admits(self, organization_id: str | None, is_msp_admin: bool = False) -> bool:
        """Whether a session of ``organization_id`` may work on this tenant."""
        if is_msp_admin:
            return True
        if not organization_id:
            return False
        return organization_id == self.organization_id or organization_id in self.allowed_organizations


class TenantState(BaseModel):
    """Navigation state of one tab: current target and its resolution."""

    domain: str | None = None
    tenant: TenantResolution | None = None
    loading: bool = False
    error: str | None = None
