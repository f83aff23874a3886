"""
Unit tests for tenant schemas.
"""

import pytest
from pydantic import ValidationError

from opsportal.schemas.tenant import (
    TenantBranding,
    TenantDomainCreate,
    TenantDomainUpdate,
    TenantResolution,
    TenantUIConfig,
)


@pytest.mark.unit
class TestExtensibleConfig:
    """Branding and UI configs keep unknown keys instead of rejecting them."""

    def test_known_keys_are_typed(self):
        branding = TenantBranding.model_validate({"company_name": "Acme", "primary_color": "#111"})

        assert branding.company_name == "Acme"
        assert branding.primary_color == "#111"
        assert branding.extensions == {}

    def test_unknown_keys_go_to_extensions(self):
        branding = TenantBranding.model_validate({"company_name": "Acme", "login_banner": "Hi"})

        assert branding.extensions == {"login_banner": "Hi"}
        assert branding.to_storage() == {"company_name": "Acme", "login_banner": "Hi"}

    def test_invalid_known_value_is_preserved_as_extension(self):
        ui = TenantUIConfig.model_validate({"theme": "neon", "sidebar_style": "modern"})

        assert ui.theme is None
        assert ui.sidebar_style == "modern"
        assert ui.extensions == {"theme": "neon"}
        assert ui.to_storage() == {"theme": "neon", "sidebar_style": "modern"}

    def test_none_and_empty(self):
        assert TenantBranding.model_validate(None).to_storage() == {}
        assert TenantUIConfig.model_validate({}).to_storage() == {}

    def test_bool_field_rejects_strings(self):
        ui = TenantUIConfig.model_validate({"show_organization_switcher": "yes"})

        assert ui.show_organization_switcher is None
        assert ui.extensions == {"show_organization_switcher": "yes"}


@pytest.mark.unit
class TestTenantDomainSchemas:

    def test_domain_name_is_normalized(self):
        data = TenantDomainCreate(domain_name="  ACME.Example.com ", organization_id="o", tenant_type="client")
        assert data.domain_name == "acme.example.com"

    def test_domain_name_must_be_host(self):
        with pytest.raises(ValidationError):
            TenantDomainCreate(domain_name="acme/portal", organization_id="o", tenant_type="client")

    def test_tenant_type_is_restricted(self):
        with pytest.raises(ValidationError):
            TenantDomainCreate(domain_name="acme", organization_id="o", tenant_type="partner")

    def test_update_tracks_set_fields(self):
        data = TenantDomainUpdate(is_active=False)
        assert data.model_dump(exclude_unset=True) == {"is_active": False}

    def test_resolution_is_frozen(self):
        resolution = TenantResolution(
            tenant_id="t",
            organization_id="o",
            tenant_type="client",
            domain_name="acme",
            full_url="https://acme.example.com",
        )
        with pytest.raises(ValidationError):
            resolution.domain_name = "other"

    def test_resolution_survives_json_round_trip(self):
        resolution = TenantResolution(
            tenant_id="t",
            organization_id="o",
            tenant_type="esn",
            domain_name="contoso",
            full_url="https://contoso.example.com",
            branding={"company_name": "Contoso", "hero": "x.png"},
            allowed_organizations=["o", "c1"],
        )
        restored = TenantResolution.model_validate(resolution.model_dump(mode="json"))

        assert restored == resolution
        assert restored.branding.extensions == {"hero": "x.png"}

    def test_resolution_admits_owner_and_allowed_organizations(self):
        resolution = TenantResolution(
            tenant_id="t",
            organization_id="client",
            tenant_type="client",
            domain_name="acme",
            full_url="https://acme.example.com",
            allowed_organizations=["client", "msp"],
        )

        assert resolution.admits("client") is True
        assert resolution.admits("msp") is True
        assert resolution.admits("globex") is False
        assert resolution.admits(None) is False
        assert resolution.admits("globex", is_msp_admin=True) is True
