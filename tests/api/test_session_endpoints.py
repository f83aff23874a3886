"""
API tests for session context endpoints.
"""

import pytest
from httpx import AsyncClient

from tests.factories import MembershipFactory, OrganizationFactory, TeamFactory, TenantDomainFactory


async def start_tab(client: AsyncClient, **kwargs) -> dict[str, str]:
    """Initialize a new tab session and return the headers addressing it."""
    response = await client.post("/api/v1/session/initialize", **kwargs)
    assert response.headers["x-session-id"] == response.json()["session_id"]
    return {"X-Session-ID": response.json()["session_id"]}


@pytest.mark.api
class TestSessionEndpoints:
    """Session context lifecycle over HTTP."""

    async def test_requires_identity(self, client: AsyncClient):
        response = await client.get("/api/v1/session")

        assert response.status_code == 401

    async def test_session_starts_empty(self, member_client: AsyncClient):
        response = await member_client.get("/api/v1/session", headers={"X-Session-ID": "fresh-tab"})

        assert response.status_code == 200
        data = response.json()
        assert data["has_valid_context"] is False
        assert data["context"] is None
        assert data["session_id"] == "fresh-tab"

    async def test_initialize_with_defaults(self, member_client: AsyncClient, member_profile, client_org, client_team):
        response = await member_client.post("/api/v1/session/initialize")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["session_id"]
        assert data["has_valid_context"] is True
        assert data["context"]["organization_id"] == client_org.id
        assert data["context"]["team_id"] == client_team.id
        assert data["profile"]["email"] == member_profile.email

        again = await member_client.get("/api/v1/session", headers={"X-Session-ID": data["session_id"]})
        assert again.json()["context"] == data["context"]

    async def test_without_session_id_nothing_is_kept(self, member_client: AsyncClient):
        await member_client.post("/api/v1/session/initialize")

        response = await member_client.get("/api/v1/session")

        assert response.json()["context"] is None

    async def test_initialize_outside_membership(self, member_client: AsyncClient, msp_org, msp_team):
        response = await member_client.post(
            "/api/v1/session/initialize",
            json={"organization_id": msp_org.id, "team_id": msp_team.id},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert response.json()["context"] is None

    async def test_refused_switch_keeps_context(self, member_client: AsyncClient, client_org, msp_org, msp_team):
        """A switch to a scope the member does not belong to changes nothing."""
        tab = await start_tab(member_client)

        response = await member_client.post(
            "/api/v1/session/switch",
            json={"organization_id": msp_org.id, "team_id": msp_team.id},
            headers=tab,
        )

        data = response.json()
        assert data["success"] is False
        assert data["context"]["organization_id"] == client_org.id

    async def test_admin_switches_to_client(self, admin_client: AsyncClient, client_org, client_team):
        tab = await start_tab(admin_client)

        response = await admin_client.post(
            "/api/v1/session/switch",
            json={"organization_id": client_org.id, "team_id": client_team.id},
            headers=tab,
        )

        data = response.json()
        assert data["success"] is True
        assert data["context"]["organization_id"] == client_org.id
        assert data["context"]["is_msp_admin"] is True

    async def test_tabs_hold_separate_contexts(
        self, admin_client: AsyncClient, msp_org, client_org, client_team
    ):
        first = await start_tab(admin_client)
        second = await start_tab(admin_client)
        assert first != second

        await admin_client.post(
            "/api/v1/session/switch",
            json={"organization_id": client_org.id, "team_id": client_team.id},
            headers=first,
        )

        first_state = await admin_client.get("/api/v1/session", headers=first)
        second_state = await admin_client.get("/api/v1/session", headers=second)
        assert first_state.json()["context"]["organization_id"] == client_org.id
        assert second_state.json()["context"]["organization_id"] == msp_org.id

    async def test_switch_validates_payload(self, member_client: AsyncClient):
        response = await member_client.post("/api/v1/session/switch", json={"organization_id": ""})

        assert response.status_code == 422

    async def test_clear_session(self, member_client: AsyncClient):
        tab = await start_tab(member_client)

        response = await member_client.delete("/api/v1/session", headers=tab)

        assert response.status_code == 204
        assert (await member_client.get("/api/v1/session", headers=tab)).json()["context"] is None

    async def test_sign_out_clears_every_tab(self, app, member_client: AsyncClient, member_profile):
        first = await start_tab(member_client)
        second = await start_tab(member_client)

        response = await member_client.delete("/api/v1/session")

        assert response.status_code == 204
        assert app.state.session_registry.sessions_of(member_profile.id) == []
        for tab in (first, second):
            assert (await member_client.get("/api/v1/session", headers=tab)).json()["context"] is None


@pytest.mark.api
class TestSessionOnTenantHost:
    """The session organization must be allowed on the tenant of the host."""

    async def test_initialize_on_own_tenant(self, member_client: AsyncClient, db_session, client_org):
        await TenantDomainFactory.create(db_session, client_org, domain_name="acme")

        response = await member_client.post("/api/v1/session/initialize", headers={"host": "acme.portal.test"})

        assert response.json()["success"] is True

    async def test_initialize_on_foreign_tenant_is_refused(self, member_client: AsyncClient, db_session):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        await TenantDomainFactory.create(db_session, globex, domain_name="globex")

        response = await member_client.post("/api/v1/session/initialize", headers={"host": "globex.portal.test"})

        assert response.json()["success"] is False
        assert response.json()["context"] is None

    async def test_switch_to_organization_outside_tenant(
        self, member_client: AsyncClient, db_session, member_profile, client_org
    ):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        globex_team = await TeamFactory.create(db_session, globex, name="Ops")
        await MembershipFactory.create(db_session, member_profile, globex, globex_team)
        await TenantDomainFactory.create(db_session, client_org, domain_name="acme")
        tab = {"host": "acme.portal.test", **await start_tab(member_client, headers={"host": "acme.portal.test"})}

        response = await member_client.post(
            "/api/v1/session/switch",
            json={"organization_id": globex.id, "team_id": globex_team.id},
            headers=tab,
        )

        assert response.json()["success"] is False
        assert response.json()["context"]["organization_id"] == client_org.id
