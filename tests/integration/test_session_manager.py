"""
Integration tests for the session context manager.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from opsportal.core.context import clear_request_context, get_request_context
from opsportal.core.exceptions import NestedContextSwitchError
from opsportal.features.session.dependencies import get_session_context
from opsportal.features.session.directory import SessionDirectory
from opsportal.features.session.manager import SessionContextManager
from opsportal.features.session.registry import SessionRegistry
from opsportal.models import TeamMembership
from opsportal.schemas.tenant import TenantResolution
from tests.factories import (
    MembershipFactory,
    OrganizationFactory,
    ProfileFactory,
    RoleFactory,
    TeamFactory,
    UserRoleFactory,
)


@pytest.fixture
def directory(session_factory) -> SessionDirectory:
    return SessionDirectory(session_factory)


@pytest.mark.integration
class TestInitializeSession:

    async def test_uses_profile_defaults(self, directory, member_profile, client_org, client_team):
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session() is True

        context = manager.get_session_context()
        assert context.user_id == member_profile.id
        assert context.organization_id == client_org.id
        assert context.team_id == client_team.id
        assert context.is_msp_admin is False
        assert manager.has_valid_context() is True
        assert manager.get_user_profile().email == member_profile.email

    async def test_explicit_scope(self, db_session, directory, member_profile, client_org):
        second_team = await TeamFactory.create(db_session, client_org, name="Helpdesk")
        db_session.add(TeamMembership(user_id=member_profile.id, team_id=second_team.id))
        await db_session.commit()
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session(client_org.id, second_team.id) is True
        assert manager.get_current_team_id() == second_team.id

    async def test_without_default_scope_fails(self, db_session, directory):
        profile = await ProfileFactory.create(db_session)
        manager = SessionContextManager(profile.id, directory)
        received = []
        manager.subscribe(received.append)

        assert await manager.initialize_session() is False
        assert manager.get_session_context() is None
        assert manager.has_valid_context() is False
        assert received == [None]

    async def test_unknown_profile_fails(self, directory):
        manager = SessionContextManager("no-such-profile", directory)

        assert await manager.initialize_session() is False
        assert manager.get_user_profile() is None

    async def test_inactive_profile_fails(self, db_session, directory, client_org, client_team):
        profile = await ProfileFactory.create(
            db_session,
            is_active=False,
            default_organization_id=client_org.id,
            default_team_id=client_team.id,
        )
        await MembershipFactory.create(db_session, profile, client_org, client_team)
        manager = SessionContextManager(profile.id, directory)

        assert await manager.initialize_session() is False

    async def test_non_member_is_refused(self, directory, member_profile, msp_org, msp_team):
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session(msp_org.id, msp_team.id) is False
        assert manager.get_session_context() is None

    async def test_team_of_other_organization_is_refused(
        self, directory, member_profile, client_org, msp_team
    ):
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session(client_org.id, msp_team.id) is False

    async def test_failed_initialize_clears_previous_context(
        self, directory, member_profile, msp_org, msp_team
    ):
        manager = SessionContextManager(member_profile.id, directory)
        await manager.initialize_session()

        assert await manager.initialize_session(msp_org.id, msp_team.id) is False
        assert manager.get_session_context() is None

    async def test_loads_active_role_assignments(
        self, db_session, directory, member_profile, client_org, client_team, msp_org
    ):
        member_role = await RoleFactory.create(db_session, name="team_member")
        global_role = await RoleFactory.create(db_session, name="viewer")
        expired_role = await RoleFactory.create(db_session, name="team_manager")
        other_role = await RoleFactory.create(db_session, name="team_admin")
        await UserRoleFactory.create(
            db_session, member_profile, member_role,
            organization_id=client_org.id, team_id=client_team.id,
        )
        await UserRoleFactory.create(db_session, member_profile, global_role)
        await UserRoleFactory.create(
            db_session, member_profile, expired_role,
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        )
        await UserRoleFactory.create(
            db_session, member_profile, other_role, organization_id=msp_org.id,
        )
        manager = SessionContextManager(member_profile.id, directory)

        await manager.initialize_session()

        names = {assignment.role_name for assignment in manager.get_session_context().role_assignments}
        assert names == {"team_member", "viewer"}


@pytest.mark.integration
class TestSwitchContext:

    async def test_switch_to_member_scope(self, db_session, directory, member_profile, client_org):
        helpdesk = await TeamFactory.create(db_session, client_org, name="Helpdesk")
        db_session.add(TeamMembership(user_id=member_profile.id, team_id=helpdesk.id))
        await db_session.commit()
        manager = SessionContextManager(member_profile.id, directory)
        await manager.initialize_session()

        assert await manager.switch_context(client_org.id, helpdesk.id) is True
        assert manager.get_current_team_id() == helpdesk.id
        assert manager.get_current_organization_id() == client_org.id

    async def test_refused_switch_keeps_previous_context(
        self, directory, member_profile, msp_org, msp_team
    ):
        manager = SessionContextManager(member_profile.id, directory)
        await manager.initialize_session()
        before = manager.get_session_context()
        received = []
        manager.subscribe(received.append)

        assert await manager.switch_context(msp_org.id, msp_team.id) is False
        assert manager.get_session_context() is before
        assert received == []

    async def test_switch_without_session(self, directory, member_profile, client_org, client_team):
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.switch_context(client_org.id, client_team.id) is False
        assert manager.get_session_context() is None

    async def test_msp_admin_switches_without_membership(
        self, directory, msp_admin_profile, client_org, client_team
    ):
        manager = SessionContextManager(msp_admin_profile.id, directory)
        await manager.initialize_session()

        assert await manager.switch_context(client_org.id, client_team.id) is True
        assert manager.is_msp_admin() is True
        assert manager.get_current_organization_id() == client_org.id

    async def test_msp_admin_cannot_pick_foreign_team(
        self, directory, msp_admin_profile, client_org, msp_team
    ):
        manager = SessionContextManager(msp_admin_profile.id, directory)
        await manager.initialize_session()

        assert await manager.switch_context(client_org.id, msp_team.id) is False

    async def test_concurrent_switches_apply_in_order(
        self, db_session, directory, msp_admin_profile, client_org, client_team
    ):
        other_org = await OrganizationFactory.create(db_session)
        other_team = await TeamFactory.create(db_session, other_org)
        manager = SessionContextManager(msp_admin_profile.id, directory)
        await manager.initialize_session()
        seen = []
        manager.subscribe(lambda context: seen.append(context.organization_id))

        results = await asyncio.gather(
            manager.switch_context(client_org.id, client_team.id),
            manager.switch_context(other_org.id, other_team.id),
        )

        assert results == [True, True]
        assert seen == [client_org.id, other_org.id]
        context = manager.get_session_context()
        assert (context.organization_id, context.team_id) == (other_org.id, other_team.id)


@pytest.mark.integration
class TestSubscribers:

    async def test_notified_in_subscription_order(self, directory, member_profile):
        manager = SessionContextManager(member_profile.id, directory)
        calls = []
        manager.subscribe(lambda context: calls.append("first"))
        manager.subscribe(lambda context: calls.append("second"))

        await manager.initialize_session()

        assert calls == ["first", "second"]

    async def test_unsubscribe(self, directory, member_profile):
        manager = SessionContextManager(member_profile.id, directory)
        calls = []
        unsubscribe = manager.subscribe(calls.append)
        unsubscribe()
        unsubscribe()

        await manager.initialize_session()

        assert calls == []

    async def test_failing_subscriber_does_not_stop_others(self, directory, member_profile):
        manager = SessionContextManager(member_profile.id, directory)
        received = []

        def broken(context):
            raise RuntimeError("subscriber bug")

        manager.subscribe(broken)
        manager.subscribe(received.append)

        assert await manager.initialize_session() is True
        assert received == [manager.get_session_context()]

    async def test_clear_session_notifies_none(self, directory, member_profile):
        manager = SessionContextManager(member_profile.id, directory)
        await manager.initialize_session()
        received = []
        manager.subscribe(received.append)

        await manager.clear_session()

        assert received == [None]
        assert manager.get_session_context() is None
        assert manager.get_user_profile() is None

    async def test_switch_from_subscriber_is_rejected(
        self, directory, member_profile, client_org, client_team
    ):
        manager = SessionContextManager(member_profile.id, directory)
        spawned: list[asyncio.Task] = []

        def reentrant(context):
            if context is not None:
                spawned.append(asyncio.create_task(manager.switch_context(client_org.id, client_team.id)))

        manager.subscribe(reentrant)
        await manager.initialize_session()

        assert len(spawned) == 1
        with pytest.raises(NestedContextSwitchError):
            await spawned[0]

    async def test_other_manager_may_switch_from_subscriber(
        self, directory, member_profile, msp_admin_profile
    ):
        manager = SessionContextManager(member_profile.id, directory)
        other = SessionContextManager(msp_admin_profile.id, directory)
        spawned: list[asyncio.Task] = []

        def chain(context):
            if context is not None:
                spawned.append(asyncio.create_task(other.initialize_session()))

        manager.subscribe(chain)
        await manager.initialize_session()

        assert await spawned[0] is True
        assert other.has_valid_context() is True


def tenant_of(organization, *allowed) -> TenantResolution:
    return TenantResolution(
        tenant_id="tenant-1",
        organization_id=organization.id,
        tenant_type=organization.type,
        domain_name="acme",
        full_url="https://acme.example.com",
        allowed_organizations=[organization.id, *(org.id for org in allowed)],
    )


@pytest.mark.integration
class TestTenantAdmission:
    """On a tenant host the session organization must be allowed on the tenant."""

    async def test_initialize_on_own_tenant(self, directory, member_profile, client_org):
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session(tenant=tenant_of(client_org)) is True

    async def test_initialize_on_foreign_tenant_is_refused(self, db_session, directory, member_profile):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        manager = SessionContextManager(member_profile.id, directory)

        assert await manager.initialize_session(tenant=tenant_of(globex)) is False
        assert manager.get_session_context() is None

    async def test_related_organization_is_admitted(self, db_session, directory, msp_org, msp_team, client_org):
        operator = await ProfileFactory.create(
            db_session, default_organization_id=msp_org.id, default_team_id=msp_team.id
        )
        await MembershipFactory.create(db_session, operator, msp_org, msp_team)
        manager = SessionContextManager(operator.id, directory)

        assert await manager.initialize_session(tenant=tenant_of(client_org, msp_org)) is True

    async def test_switch_to_organization_outside_tenant_is_refused(
        self, db_session, directory, member_profile, client_org
    ):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        globex_team = await TeamFactory.create(db_session, globex, name="Ops")
        await MembershipFactory.create(db_session, member_profile, globex, globex_team)
        manager = SessionContextManager(member_profile.id, directory)
        tenant = tenant_of(client_org)
        await manager.initialize_session(tenant=tenant)
        before = manager.get_session_context()

        assert await manager.switch_context(globex.id, globex_team.id, tenant=tenant) is False
        assert manager.get_session_context() is before
        assert await manager.switch_context(globex.id, globex_team.id) is True

    async def test_msp_admin_is_not_restricted(self, db_session, directory, msp_admin_profile):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        manager = SessionContextManager(msp_admin_profile.id, directory)

        assert await manager.initialize_session(tenant=tenant_of(globex)) is True


@pytest.mark.integration
class TestSessionRegistry:

    def test_one_manager_per_tab(self, session_factory):
        registry = SessionRegistry(session_factory)

        first = registry.get_or_create("user-1", "tab-a")

        assert registry.get_or_create("user-1", "tab-a") is first
        assert registry.get_or_create("user-1", "tab-b") is not first
        assert registry.get("user-2", "tab-a") is None
        assert len(registry) == 2

        registry.discard("user-1", "tab-a")
        registry.discard("user-1", "tab-a")

        assert registry.get("user-1", "tab-a") is None
        assert len(registry) == 1

    def test_session_ids_are_scoped_by_identity(self, session_factory):
        registry = SessionRegistry(session_factory)

        assert registry.get_or_create("user-1", "tab") is not registry.get_or_create("user-2", "tab")

    def test_discard_user_drops_every_tab(self, session_factory):
        registry = SessionRegistry(session_factory)
        registry.get_or_create("user-1", "tab-a")
        registry.get_or_create("user-1", "tab-b")
        registry.get_or_create("user-2", "tab-a")

        assert registry.discard_user("user-1") == 2
        assert registry.sessions_of("user-1") == []
        assert len(registry) == 1

    def test_idle_sessions_are_evicted(self, session_factory):
        now = [1000.0]
        registry = SessionRegistry(session_factory, idle_timeout=60, clock=lambda: now[0])
        idle = registry.get_or_create("user-1", "tab-a")
        now[0] += 30
        registry.get_or_create("user-1", "tab-b")
        now[0] += 45

        fresh = registry.get_or_create("user-1", "tab-c")

        assert registry.get("user-1", "tab-a") is None
        assert registry.get("user-1", "tab-b") is not None
        assert registry.get_or_create("user-1", "tab-a") is not idle
        assert fresh is registry.get("user-1", "tab-c")

    def test_new_session_ids_are_unique(self):
        assert SessionRegistry.new_session_id() != SessionRegistry.new_session_id()


@pytest.mark.integration
class TestSessionContextDependency:

    async def test_sets_organization_log_context(self, directory, member_profile, client_org):
        manager = SessionContextManager(member_profile.id, directory)
        clear_request_context()

        context = await get_session_context(manager, tenant=None)

        assert context.organization_id == client_org.id
        assert get_request_context()["organization_id"] == client_org.id
        clear_request_context()

    async def test_lazy_initialize_respects_tenant(self, db_session, directory, member_profile):
        globex = await OrganizationFactory.create(db_session, type="client", name="Globex")
        manager = SessionContextManager(member_profile.id, directory)
        clear_request_context()

        assert await get_session_context(manager, tenant=tenant_of(globex)) is None
        assert "organization_id" not in get_request_context()
