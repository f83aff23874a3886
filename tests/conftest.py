"""
Pytest fixtures for all tests.

Provides:
- A fresh SQLite database per test (file based, so long-lived services
  and request handlers get their own connections)
- In-memory cache standing in for Redis
- HTTP clients with identity tokens
- Factory-backed fixtures for organizations, teams and profiles
"""

import json
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from opsportal.core.cache import get_cache
from opsportal.core.database import Base, get_db, get_session_factory
from opsportal.features.tenants.resolver import TenantResolver
from opsportal.main import create_application
from opsportal.models import Organization, Team, UserProfile
from tests.factories import (
    MembershipFactory,
    OrganizationFactory,
    ProfileFactory,
    TeamFactory,
    make_token,
)


class MockCacheManager:
    """
    In-memory stand-in for CacheManager.

    Values go through JSON like they do in Redis, so cached resolutions
    come back as plain dicts.
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False

    def _key(self, namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Any | None:
        if self.fail:
            return None
        value = self.store.get(self._key(namespace, key))
        return json.loads(value) if value is not None else None

    async def set(self, namespace: str, key: str, value: Any, ttl: int | None = None) -> bool:
        if self.fail:
            return False
        self.store[self._key(namespace, key)] = json.dumps(value, default=str)
        self.ttls[self._key(namespace, key)] = ttl
        return True

    async def delete(self, namespace: str, key: str) -> bool:
        return self.store.pop(self._key(namespace, key), None) is not None

    async def invalidate_namespace(self, namespace: str) -> int:
        keys = [key for key in self.store if key.startswith(f"{namespace}:")]
        for key in keys:
            del self.store[key]
        return len(keys)


@pytest_asyncio.fixture
async def test_db_engine(tmp_path):
    """Create tables in a throwaway SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session used by the test body to arrange and inspect data."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_cache() -> MockCacheManager:
    return MockCacheManager()


@pytest.fixture
def resolver(session_factory, mock_cache) -> TenantResolver:
    return TenantResolver(session_factory, mock_cache, ttl=600)


@pytest_asyncio.fixture
async def app(session_factory, mock_cache):
    """
    Create FastAPI test application.

    Overrides the database, session factory and cache dependencies.
    """
    application = create_application()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_session_factory] = lambda: session_factory
    application.dependency_overrides[get_cache] = lambda: mock_cache

    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing API endpoints.

    Usage:
        async def test_endpoint(client):
            response = await client.get("/api/v1/tenants/current")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://portal.test") as ac:
        yield ac


# Scenario data

@pytest_asyncio.fixture
async def msp_org(db_session: AsyncSession) -> Organization:
    return await OrganizationFactory.create(db_session, type="msp", name="Northwind MSP")


@pytest_asyncio.fixture
async def client_org(db_session: AsyncSession) -> Organization:
    return await OrganizationFactory.create(db_session, type="client", name="Acme Corporation")


@pytest_asyncio.fixture
async def msp_team(db_session: AsyncSession, msp_org: Organization) -> Team:
    return await TeamFactory.create(db_session, msp_org, name="Operations")


@pytest_asyncio.fixture
async def client_team(db_session: AsyncSession, client_org: Organization) -> Team:
    return await TeamFactory.create(db_session, client_org, name="IT")


@pytest_asyncio.fixture
async def member_profile(
    db_session: AsyncSession,
    client_org: Organization,
    client_team: Team,
) -> UserProfile:
    """Member of the client organization and its IT team."""
    profile = await ProfileFactory.create(
        db_session,
        default_organization_id=client_org.id,
        default_team_id=client_team.id,
    )
    await MembershipFactory.create(db_session, profile, client_org, client_team)
    return profile


@pytest_asyncio.fixture
async def msp_admin_profile(
    db_session: AsyncSession,
    msp_org: Organization,
    msp_team: Team,
) -> UserProfile:
    profile = await ProfileFactory.create(
        db_session,
        is_msp_admin=True,
        default_organization_id=msp_org.id,
        default_team_id=msp_team.id,
    )
    await MembershipFactory.create(db_session, profile, msp_org, msp_team)
    return profile


@pytest.fixture
def member_token(member_profile: UserProfile) -> str:
    return make_token(member_profile.id)


@pytest.fixture
def admin_token(msp_admin_profile: UserProfile) -> str:
    return make_token(msp_admin_profile.id)


@pytest_asyncio.fixture
async def member_client(client: AsyncClient, member_token: str) -> AsyncClient:
    """HTTP client authenticated as the client member."""
    client.headers.update({"Authorization": f"Bearer {member_token}"})
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_token: str) -> AsyncClient:
    """HTTP client authenticated as the MSP admin."""
    client.headers.update({"Authorization": f"Bearer {admin_token}"})
    return client
