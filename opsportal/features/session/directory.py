"""
Identity lookups backing the session context manager.

Each call opens its own short database session, so a manager can outlive
the request that created it.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsportal.features.rbac.queries import load_active_user_roles
from opsportal.models.organization import OrganizationMembership, Team, TeamMembership
from opsportal.models.profile import UserProfile
from opsportal.schemas.session import RoleAssignment, UserProfileRead


class SessionDirectory:
    """Profile, membership and role lookups for one process."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_profile(self, user_id: str) -> UserProfileRead | None:
        async with self._session_factory() as session:
            profile = await session.get(UserProfile, user_id)
            return UserProfileRead.model_validate(profile) if profile else None

    async def team_organization(self, team_id: str) -> str | None:
        """Organization owning a team, or None for an unknown team."""
        async with self._session_factory() as session:
            return await session.scalar(
                select(Team.organization_id).where(Team.id == team_id)
            )

    async def is_organization_member(self, user_id: str, organization_id: str) -> bool:
        async with self._session_factory() as session:
            membership_id = await session.scalar(
                select(OrganizationMembership.id).where(
                    OrganizationMembership.user_id == user_id,
                    OrganizationMembership.organization_id == organization_id,
                )
            )
            return membership_id is not None

    async def is_team_member(self, user_id: str, team_id: str) -> bool:
        async with self._session_factory() as session:
            membership_id = await session.scalar(
                select(TeamMembership.id).where(
                    TeamMembership.user_id == user_id,
                    TeamMembership.team_id == team_id,
                )
            )
            return membership_id is not None

    async def role_assignments(
        self,
        user_id: str,
        organization_id: str,
        team_id: str,
    ) -> tuple[RoleAssignment, ...]:
        async with self._session_factory() as session:
            user_roles = await load_active_user_roles(session, user_id, organization_id, team_id)
            return tuple(
                RoleAssignment(
                    role_id=user_role.role_id,
                    role_name=user_role.role.name,
                    organization_id=user_role.organization_id,
                    team_id=user_role.team_id,
                    expires_at=user_role.expires_at,
                )
                for user_role in user_roles
            )
