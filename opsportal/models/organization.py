"""
Organization, team and membership models.

Organizations are the tenants of the platform. An MSP operates the
platform; clients are served by an MSP, optionally through an ESN partner.
"""

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsportal.models.base import BaseModel


class Organization(BaseModel):
    """Customer, partner or operator organization."""

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Organization name"
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="client",
        comment="Organization type: msp, client or esn"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    teams: Mapped[list["Team"]] = relationship(
        "Team",
        back_populates="organization",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name}, type={self.type})>"


class Team(BaseModel):
    """Team inside an organization; the finest session scope."""

    __tablename__ = "teams"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        back_populates="teams",
    )


class OrganizationMembership(BaseModel):
    """A profile's membership of an organization."""

    __tablename__ = "organization_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "organization_id", name="uq_organization_membership"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class TeamMembership(BaseModel):
    """A profile's membership of a team."""

    __tablename__ = "team_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "team_id", name="uq_team_membership"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    team_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class MspClientRelation(BaseModel):
    """
    Service relation between an MSP and a client, optionally via an ESN.

    Drives which organizations may see a client's or an ESN's tenant domain.
    """

    __tablename__ = "msp_client_relations"

    msp_organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    client_organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    esn_organization_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    relation_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="direct",
        comment="direct (MSP to client) or via_esn"
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
