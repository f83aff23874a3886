"""
Tenant domain models.

A tenant domain maps an inbound host name to the organization whose data,
branding and modules the portal serves on that host.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from opsportal.models.base import BaseModel


class TenantDomain(BaseModel):
    """
    Host name registered for an organization.

    ``domain_name`` is stored lower-cased. Only one active row may own a
    given name; inactive rows keep their name for history.
    """

    __tablename__ = "tenant_domains"

    domain_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Lower-cased host name or sub-domain label"
    )

    full_url: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Canonical URL of the portal on this domain"
    )

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    tenant_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="esn, client or msp"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    branding: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    ui_config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
    )

    created_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    access_configs: Mapped[list["TenantAccessConfig"]] = relationship(
        "TenantAccessConfig",
        back_populates="tenant_domain",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<TenantDomain(id={self.id}, domain_name={self.domain_name})>"


Index(
    "uq_tenant_domains_active_name",
    TenantDomain.domain_name,
    unique=True,
    sqlite_where=text("is_active = 1"),
    postgresql_where=text("is_active"),
)


class TenantAccessConfig(BaseModel):
    """
    Module access of one organization on one tenant domain.

    The row for the domain owner is the domain's primary config. No row
    means full access.
    """

    __tablename__ = "tenant_access_configs"
    __table_args__ = (
        UniqueConstraint(
            "tenant_domain_id",
            "organization_id",
            name="uq_tenant_access_domain_org",
        ),
    )

    tenant_domain_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tenant_domains.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    access_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="full",
        comment="full, limited or readonly"
    )

    allowed_modules: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    access_restrictions: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    tenant_domain: Mapped["TenantDomain"] = relationship(
        "TenantDomain",
        back_populates="access_configs",
    )
