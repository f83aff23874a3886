"""
Per-tenant module access records.

Writes only flush; the caller owns the transaction.
"""

import logging
from collections import Counter

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from opsportal.models.organization import MspClientRelation, Organization
from opsportal.models.tenant import TenantAccessConfig, TenantDomain
from opsportal.schemas.tenant import TenantAccessConfigUpsert, TenantStats

logger = logging.getLogger(__name__)

ALL_MODULES = "*"

# Modules granted to the MSP and to the ESN of a client on the client's domain
MSP_CLIENT_MODULES = ["itsm", "cloud", "monitoring", "security"]
ESN_CLIENT_MODULES = ["itsm", "monitoring", "users", "teams"]


class AccessConfigStore:
    """Reads and writes TenantAccessConfig rows."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_primary(
        self,
        tenant_domain_id: str,
        organization_id: str,
    ) -> TenantAccessConfig | None:
        """Active config of the domain owner; None means full access."""
        return await self.db.scalar(
            select(TenantAccessConfig).where(
                TenantAccessConfig.tenant_domain_id == tenant_domain_id,
                TenantAccessConfig.organization_id == organization_id,
                TenantAccessConfig.is_active.is_(True),
            )
        )

    async def get_access_config(
        self,
        tenant_domain_id: str,
        organization_id: str,
    ) -> TenantAccessConfig | None:
        """Config of one organization on one domain, active or not."""
        return await self.db.scalar(
            select(TenantAccessConfig).where(
                TenantAccessConfig.tenant_domain_id == tenant_domain_id,
                TenantAccessConfig.organization_id == organization_id,
            )
        )

    async def list_for_domain(self, tenant_domain_id: str) -> list[TenantAccessConfig]:
        result = await self.db.execute(
            select(TenantAccessConfig)
            .where(TenantAccessConfig.tenant_domain_id == tenant_domain_id)
            .order_by(TenantAccessConfig.created_at)
        )
        return list(result.scalars().all())

    async def configure_access(
        self,
        tenant_domain_id: str,
        data: TenantAccessConfigUpsert,
    ) -> TenantAccessConfig:
        """Create or replace the config of ``data.organization_id`` on a domain."""
        config = await self.get_access_config(tenant_domain_id, data.organization_id)
        if config is None:
            config = TenantAccessConfig(
                tenant_domain_id=tenant_domain_id,
                organization_id=data.organization_id,
            )
            self.db.add(config)

        config.access_type = data.access_type
        config.allowed_modules = list(data.allowed_modules)
        config.access_restrictions = dict(data.access_restrictions)
        config.is_active = data.is_active

        await self.db.flush()
        logger.info(
            f"Access config set: domain={tenant_domain_id} "
            f"org={data.organization_id} type={data.access_type}"
        )
        return config

    async def configure_auto_access(self, domain: TenantDomain) -> list[TenantAccessConfig]:
        """
        Create the default access rows of a new domain.

        - the owner always gets full access to every module
        - client domain: its MSP gets the technical modules, its ESN (if
          any) a limited set without infrastructure changes
        - ESN domain: its MSP gets full access
        """
        wanted = [
            TenantAccessConfigUpsert(
                organization_id=domain.organization_id,
                access_type="full",
                allowed_modules=[ALL_MODULES],
            )
        ]

        if domain.tenant_type == "client":
            relation = await self.db.scalar(
                select(MspClientRelation)
                .where(
                    MspClientRelation.client_organization_id == domain.organization_id,
                    MspClientRelation.is_active.is_(True),
                )
                .order_by(MspClientRelation.created_at)
                .limit(1)
            )
            if relation is not None:
                wanted.append(
                    TenantAccessConfigUpsert(
                        organization_id=relation.msp_organization_id,
                        access_type="full",
                        allowed_modules=MSP_CLIENT_MODULES,
                    )
                )
                if relation.esn_organization_id:
                    wanted.append(
                        TenantAccessConfigUpsert(
                            organization_id=relation.esn_organization_id,
                            access_type="limited",
                            allowed_modules=ESN_CLIENT_MODULES,
                            access_restrictions={"can_modify_infrastructure": False},
                        )
                    )

        elif domain.tenant_type == "esn":
            msp_organization_id = await self.db.scalar(
                select(MspClientRelation.msp_organization_id)
                .where(
                    MspClientRelation.esn_organization_id == domain.organization_id,
                    MspClientRelation.is_active.is_(True),
                )
                .order_by(MspClientRelation.created_at)
                .limit(1)
            )
            if msp_organization_id:
                wanted.append(
                    TenantAccessConfigUpsert(
                        organization_id=msp_organization_id,
                        access_type="full",
                        allowed_modules=[ALL_MODULES],
                    )
                )

        return [await self.configure_access(domain.id, data) for data in wanted]

    async def tenant_stats(self, tenant_domain_id: str) -> TenantStats:
        """Count the organizations with active access to a domain."""
        result = await self.db.execute(
            select(TenantAccessConfig.access_type, Organization.type)
            .outerjoin(Organization, Organization.id == TenantAccessConfig.organization_id)
            .where(
                TenantAccessConfig.tenant_domain_id == tenant_domain_id,
                TenantAccessConfig.is_active.is_(True),
            )
        )
        rows = result.all()

        return TenantStats(
            total_organizations=len(rows),
            organizations_by_type=dict(Counter(org_type or "unknown" for _, org_type in rows)),
            access_levels=dict(Counter(access_type for access_type, _ in rows)),
        )
