"""
Seed database with demo organizations, profiles and tenant domains.

Run seed_rbac.py first to get the system roles.
"""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from opsportal.core.database import db_manager
from opsportal.features.tenants.access_store import AccessConfigStore
from opsportal.models import (
    MspClientRelation,
    Organization,
    OrganizationMembership,
    Role,
    Team,
    TeamMembership,
    TenantDomain,
    UserProfile,
    UserRole,
)


async def seed_data() -> None:
    """Create demo data."""
    print("Seeding database...")

    db_manager.init()

    async for db in db_manager.get_session():
        if (await db.execute(select(Organization))).first():
            print("Database already contains data. Skipping seed.")
            return

        msp = Organization(name="Northwind Managed Services", type="msp")
        esn = Organization(name="Contoso Partners", type="esn")
        client = Organization(name="Acme Corporation", type="client")
        db.add_all([msp, esn, client])
        await db.flush()

        msp_ops = Team(name="Operations", organization_id=msp.id)
        esn_support = Team(name="Support", organization_id=esn.id)
        client_it = Team(name="IT", organization_id=client.id)
        db.add_all([msp_ops, esn_support, client_it])
        await db.flush()

        db.add(MspClientRelation(
            msp_organization_id=msp.id,
            client_organization_id=client.id,
            esn_organization_id=esn.id,
            relation_type="via_esn",
        ))

        admin = UserProfile(
            email="admin@northwind.example",
            first_name="Morgan",
            last_name="Admin",
            is_msp_admin=True,
            default_organization_id=msp.id,
            default_team_id=msp_ops.id,
        )
        member = UserProfile(
            email="it@acme.example",
            first_name="Sam",
            last_name="Member",
            default_organization_id=client.id,
            default_team_id=client_it.id,
        )
        db.add_all([admin, member])
        await db.flush()

        db.add_all([
            OrganizationMembership(user_id=admin.id, organization_id=msp.id),
            TeamMembership(user_id=admin.id, team_id=msp_ops.id),
            OrganizationMembership(user_id=member.id, organization_id=client.id),
            TeamMembership(user_id=member.id, team_id=client_it.id),
        ])

        default_role = await db.scalar(select(Role).where(Role.is_default.is_(True)))
        if default_role:
            db.add(UserRole(
                user_id=member.id,
                role_id=default_role.id,
                organization_id=client.id,
                team_id=client_it.id,
                granted_by=admin.id,
            ))
        else:
            print("No default role found; run seed_rbac.py to grant one.")

        access = AccessConfigStore(db)
        for organization, label in ((client, "acme"), (esn, "contoso")):
            domain = TenantDomain(
                domain_name=label,
                full_url=f"http://{label}.localhost:8080",
                organization_id=organization.id,
                tenant_type=organization.type,
                branding={"company_name": organization.name},
                ui_config={"theme": "light"},
                created_by=admin.id,
            )
            db.add(domain)
            await db.flush()
            await access.configure_auto_access(domain)
            print(f"Created tenant domain: {domain.domain_name} -> {organization.name}")

        await db.commit()

        print(f"Created organizations: {msp.name}, {esn.name}, {client.name}")
        print(f"Created MSP admin profile: {admin.email} ({admin.id})")
        print(f"Created client profile: {member.email} ({member.id})")

    await db_manager.close()
    print("Seeding complete!")


if __name__ == "__main__":
    asyncio.run(seed_data())
