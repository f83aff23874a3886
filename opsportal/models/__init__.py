"""
Database models package.
"""

from opsportal.core.database import Base
from opsportal.models.base import BaseModel
from opsportal.models.organization import (
    MspClientRelation,
    Organization,
    OrganizationMembership,
    Team,
    TeamMembership,
)
from opsportal.models.profile import UserProfile
from opsportal.models.tenant import TenantAccessConfig, TenantDomain
from opsportal.models.rbac import Permission, Role, RolePermission, UserRole

__all__ = [
    "Base",
    "BaseModel",
    "Organization",
    "Team",
    "OrganizationMembership",
    "TeamMembership",
    "MspClientRelation",
    "UserProfile",
    "TenantDomain",
    "TenantAccessConfig",
    "Permission",
    "Role",
    "RolePermission",
    "UserRole",
]
