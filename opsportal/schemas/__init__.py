"""
Pydantic schemas package.
"""

from opsportal.schemas.common import (
    BaseSchema,
    ErrorResponse,
    MessageResponse,
    PaginatedResponse,
)
from opsportal.schemas.portal import PortalConfig, PortalDetection
from opsportal.schemas.session import RoleAssignment, SessionContext
from opsportal.schemas.tenant import (
    TenantAccessConfigRead,
    TenantBranding,
    TenantDomainCreate,
    TenantDomainRead,
    TenantDomainUpdate,
    TenantResolution,
    TenantState,
    TenantUIConfig,
)

__all__ = [
    # Common
    "BaseSchema",
    "MessageResponse",
    "ErrorResponse",
    "PaginatedResponse",
    # Tenant
    "TenantBranding",
    "TenantUIConfig",
    "TenantAccessConfigRead",
    "TenantDomainCreate",
    "TenantDomainRead",
    "TenantDomainUpdate",
    "TenantResolution",
    "TenantState",
    # Session
    "RoleAssignment",
    "SessionContext",
    # Portal
    "PortalDetection",
    "PortalConfig",
]
