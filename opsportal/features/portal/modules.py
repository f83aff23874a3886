"""
Default module sets of each portal type.
"""

ADMIN_MODULES: tuple[str, ...] = (
    "dashboard",
    "organizations",
    "users",
    "teams",
    "roles",
    "rbac",
    "business-services",
    "applications",
    "deployments",
    "itsm",
    "security",
    "cloud",
    "monitoring",
    "tenant-management",
    "settings",
)

CLIENT_MODULES: tuple[str, ...] = (
    "dashboard",
    "users",
    "teams",
    "business-services",
    "applications",
    "itsm",
    "monitoring",
    "profile",
    "settings",
)

ESN_MODULES: tuple[str, ...] = (
    "dashboard",
    "users",
    "teams",
    "itsm",
    "monitoring",
    "applications",
)

# Non-admin identity on a host without a tenant
FALLBACK_MODULES: tuple[str, ...] = (
    "dashboard",
    "users",
    "teams",
    "itsm",
    "monitoring",
    "profile",
)

DEFAULT_MODULES: dict[str, tuple[str, ...]] = {
    "msp_admin": ADMIN_MODULES,
    "client_portal": CLIENT_MODULES,
    "esn_portal": ESN_MODULES,
}

PORTAL_TYPES: dict[str, str] = {
    "msp": "msp_admin",
    "client": "client_portal",
    "esn": "esn_portal",
}

# Client modules exposed read-only
READ_ONLY_MODULES = frozenset({"monitoring", "security"})
