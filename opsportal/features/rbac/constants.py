"""
System permissions and roles.

Permission names follow the ``resource.action`` format.
"""

# (name, display name, category)
SYSTEM_PERMISSIONS: list[tuple[str, str, str]] = [
    ("users.create", "Create users", "User management"),
    ("users.read", "View users", "User management"),
    ("users.update", "Edit users", "User management"),
    ("users.delete", "Delete users", "User management"),
    ("users.list", "List users", "User management"),
    ("roles.create", "Create roles", "Role management"),
    ("roles.read", "View roles", "Role management"),
    ("roles.update", "Edit roles", "Role management"),
    ("roles.delete", "Delete roles", "Role management"),
    ("roles.manage", "Manage roles", "Role management"),
    ("organizations.create", "Create organizations", "Organizations"),
    ("organizations.read", "View organizations", "Organizations"),
    ("organizations.update", "Edit organizations", "Organizations"),
    ("organizations.delete", "Delete organizations", "Organizations"),
    ("teams.read", "View teams", "Organizations"),
    ("teams.manage", "Manage teams", "Organizations"),
    ("itsm.create", "Create ITSM tickets", "ITSM"),
    ("itsm.read", "View ITSM tickets", "ITSM"),
    ("itsm.update", "Edit ITSM tickets", "ITSM"),
    ("itsm.approve", "Approve ITSM tickets", "ITSM"),
    ("cloud.read", "View cloud resources", "Cloud"),
    ("cloud.manage", "Manage cloud resources", "Cloud"),
    ("monitoring.read", "View metrics", "Monitoring"),
    ("monitoring.manage", "Manage monitoring", "Monitoring"),
    ("documentation.read", "View documentation", "Documentation"),
    ("documentation.manage", "Manage documentation", "Documentation"),
    ("settings.read", "View settings", "Settings"),
    ("settings.manage", "Manage settings", "Settings"),
    ("tenants.read", "View tenant domains", "Tenants"),
    ("tenants.manage", "Manage tenant domains", "Tenants"),
]

# role name -> (display name, permission names, is_default)
SYSTEM_ROLES: dict[str, tuple[str, list[str], bool]] = {
    "team_admin": (
        "Team admin",
        [name for name, _, _ in SYSTEM_PERMISSIONS if not name.startswith("tenants.")],
        False,
    ),
    "team_manager": (
        "Team manager",
        [
            "users.read", "users.list", "users.update",
            "roles.read", "teams.read",
            "itsm.create", "itsm.read", "itsm.update", "itsm.approve",
            "cloud.read", "monitoring.read",
            "documentation.read", "documentation.manage",
            "settings.read",
        ],
        False,
    ),
    "team_member": (
        "Team member",
        [
            "users.read", "users.list", "teams.read",
            "itsm.create", "itsm.read", "itsm.update",
            "monitoring.read", "documentation.read",
        ],
        True,
    ),
    "viewer": (
        "Viewer",
        ["users.read", "teams.read", "itsm.read", "monitoring.read", "documentation.read"],
        False,
    ),
}


def split_permission(name: str) -> tuple[str, str]:
    """``"itsm.read"`` -> ``("itsm", "read")``."""
    resource, _, action = name.partition(".")
    return resource, action
