"""User roles and permission matrix.

Permission Matrix:
┌───────────────────┬───────┬──────────────┬────────┐
│ Permission        │ ADMIN │ SITE_MANAGER │ VIEWER │
├───────────────────┼───────┼──────────────┼────────┤
│ user:manage       │   ✓   │              │        │
│ site:manage       │   ✓   │      ✓       │        │
│ template:manage   │   ✓   │              │        │
│ contractor:manage │   ✓   │      ✓       │        │
│ export:create     │   ✓   │      ✓       │        │
│ settings:manage   │   ✓   │              │        │
│ audit:read        │   ✓   │              │        │
└───────────────────┴───────┴──────────────┴────────┘

The export runner re-checks export:create when a job executes, so a role
change or deactivation after enqueue still blocks the export.
"""

from enum import Enum
from typing import Dict, FrozenSet, Union


class UserRole(str, Enum):
    """Values are stored as TEXT in the database and must match exactly."""
    ADMIN = "ADMIN"
    SITE_MANAGER = "SITE_MANAGER"
    VIEWER = "VIEWER"


class Permission(str, Enum):
    USER_MANAGE = "user:manage"
    SITE_MANAGE = "site:manage"
    TEMPLATE_MANAGE = "template:manage"
    CONTRACTOR_MANAGE = "contractor:manage"
    EXPORT_CREATE = "export:create"
    SETTINGS_MANAGE = "settings:manage"
    AUDIT_READ = "audit:read"


ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[Permission]] = {
    UserRole.ADMIN: frozenset(Permission),
    UserRole.SITE_MANAGER: frozenset({
        Permission.SITE_MANAGE,
        Permission.CONTRACTOR_MANAGE,
        Permission.EXPORT_CREATE,
    }),
    UserRole.VIEWER: frozenset(),
}


def has_permission(role: Union[UserRole, str], permission: Permission) -> bool:
    """Check whether a role grants a permission. Unknown roles grant nothing.

    Examples:
        >>> has_permission(UserRole.SITE_MANAGER, Permission.EXPORT_CREATE)
        True
        >>> has_permission("VIEWER", Permission.EXPORT_CREATE)
        False
    """
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())
