"""
Role-based permission defaults for company members.

Roles map to default read/write flags; membership rows may override the
flags individually.
"""

from typing import Dict, FrozenSet, Optional

ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"

ROLE_PERMISSIONS = {
    ROLE_OWNER: {"can_read": True, "can_write": True},
    ROLE_ADMIN: {"can_read": True, "can_write": True},
    ROLE_EDITOR: {"can_read": True, "can_write": True},
    ROLE_VIEWER: {"can_read": True, "can_write": False},
}

ALLOWED_ROLES: FrozenSet[str] = frozenset(ROLE_PERMISSIONS.keys())

# Derived role groups
WRITE_ROLES: FrozenSet[str] = frozenset({ROLE_OWNER, ROLE_ADMIN, ROLE_EDITOR})
MANAGE_ROLES: FrozenSet[str] = frozenset({ROLE_OWNER, ROLE_ADMIN})


def get_role_permissions(role: str) -> Dict[str, bool]:
    """
    Get the default permissions for a given role.

    Raises:
        ValueError: If role is not recognized
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {sorted(ALLOWED_ROLES)}")
    return ROLE_PERMISSIONS[role].copy()


def resolve_permissions(role: str, can_read: Optional[bool] = None, can_write: Optional[bool] = None) -> Dict[str, bool]:
    """Role defaults with optional explicit overrides."""
    permissions = get_role_permissions(role)
    if can_read is not None:
        permissions["can_read"] = can_read
    if can_write is not None:
        permissions["can_write"] = can_write
    return permissions


def role_allows_write(role: Optional[str]) -> bool:
    return role in WRITE_ROLES


def role_allows_manage(role: Optional[str]) -> bool:
    return role in MANAGE_ROLES
