"""
Permission checks for company-scoped resources.

Key helpers:
- get_company_membership(company_id, current_user)
- can_read_company(company_id, current_user)
- can_write_company(company_id, current_user)
- can_manage_company(company_id, current_user)
- is_company_owner(company_id, current_user)
"""
from typing import Optional, Dict, Any
from wacrm.utils.role_permissions import (
    ROLE_OWNER,
    role_allows_write as _role_allows_write,
    role_allows_manage as _role_allows_manage,
)


def get_company_membership(company_id, current_user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not current_user or company_id is None:
        return None
    by_company = current_user.get("memberships_by_company") or {}
    membership = by_company.get(str(company_id))
    if membership:
        return membership
    for item in current_user.get("memberships") or []:
        if item.get("company_id") == str(company_id):
            return item
    return None


def can_read_company(company_id, current_user: Optional[Dict[str, Any]]) -> bool:
    if current_user is None:
        return False
    if current_user.get("is_superadmin"):
        return True
    membership = get_company_membership(company_id, current_user)
    return bool(membership and (membership.get("can_read") or _role_allows_write(membership.get("role"))))


def can_write_company(company_id, current_user: Optional[Dict[str, Any]]) -> bool:
    """Write needs the can_write flag; a viewer promoted by flag may write."""
    if current_user is None:
        return False
    if current_user.get("is_superadmin"):
        return True
    membership = get_company_membership(company_id, current_user)
    return bool(membership and membership.get("can_write"))


def can_manage_company(company_id, current_user: Optional[Dict[str, Any]]) -> bool:
    if current_user is None:
        return False
    if current_user.get("is_superadmin"):
        return True
    membership = get_company_membership(company_id, current_user)
    return bool(membership and _role_allows_manage(membership.get("role")))


def is_company_owner(company_id, current_user: Optional[Dict[str, Any]]) -> bool:
    if current_user is None:
        return False
    if current_user.get("is_superadmin"):
        return True
    membership = get_company_membership(company_id, current_user)
    return bool(membership and membership.get("role") == ROLE_OWNER)
