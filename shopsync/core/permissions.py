"""
Role normalization and shop permission system

Roles arrive from the identity provider as raw strings ("org:admin",
"org:member", sometimes without the prefix). The raw value is what gets
stored; everything that checks permissions goes through normalize_role.
"""

from enum import Enum
from typing import Dict, Optional, Set

import structlog

logger = structlog.get_logger(__name__)

ROLE_PREFIX = "org:"


class Role(str, Enum):
    """Shop roles as configured in the identity provider"""
    ADMIN = "admin"
    MEMBER = "member"


DEFAULT_ROLE = Role.MEMBER

# Higher number = more privileges
ROLE_HIERARCHY: Dict[Role, int] = {
    Role.ADMIN: 2,
    Role.MEMBER: 1,
}


def normalize_role(role: Optional[str]) -> Optional[Role]:
    """Map a raw provider role to a Role, or None when unknown"""
    if not role:
        return None

    value = role.strip().lower()
    if value.startswith(ROLE_PREFIX):
        value = value[len(ROLE_PREFIX):]

    try:
        return Role(value)
    except ValueError:
        logger.warning(f"Unknown role label: {role}")
        return None


def get_normalized_role(role: Optional[str]) -> Role:
    """Normalize with fallback to the default role"""
    return normalize_role(role) or DEFAULT_ROLE


def has_role_permission(user_role: Optional[str], required_role: Role) -> bool:
    """Check if a raw role is at least as privileged as required_role"""
    normalized = normalize_role(user_role)
    if normalized is None:
        return False
    return ROLE_HIERARCHY[normalized] >= ROLE_HIERARCHY[required_role]


def get_effective_role(database_role: Optional[str], provider_role: Optional[str]) -> Role:
    """Database role wins, then the provider's, then the default"""
    return normalize_role(database_role) or normalize_role(provider_role) or DEFAULT_ROLE


class Permission(str, Enum):
    """Permission definitions"""
    # Point of sale
    POS_CHECKOUT = "pos:checkout"
    BUYLIST_MANAGE = "buylist:manage"
    CUSTOMER_MANAGE = "customer:manage"
    STORE_CREDIT_ISSUE = "store_credit:issue"

    # Catalog
    INVENTORY_VIEW = "inventory:view"
    INVENTORY_EDIT = "inventory:edit"
    PRICING_EDIT = "pricing:edit"

    # Administration
    TEAM_MANAGE = "team:manage"
    BILLING_MANAGE = "billing:manage"
    SETTINGS_EDIT = "settings:edit"
    REPORTS_VIEW = "reports:view"


MEMBER_PERMISSIONS: Set[Permission] = {
    Permission.POS_CHECKOUT,
    Permission.BUYLIST_MANAGE,
    Permission.CUSTOMER_MANAGE,
    Permission.STORE_CREDIT_ISSUE,
    Permission.INVENTORY_VIEW,
}

# Role permission mapping
ROLE_PERMISSIONS: Dict[Role, Set[Permission]] = {
    # Admins have all permissions
    Role.ADMIN: set(Permission),
    Role.MEMBER: MEMBER_PERMISSIONS,
}


def get_permissions_for_role(role: Optional[str]) -> Set[Permission]:
    """Get permissions for a raw provider role"""
    normalized = normalize_role(role)
    if normalized is None:
        return set()
    return set(ROLE_PERMISSIONS[normalized])


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions
