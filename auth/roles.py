# Role-Based Access Control for the LEADERS platform
# This module defines user roles and permissions for brands, creators and staff

from enum import Enum
from typing import List, Set

from database.models import UserRole


# Staff roles that may use admin tooling (push dispatch, dashboards)
ADMIN_ROLES: Set[UserRole] = {
    UserRole.ADMIN,
    UserRole.FINANCE,
    UserRole.SUPPORT,
    UserRole.CONTENT_OPS,
}

BRAND_ROLES: Set[UserRole] = {
    UserRole.BRAND_MANAGER,
    UserRole.BRAND_USER,
}


class Permission(str, Enum):
    """Fine-grained permissions for the platform."""

    # Brand permissions
    MANAGE_CAMPAIGNS = "manage_campaigns"
    REVIEW_APPLICATIONS = "review_applications"
    REVIEW_CONTENT = "review_content"
    MANAGE_SHIPMENTS = "manage_shipments"
    UPLOAD_PAYMENT_PROOF = "upload_payment_proof"

    # Creator permissions
    APPLY_TO_CAMPAIGNS = "apply_to_campaigns"
    SUBMIT_CONTENT = "submit_content"
    SUBMIT_SHIPPING_ADDRESS = "submit_shipping_address"
    SUBMIT_INVOICES = "submit_invoices"

    # Common permissions
    RAISE_DISPUTES = "raise_disputes"
    VIEW_NOTIFICATIONS = "view_notifications"
    MANAGE_PUSH_SUBSCRIPTIONS = "manage_push_subscriptions"

    # Staff permissions
    SEND_PUSH = "send_push"
    MANAGE_PAYMENTS = "manage_payments"
    RESOLVE_DISPUTES = "resolve_disputes"
    MANAGE_USERS = "manage_users"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    VIEW_ADMIN_STATS = "view_admin_stats"
    VIEW_ALL_CAMPAIGNS = "view_all_campaigns"
    MANAGE_BRANDS = "manage_brands"
    MANAGE_ADMINS = "manage_admins"


_COMMON = {
    Permission.RAISE_DISPUTES,
    Permission.VIEW_NOTIFICATIONS,
    Permission.MANAGE_PUSH_SUBSCRIPTIONS,
}

_BRAND = {
    Permission.MANAGE_CAMPAIGNS,
    Permission.REVIEW_APPLICATIONS,
    Permission.REVIEW_CONTENT,
    Permission.MANAGE_SHIPMENTS,
    Permission.UPLOAD_PAYMENT_PROOF,
    *_COMMON,
}

_STAFF = {
    Permission.SEND_PUSH,
    Permission.VIEW_ADMIN_STATS,
    Permission.VIEW_ALL_CAMPAIGNS,
    Permission.VIEW_NOTIFICATIONS,
    Permission.MANAGE_PUSH_SUBSCRIPTIONS,
}


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.BRAND_MANAGER: set(_BRAND),
    UserRole.BRAND_USER: set(_BRAND),

    UserRole.CREATOR: {
        Permission.APPLY_TO_CAMPAIGNS,
        Permission.SUBMIT_CONTENT,
        Permission.SUBMIT_SHIPPING_ADDRESS,
        Permission.SUBMIT_INVOICES,
        *_COMMON,
    },

    UserRole.FINANCE: {
        *_STAFF,
        Permission.MANAGE_PAYMENTS,
    },

    UserRole.SUPPORT: {
        *_STAFF,
        Permission.RESOLVE_DISPUTES,
        Permission.MANAGE_USERS,
    },

    UserRole.CONTENT_OPS: {
        *_STAFF,
        Permission.MANAGE_CAMPAIGNS,
        Permission.REVIEW_APPLICATIONS,
        Permission.REVIEW_CONTENT,
        Permission.MANAGE_SHIPMENTS,
    },

    UserRole.ADMIN: {
        # Admin has ALL permissions
        *Permission.__members__.values()
    },
}


def get_permissions_for_role(role: UserRole) -> Set[Permission]:
    """Get all permissions for a given role."""
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in get_permissions_for_role(role)


def has_any_permission(role: UserRole, permissions: List[Permission]) -> bool:
    """Check if a role has any of the given permissions."""
    role_permissions = get_permissions_for_role(role)
    return any(p in role_permissions for p in permissions)
