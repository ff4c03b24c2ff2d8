# Auth module for the LEADERS platform
# Provides role-based access control and authentication decorators

from auth.roles import (
    ADMIN_ROLES,
    BRAND_ROLES,
    Permission,
    ROLE_PERMISSIONS,
    get_permissions_for_role,
    has_permission,
    has_any_permission,
)

from auth.decorators import (
    AuthError,
    get_user_role,
    get_user_brand_id,
    require_roles,
    require_permission,
    require_admin,
)

__all__ = [
    # Roles
    "ADMIN_ROLES",
    "BRAND_ROLES",
    "Permission",
    "ROLE_PERMISSIONS",
    "get_permissions_for_role",
    "has_permission",
    "has_any_permission",

    # Decorators
    "AuthError",
    "get_user_role",
    "get_user_brand_id",
    "require_roles",
    "require_permission",
    "require_admin",
]
