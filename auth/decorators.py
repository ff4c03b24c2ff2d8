# Authentication and Authorization Decorators for the LEADERS platform
# These decorators provide easy-to-use access control for API endpoints

from typing import Optional
from fastapi import HTTPException, status, Depends
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User, UserRole, Membership, BrandUser, EntityType
from auth.roles import Permission, has_any_permission
from auth.dependencies import get_current_user


class AuthError(HTTPException):
    """Custom exception for authentication/authorization errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


def get_user_role(user: User, db: Session) -> Optional[UserRole]:
    """
    Resolve the effective role of a user.

    A platform role on the identity (staff) wins over memberships; otherwise
    the most recently created active membership decides.
    """
    if user.role:
        return UserRole(user.role)

    membership = db.query(Membership).filter(
        Membership.user_id == user.id,
        Membership.is_active == True
    ).order_by(Membership.created_at.desc()).first()

    return UserRole(membership.role) if membership else None


def get_user_brand_id(user: User, db: Session) -> Optional[str]:
    """Brand the user is an active member of, if any."""
    link = db.query(BrandUser).filter(
        BrandUser.user_id == user.id,
        BrandUser.is_active == True
    ).order_by(BrandUser.created_at.desc()).first()
    if link:
        return link.brand_id

    membership = db.query(Membership).filter(
        Membership.user_id == user.id,
        Membership.entity_type == EntityType.BRAND.value,
        Membership.is_active == True
    ).first()
    return membership.entity_id if membership else None


def require_roles(*allowed_roles: UserRole):
    """
    Dependency that requires the user to hold one of the specified roles.

    Usage:
        @router.post("/send")
        async def send(
            user: User = Depends(require_roles(*ADMIN_ROLES))
        ):
            ...
    """
    async def dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> User:
        role = get_user_role(current_user, db)

        if role not in allowed_roles:
            raise AuthError(
                detail="Forbidden",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return current_user

    return dependency


def require_permission(*permissions: Permission):
    """
    Dependency that requires the user to have any of the given permissions.

    Usage:
        @router.post("/payments/{payment_id}/mark-paid")
        async def mark_paid(
            user: User = Depends(require_permission(Permission.MANAGE_PAYMENTS))
        ):
            ...
    """
    async def dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db)
    ) -> User:
        role = get_user_role(current_user, db)

        if role is None or not has_any_permission(role, list(permissions)):
            raise AuthError(
                detail="You don't have permission to perform this action",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return current_user

    return dependency


def require_admin():
    """
    Dependency that requires the platform `admin` role.

    Usage:
        @router.post("/create-brand")
        async def create_brand(user: User = Depends(require_admin())):
            ...
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != UserRole.ADMIN:
            raise AuthError(
                detail="Admin access required",
                status_code=status.HTTP_403_FORBIDDEN
            )
        return current_user

    return dependency
