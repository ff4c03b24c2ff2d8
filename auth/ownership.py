# Ownership checks used by the workflow routers
# Replace row-level security: staff see everything, creators their own rows, brand members their brand's rows.

from typing import List, Optional

from fastapi import status
from sqlalchemy.orm import Session

from database.models import User, UserRole, BrandUser
from database.marketplace_models import Campaign, Task
from auth.roles import ADMIN_ROLES
from auth.decorators import AuthError, get_user_role, get_user_brand_id


class Actor:
    """The calling user with role and brand resolved once per request."""

    def __init__(self, user: User, db: Session):
        self.user = user
        self.id = user.id
        self.role: Optional[UserRole] = get_user_role(user, db)
        self.brand_id: Optional[str] = get_user_brand_id(user, db)

    @property
    def is_staff(self) -> bool:
        return self.role in ADMIN_ROLES

    def owns_campaign(self, campaign: Campaign) -> bool:
        return self.brand_id is not None and campaign.brand_id == self.brand_id

    def is_task_creator(self, task: Task) -> bool:
        return task.creator_id == self.id

    def is_task_brand_member(self, task: Task) -> bool:
        return self.owns_campaign(task.campaign)

    def can_view_task(self, task: Task) -> bool:
        return self.is_staff or self.is_task_creator(task) or self.is_task_brand_member(task)


def ensure_campaign_manager(actor: Actor, campaign: Campaign):
    """Brand members of the campaign's brand, admins and content ops."""
    if actor.owns_campaign(campaign) or actor.role in (UserRole.ADMIN, UserRole.CONTENT_OPS):
        return
    raise AuthError(detail="Access denied", status_code=status.HTTP_403_FORBIDDEN)


def ensure_task_creator(actor: Actor, task: Task):
    if not actor.is_task_creator(task):
        raise AuthError(detail="Only the assigned creator can do this", status_code=status.HTTP_403_FORBIDDEN)


def ensure_task_viewer(actor: Actor, task: Task):
    if not actor.can_view_task(task):
        raise AuthError(detail="Access denied", status_code=status.HTTP_403_FORBIDDEN)


def brand_member_ids(db: Session, brand_id: str) -> List[str]:
    rows = db.query(BrandUser.user_id).filter(
        BrandUser.brand_id == brand_id,
        BrandUser.is_active == True
    ).all()
    return [r[0] for r in rows]
