# Admin operations shared by the admin router and the set_admins CLI

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from database.models import User, UserProfile, UserRole, Brand, Creator
from database.marketplace_models import Campaign, Application, Task, Payment, Dispute
from services.audit_service import AuditService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def set_admins(db: Session, emails: List[str], actor_id: Optional[str] = None) -> List[dict]:
    """Grant the admin role to each email. Returns one result per email."""
    audit = AuditService(db)
    results = []
    for email in emails:
        normalized = str(email).strip().lower()
        user = db.query(User).filter(User.email == normalized).first()
        if user is None:
            results.append({"email": email, "status": "not_found"})
            continue
        user.role = UserRole.ADMIN
        audit.log(actor_id, "user", user.id, "admin_granted", {"email": normalized})
        results.append({"email": email, "status": "updated", "user_id": user.id})
    db.commit()
    logger.info(f"set_admins: {sum(r['status'] == 'updated' for r in results)}/{len(emails)} updated")
    return results


def set_blocked(db: Session, user_ids: List[str], blocked: bool, actor_id: str) -> int:
    """Block or unblock users by id. Returns number of profiles changed."""
    audit = AuditService(db)
    profiles = db.query(UserProfile).filter(UserProfile.user_id.in_(user_ids)).all()
    for profile in profiles:
        profile.is_blocked = blocked
        profile.updated_at = datetime.utcnow()
        audit.log(actor_id, "user", profile.user_id, "user_blocked" if blocked else "user_unblocked")
    db.commit()
    return len(profiles)


def verify_creator(db: Session, creator_id: str, actor_id: str) -> Optional[Creator]:
    creator = db.query(Creator).filter(Creator.user_id == creator_id).first()
    if creator is None:
        return None
    creator.verified_at = datetime.utcnow()
    AuditService(db).log(actor_id, "creator", creator_id, "creator_verified")
    NotificationService(db).notify_profile_verified(creator_id)
    db.commit()
    return creator


def verify_brand(db: Session, brand_id: str, actor_id: str) -> Optional[Brand]:
    brand = db.query(Brand).filter(Brand.id == brand_id).first()
    if brand is None:
        return None
    brand.verified_at = datetime.utcnow()
    AuditService(db).log(actor_id, "brand", brand_id, "brand_verified")
    db.commit()
    return brand


def _count_by_status(db: Session, model) -> dict:
    rows = db.query(model.status, func.count(model.id)).group_by(model.status).all()
    return {(status.value if hasattr(status, "value") else status): count for status, count in rows}


def dashboard_stats(db: Session) -> dict:
    return {
        "users": db.query(func.count(User.id)).scalar(),
        "brands": db.query(func.count(Brand.id)).scalar(),
        "creators": db.query(func.count(Creator.user_id)).scalar(),
        "campaigns": _count_by_status(db, Campaign),
        "applications": _count_by_status(db, Application),
        "tasks": _count_by_status(db, Task),
        "payments": _count_by_status(db, Payment),
        "disputes": _count_by_status(db, Dispute),
    }
