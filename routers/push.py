# Push Router for the LEADERS platform
# Admin push dispatch plus the subscription/preference endpoints the service worker uses

import logging
from fastapi import APIRouter, HTTPException, Depends, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from database.config import get_db
from database.models import User, UserProfile
from schemas.marketplace import PushSendRequest, PushSubscriptionCreate, PushSubscriptionDelete, NotificationPreferencesUpdate
from auth.roles import ADMIN_ROLES
from auth.decorators import require_roles
from auth.dependencies import get_current_user
from services.push_service import PushService, PushUnavailable, get_push_sender, get_vapid_settings, VapidSettings
from services.rate_limiter import PushRateLimiter, get_push_rate_limiter
from config.app_config import PUSH_RATE_LIMIT_MAX

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["Push"])


@router.post("/send")
async def send_push(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_ROLES)),
    limiter: PushRateLimiter = Depends(get_push_rate_limiter),
    sender=Depends(get_push_sender),
    vapid: VapidSettings = Depends(get_vapid_settings),
):
    """
    Send a web push message to every device of one user.

    Returns {"sent", "failed"}; subscriptions reported gone (404/410)
    are deleted.
    """
    if not limiter.allow(current_user.id):
        logger.warning(f"Push rate limit hit by {current_user.id}")
        raise HTTPException(
            status_code=429,
            detail=f"Too many requests. Max {PUSH_RATE_LIMIT_MAX} per minute."
        )

    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    try:
        data = PushSendRequest(**body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors()[0]["msg"])

    service = PushService(db, sender=sender, vapid=vapid)
    try:
        return service.send_to_user(data.user_id, data.title, data.body, data.url)
    except PushUnavailable:
        raise HTTPException(status_code=500, detail="Push service unavailable")


@router.post("/subscriptions")
async def subscribe(
    data: PushSubscriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = PushService(db).upsert_subscription(
        current_user.id, data.endpoint, data.keys.p256dh, data.keys.auth
    )
    return {"success": True, "id": sub.id}


@router.delete("/subscriptions")
async def unsubscribe(
    data: PushSubscriptionDelete,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    removed = PushService(db).remove_subscription(data.endpoint, user_id=current_user.id)
    return {"success": True, "removed": removed}


@router.put("/preferences")
async def update_preferences(
    data: NotificationPreferencesUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    profile = db.query(UserProfile).filter(UserProfile.user_id == current_user.id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")

    prefs = dict(profile.notification_preferences or {})
    prefs["channels"] = data.channels
    profile.notification_preferences = prefs
    db.commit()

    return {"success": True, "notification_preferences": prefs}
