# Notifications Router for the LEADERS marketplace
# Handles in-app notifications (the notification bell)

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List

from database.config import get_db
from database.models import User, Notification
from schemas.marketplace import NotificationResponse
from services.notification_service import NotificationService
from auth.dependencies import get_current_user

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ============================================================================
# NOTIFICATION ENDPOINTS
# ============================================================================

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    unread_only: bool = Query(False, description="Only return unread notifications"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Get user's notifications.
    """
    query = db.query(Notification).filter(Notification.user_id == current_user.id)

    if unread_only:
        query = query.filter(Notification.is_read == False)

    offset = (page - 1) * limit
    return query.order_by(desc(Notification.created_at)).offset(offset).limit(limit).all()


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread_count": NotificationService(db).get_unread_count(current_user.id)}


@router.post("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not NotificationService(db).mark_read(notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")

    db.commit()

    return {"status": "success"}


@router.post("/read-all")
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    count = NotificationService(db).mark_all_read(current_user.id)
    db.commit()

    return {"status": "success", "updated": count}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == current_user.id
    ).first()

    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    db.delete(notification)
    db.commit()

    return {"status": "success"}
