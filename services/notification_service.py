# Notification Service for the LEADERS marketplace
# Provides centralized in-app notification creation and management

from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime
from enum import Enum

from database.models import Notification


class NotificationType(str, Enum):
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    TASK_UPLOADED = "task_uploaded"
    REVISION_REQUESTED = "revision_requested"
    TASK_APPROVED = "task_approved"
    PAYMENT_PAID = "payment_paid"
    SHIPMENT_SHIPPED = "shipment_shipped"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
    PROFILE_VERIFIED = "profile_verified"
    SYSTEM = "system"


class NotificationService:
    """
    Service for creating and managing user notifications.
    Use this service from any router to send notifications.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: str,
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notification:
        """
        Create a new notification for a user.

        Args:
            user_id: The user to notify
            type: Notification type (use NotificationType enum)
            title: Short notification title
            message: Full notification message
            action_url: Optional relative URL for the notification action
            data: Optional additional data as JSON

        Returns:
            The created Notification object
        """
        try:
            type_value = NotificationType(type.value if isinstance(type, Enum) else type).value
        except ValueError:
            type_value = NotificationType.SYSTEM.value

        notification = Notification(
            user_id=user_id,
            type=type_value,
            title=title,
            message=message,
            action_url=action_url,
            data=data or {},
        )
        self.db.add(notification)
        self.db.flush()  # Get the ID without committing
        return notification

    def create_batch(
        self,
        user_ids: List[str],
        type: NotificationType | str,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> List[Notification]:
        return [
            self.create(user_id, type, title, message, action_url, data)
            for user_id in user_ids
        ]

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """
        Mark a notification as read.

        Returns:
            True if notification was marked read, False if not found
        """
        notification = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id
        ).first()

        if notification:
            notification.is_read = True
            notification.read_at = datetime.utcnow()
            return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        """Mark all notifications as read for a user. Returns the number updated."""
        count = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).update({
            "is_read": True,
            "read_at": datetime.utcnow()
        })
        return count

    def get_unread_count(self, user_id: str) -> int:
        """Get unread notification count for a user."""
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False
        ).count()

    # =========================================================================
    # APPLICATION NOTIFICATION HELPERS
    # =========================================================================

    def notify_application_approved(self, creator_id: str, campaign_title: str, task_id: str):
        return self.create(
            user_id=creator_id,
            type=NotificationType.APPLICATION_APPROVED,
            title="Application approved",
            message=f"You were selected for {campaign_title}.",
            action_url=f"/creator/tasks/{task_id}",
            data={"task_id": task_id},
        )

    def notify_application_rejected(self, creator_id: str, campaign_title: str, reason_code: str):
        return self.create(
            user_id=creator_id,
            type=NotificationType.APPLICATION_REJECTED,
            title="Application not selected",
            message=f"Your application for {campaign_title} was not selected.",
            action_url="/creator/applications",
            data={"reason_code": reason_code},
        )

    # =========================================================================
    # TASK NOTIFICATION HELPERS
    # =========================================================================

    def notify_task_uploaded(self, brand_user_ids: List[str], task_id: str, task_title: str):
        """Notify brand members that content is waiting for review."""
        return self.create_batch(
            user_ids=brand_user_ids,
            type=NotificationType.TASK_UPLOADED,
            title="New content uploaded",
            message=f"Content for '{task_title}' is ready for review.",
            action_url=f"/brand/tasks/{task_id}",
            data={"task_id": task_id},
        )

    def notify_revision_requested(self, creator_id: str, task_id: str, note: str):
        return self.create(
            user_id=creator_id,
            type=NotificationType.REVISION_REQUESTED,
            title="Revision requested",
            message=note,
            action_url=f"/creator/tasks/{task_id}",
            data={"task_id": task_id},
        )

    def notify_task_approved(self, creator_id: str, task_id: str, amount: int):
        return self.create(
            user_id=creator_id,
            type=NotificationType.TASK_APPROVED,
            title="Content approved",
            message=f"Your content was approved. Payment of ₪{amount / 100:,.2f} is pending.",
            action_url=f"/creator/tasks/{task_id}",
            data={"task_id": task_id, "amount": amount},
        )

    # =========================================================================
    # PAYMENT / SHIPMENT NOTIFICATION HELPERS
    # =========================================================================

    def notify_payment_paid(self, creator_id: str, payment_id: str, amount: int):
        return self.create(
            user_id=creator_id,
            type=NotificationType.PAYMENT_PAID,
            title="Payment sent",
            message=f"₪{amount / 100:,.2f} has been paid.",
            action_url="/creator/payments",
            data={"payment_id": payment_id, "amount": amount},
        )

    def notify_shipment_shipped(self, creator_id: str, request_id: str, carrier: str, tracking_number: str):
        return self.create(
            user_id=creator_id,
            type=NotificationType.SHIPMENT_SHIPPED,
            title="Product shipped",
            message=f"Your product is on its way via {carrier} ({tracking_number}).",
            action_url="/creator/shipments",
            data={"shipment_request_id": request_id},
        )

    # =========================================================================
    # DISPUTE NOTIFICATION HELPERS
    # =========================================================================

    def notify_dispute_opened(self, user_ids: List[str], dispute_id: str, task_id: str):
        return self.create_batch(
            user_ids=user_ids,
            type=NotificationType.DISPUTE_OPENED,
            title="Dispute opened",
            message="A dispute was opened on a task. Our team will review it.",
            action_url=f"/disputes/{dispute_id}",
            data={"dispute_id": dispute_id, "task_id": task_id},
        )

    def notify_dispute_resolved(self, user_ids: List[str], dispute_id: str, resolution: str):
        return self.create_batch(
            user_ids=user_ids,
            type=NotificationType.DISPUTE_RESOLVED,
            title="Dispute resolved",
            message=f"The dispute has been resolved: {resolution}",
            action_url=f"/disputes/{dispute_id}",
            data={"dispute_id": dispute_id, "resolution": resolution},
        )

    def notify_profile_verified(self, user_id: str):
        return self.create(
            user_id=user_id,
            type=NotificationType.PROFILE_VERIFIED,
            title="Profile verified",
            message="Your profile has been verified.",
            action_url="/",
            data={},
        )

