# Web Push dispatch
# Sends one message per stored subscription and prunes subscriptions the push service reports as gone.

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import requests
from pywebpush import webpush, WebPushException
from sqlalchemy.orm import Session

from config.app_config import VAPID_PUBLIC_KEY, VAPID_PRIVATE_KEY, VAPID_SUBJECT
from database.models import PushSubscription, UserProfile

logger = logging.getLogger(__name__)

# Push service answers meaning the subscription no longer exists
GONE_STATUS_CODES = (404, 410)


class PushUnavailable(Exception):
    """VAPID credentials are missing, nothing can be sent."""


@dataclass
class VapidSettings:
    public_key: str
    private_key: str
    subject: str

    @property
    def configured(self) -> bool:
        return bool(self.public_key and self.private_key)


def get_vapid_settings() -> VapidSettings:
    return VapidSettings(VAPID_PUBLIC_KEY, VAPID_PRIVATE_KEY, VAPID_SUBJECT)


class WebPushSender:
    """Thin wrapper over pywebpush so the transport can be swapped in tests."""

    def send(self, subscription_info: dict, data: str, vapid: VapidSettings):
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=vapid.private_key,
            vapid_claims={"sub": vapid.subject},
        )


_sender = WebPushSender()


def get_push_sender() -> WebPushSender:
    return _sender


def build_payload(title: str, body: Optional[str], url: Optional[str]) -> str:
    """Payload read by the service worker."""
    return json.dumps({"title": title, "body": body, "url": url or "/"})


class PushService:
    def __init__(self, db: Session, sender=None, vapid: Optional[VapidSettings] = None):
        self.db = db
        self.sender = sender or get_push_sender()
        self.vapid = vapid or get_vapid_settings()

    def accepts_push(self, user_id: str) -> bool:
        """False only when the user has channel preferences that leave out push."""
        profile = self.db.query(UserProfile).filter(UserProfile.user_id == user_id).first()
        prefs = profile.notification_preferences if profile else None
        if prefs and prefs.get("channels") is not None:
            return "push" in prefs["channels"]
        return True

    def get_subscriptions(self, user_id: str) -> List[PushSubscription]:
        return self.db.query(PushSubscription).filter(PushSubscription.user_id == user_id).all()

    def send_to_user(self, user_id: str, title: str, body: Optional[str] = None, url: Optional[str] = None) -> dict:
        if not self.accepts_push(user_id):
            return {"sent": 0, "message": "User has disabled push notifications"}

        if not self.vapid.configured:
            logger.error("VAPID keys not configured; set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY")
            raise PushUnavailable("Push service unavailable")

        subscriptions = self.get_subscriptions(user_id)
        if not subscriptions:
            return {"sent": 0, "message": "No subscriptions found"}

        payload = build_payload(title, body, url)
        sent = 0
        failed = 0
        for sub in subscriptions:
            subscription_info = {
                "endpoint": sub.endpoint,
                "keys": {"p256dh": sub.p256dh, "auth": sub.auth},
            }
            try:
                self.sender.send(subscription_info, payload, self.vapid)
                sent += 1
            except (WebPushException, requests.RequestException) as e:
                failed += 1
                status_code = getattr(getattr(e, "response", None), "status_code", None)
                logger.warning(f"Push to {sub.endpoint[:60]} failed ({status_code}): {e}")
                if status_code in GONE_STATUS_CODES:
                    self.remove_subscription(sub.endpoint)
            except Exception as e:
                # Bad keys or encryption errors affect this device only
                failed += 1
                logger.error(f"Push to {sub.endpoint[:60]} failed: {e}")

        logger.info(f"Push to user {user_id}: sent={sent} failed={failed}")
        return {"sent": sent, "failed": failed}

    def remove_subscription(self, endpoint: str, user_id: Optional[str] = None) -> int:
        """Delete by endpoint. Deleting an already removed endpoint is a no-op."""
        query = self.db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint)
        if user_id:
            query = query.filter(PushSubscription.user_id == user_id)
        deleted = query.delete(synchronize_session=False)
        self.db.commit()
        if deleted:
            logger.info(f"Removed push subscription {endpoint[:60]}")
        return deleted

    def upsert_subscription(self, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscription:
        sub = self.db.query(PushSubscription).filter(PushSubscription.endpoint == endpoint).first()
        if sub is None:
            sub = PushSubscription(endpoint=endpoint)
            self.db.add(sub)
        sub.user_id = user_id
        sub.p256dh = p256dh
        sub.auth = auth
        self.db.commit()
        self.db.refresh(sub)
        return sub
