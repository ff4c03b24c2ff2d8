import base64
import uuid

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from conftest import auth_headers, make_staff
from database.models import PushSubscription, UserProfile, UserRole
from services.push_service import PushService, VapidSettings, WebPushSender, build_payload, get_vapid_settings
from server import app


# Shapes of a real browser subscription: 65 byte P-256 point, 16 byte secret
BROWSER_KEYS = {
    "p256dh": base64.urlsafe_b64encode(b"\x04" + bytes(64)).decode().rstrip("="),
    "auth": base64.urlsafe_b64encode(bytes(16)).decode().rstrip("="),
}


def _subscribe(db, user, endpoint):
    db.add(PushSubscription(user_id=user.id, endpoint=endpoint, p256dh="p256dh-key", auth="auth-secret"))
    db.commit()


@pytest.fixture
def support(db):
    return make_staff(db, UserRole.SUPPORT)


class TestSendPush:

    def test_fans_out_to_every_subscription(self, client, db, admin, creator, push_sender):
        _subscribe(db, creator, "https://push.example/phone")
        _subscribe(db, creator, "https://push.example/laptop")

        resp = client.post(
            "/api/push/send",
            json={"user_id": creator.id, "title": "New task", "body": "You were selected", "url": "/tasks"},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 200
        assert resp.json() == {"sent": 2, "failed": 0}
        assert {c["endpoint"] for c in push_sender.calls} == {
            "https://push.example/phone", "https://push.example/laptop"
        }
        assert push_sender.calls[0]["payload"] == {"title": "New task", "body": "You were selected", "url": "/tasks"}

    def test_any_staff_role_may_send(self, client, creator, support):
        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hi"}, headers=auth_headers(support))
        assert resp.status_code == 200
        assert resp.json()["sent"] == 0

    def test_gone_subscription_is_deleted_and_not_retried(self, client, db, admin, creator, push_sender):
        _subscribe(db, creator, "https://push.example/live")
        _subscribe(db, creator, "https://push.example/expired")
        push_sender.fail_with["https://push.example/expired"] = 410

        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))

        assert resp.json() == {"sent": 1, "failed": 1}
        db.expire_all()
        endpoints = [s.endpoint for s in db.query(PushSubscription).all()]
        assert endpoints == ["https://push.example/live"]
        assert [c["endpoint"] for c in push_sender.calls].count("https://push.example/expired") == 1

    def test_transient_failure_keeps_subscription(self, client, db, admin, creator, push_sender):
        _subscribe(db, creator, "https://push.example/flaky")
        push_sender.fail_with["https://push.example/flaky"] = 500

        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))

        assert resp.json() == {"sent": 0, "failed": 1}
        db.expire_all()
        assert db.query(PushSubscription).count() == 1

    def test_unexpected_error_does_not_stop_other_devices(self, client, db, admin, creator, push_sender):
        _subscribe(db, creator, "https://push.example/broken")
        _subscribe(db, creator, "https://push.example/phone")
        push_sender.raise_for["https://push.example/broken"] = ValueError("Could not deserialize key data")

        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json() == {"sent": 1, "failed": 1}
        assert {c["endpoint"] for c in push_sender.calls} == {
            "https://push.example/broken", "https://push.example/phone"
        }
        db.expire_all()
        assert db.query(PushSubscription).count() == 2

    def test_disabled_push_preference_sends_nothing(self, client, db, admin, creator, push_sender):
        _subscribe(db, creator, "https://push.example/phone")
        profile = db.query(UserProfile).filter(UserProfile.user_id == creator.id).one()
        profile.notification_preferences = {"channels": ["in_app"]}
        db.commit()

        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))

        assert resp.status_code == 200
        assert resp.json()["sent"] == 0
        assert push_sender.calls == []

    def test_no_subscriptions(self, client, admin, creator):
        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))
        assert resp.json() == {"sent": 0, "message": "No subscriptions found"}

    def test_missing_vapid_keys_is_500(self, client, db, admin, creator):
        _subscribe(db, creator, "https://push.example/phone")
        app.dependency_overrides[get_vapid_settings] = lambda: VapidSettings("", "", "mailto:x@leaders.co.il")

        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Push service unavailable"


class TestSendPushValidation:

    def test_malformed_user_id(self, client, admin):
        resp = client.post("/api/push/send", json={"user_id": "not-a-uuid", "title": "Hello"}, headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_absolute_url_is_refused(self, client, admin, creator):
        resp = client.post(
            "/api/push/send",
            json={"user_id": creator.id, "title": "Hello", "url": "https://phishing.example"},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400

    def test_title_must_be_a_string(self, client, admin, creator):
        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": 5}, headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_body_must_be_an_object(self, client, admin):
        resp = client.post("/api/push/send", json=[1, 2, 3], headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_null_body_is_refused(self, client, admin, creator):
        resp = client.post(
            "/api/push/send",
            json={"user_id": creator.id, "title": "Hello", "body": None},
            headers=auth_headers(admin),
        )
        assert resp.status_code == 400

    def test_body_may_be_left_out(self, client, admin, creator):
        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(admin))
        assert resp.status_code == 200


class TestSendPushAccess:

    def test_requires_token(self, client):
        resp = client.post("/api/push/send", json={"user_id": str(uuid.uuid4()), "title": "Hello"})
        assert resp.status_code == 401

    def test_creator_is_forbidden(self, client, creator):
        resp = client.post("/api/push/send", json={"user_id": creator.id, "title": "Hello"}, headers=auth_headers(creator))
        assert resp.status_code == 403

    def test_brand_manager_is_forbidden(self, client, brand):
        manager, _ = brand
        resp = client.post("/api/push/send", json={"user_id": manager.id, "title": "Hello"}, headers=auth_headers(manager))
        assert resp.status_code == 403


class TestSendPushRateLimit:

    def test_twenty_first_request_in_a_minute_is_429(self, client, admin):
        payload = {"user_id": str(uuid.uuid4()), "title": "Hello"}
        headers = auth_headers(admin)

        for _ in range(20):
            assert client.post("/api/push/send", json=payload, headers=headers).status_code == 200

        resp = client.post("/api/push/send", json=payload, headers=headers)
        assert resp.status_code == 429

    def test_limit_is_per_sender(self, client, db, admin, push_limiter):
        other_admin = make_staff(db, UserRole.ADMIN, email="second-admin@leaders.co.il")
        for _ in range(20):
            push_limiter.allow(admin.id)

        payload = {"user_id": str(uuid.uuid4()), "title": "Hello"}
        assert client.post("/api/push/send", json=payload, headers=auth_headers(admin)).status_code == 429
        assert client.post("/api/push/send", json=payload, headers=auth_headers(other_admin)).status_code == 200


class TestSubscriptions:

    def test_subscribe_then_unsubscribe(self, client, db, creator):
        headers = auth_headers(creator)
        body = {"endpoint": "https://push.example/me", "keys": BROWSER_KEYS}

        assert client.post("/api/push/subscriptions", json=body, headers=headers).status_code == 200
        db.expire_all()
        assert db.query(PushSubscription).filter(PushSubscription.user_id == creator.id).count() == 1

        resp = client.request("DELETE", "/api/push/subscriptions", json={"endpoint": "https://push.example/me"}, headers=headers)
        assert resp.json() == {"success": True, "removed": 1}

    def test_malformed_keys_are_refused(self, client, db, creator):
        body = {"endpoint": "https://push.example/me", "keys": {"p256dh": "k", "auth": "a"}}

        resp = client.post("/api/push/subscriptions", json=body, headers=auth_headers(creator))

        assert resp.status_code == 400
        db.expire_all()
        assert db.query(PushSubscription).count() == 0

    def test_keys_must_be_url_safe_base64(self, client, creator):
        keys = dict(BROWSER_KEYS, auth="not base64!!")
        resp = client.post(
            "/api/push/subscriptions",
            json={"endpoint": "https://push.example/me", "keys": keys},
            headers=auth_headers(creator),
        )
        assert resp.status_code == 400

    def test_cannot_remove_someone_elses_subscription(self, client, db, creator, admin):
        _subscribe(db, admin, "https://push.example/admin")

        resp = client.request(
            "DELETE", "/api/push/subscriptions",
            json={"endpoint": "https://push.example/admin"},
            headers=auth_headers(creator),
        )

        assert resp.json()["removed"] == 0
        db.expire_all()
        assert db.query(PushSubscription).count() == 1

    def test_preferences_reject_unknown_channel(self, client, creator):
        resp = client.put("/api/push/preferences", json={"channels": ["push", "carrier_pigeon"]}, headers=auth_headers(creator))
        assert resp.status_code == 400

    def test_preferences_are_stored(self, client, db, creator):
        resp = client.put("/api/push/preferences", json={"channels": ["in_app", "email"]}, headers=auth_headers(creator))

        assert resp.status_code == 200
        db.expire_all()
        profile = db.query(UserProfile).filter(UserProfile.user_id == creator.id).one()
        assert profile.notification_preferences == {"channels": ["in_app", "email"]}


def test_payload_defaults_url_to_root():
    assert build_payload("Hi", None, None) == '{"title": "Hi", "body": null, "url": "/"}'


def _real_vapid():
    key = ec.generate_private_key(ec.SECP256R1())
    raw = key.private_numbers().private_value.to_bytes(32, "big")
    private_key = base64.urlsafe_b64encode(raw).decode().rstrip("=")
    return VapidSettings("unused-public-key", private_key, "mailto:test@leaders.co.il")


def test_undecodable_stored_key_counts_as_failed(db, creator):
    # Stored rows skip request validation
    db.add(PushSubscription(user_id=creator.id, endpoint="https://push.example/old", p256dh="k", auth="a"))
    db.commit()

    result = PushService(db, sender=WebPushSender(), vapid=_real_vapid()).send_to_user(creator.id, "Hello")

    assert result == {"sent": 0, "failed": 1}
    assert db.query(PushSubscription).count() == 1
