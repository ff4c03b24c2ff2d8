import pytest

from conftest import auth_headers, make_campaign, make_creator, make_staff, make_task
from database.models import Notification, UserRole
from database.marketplace_models import (
    Dispute,
    DisputeStatusDB,
    Payment,
    PaymentStatusDB,
    Task,
    TaskStatusDB,
)


@pytest.fixture
def support(db):
    return make_staff(db, UserRole.SUPPORT)


@pytest.fixture
def task(db, brand, creator):
    _, brand_id = brand
    campaign = make_campaign(db, brand_id)
    return make_task(db, campaign, creator, status=TaskStatusDB.UPLOADED)


def _raise(client, task, user, reason="The brand keeps asking for unpaid extras"):
    return client.post("/api/disputes", json={"task_id": task.id, "reason": reason}, headers=auth_headers(user))


class TestRaiseDispute:

    def test_creator_raises_and_brand_is_notified(self, client, db, brand, creator, task):
        manager, _ = brand

        resp = _raise(client, task, creator)

        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "open"
        assert body["task_status_before"] == "uploaded"

        db.expire_all()
        assert db.query(Task).filter(Task.id == task.id).one().status == TaskStatusDB.DISPUTED
        notes = db.query(Notification).filter(Notification.user_id == manager.id).all()
        assert [n.type for n in notes] == ["dispute_opened"]
        assert db.query(Notification).filter(Notification.user_id == creator.id).count() == 0

    def test_only_one_active_dispute_per_task(self, client, task, creator, brand):
        manager, _ = brand
        assert _raise(client, task, creator).status_code == 201
        assert _raise(client, task, manager).status_code == 400

    def test_outsiders_cannot_raise(self, client, db, task):
        stranger = make_creator(db, email="stranger@example.com")
        assert _raise(client, task, stranger).status_code == 403

    def test_reason_must_be_descriptive(self, client, task, creator):
        assert _raise(client, task, creator, reason="bad").status_code == 400

    def test_task_not_yet_delivered_cannot_be_disputed(self, client, db, brand, creator):
        _, brand_id = brand
        campaign = make_campaign(db, brand_id, title="Winter")
        fresh = make_task(db, campaign, creator, status=TaskStatusDB.SELECTED)

        resp = _raise(client, fresh, creator)

        assert resp.status_code == 400
        db.expire_all()
        assert db.query(Dispute).count() == 0


class TestResolveDispute:

    def test_approve_opens_payment(self, client, db, task, creator, support):
        dispute_id = _raise(client, task, creator).json()["id"]

        resp = client.post(
            f"/api/disputes/{dispute_id}/resolve",
            json={"action": "approve", "resolution_note": "Content matches the brief"},
            headers=auth_headers(support),
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "resolved"
        db.expire_all()
        assert db.query(Task).filter(Task.id == task.id).one().status == TaskStatusDB.APPROVED
        payment = db.query(Payment).filter(Payment.task_id == task.id).one()
        assert payment.status == PaymentStatusDB.PENDING
        assert payment.amount == 50000

    def test_reject_sends_task_back_for_edits(self, client, db, task, creator, support):
        dispute_id = _raise(client, task, creator).json()["id"]

        client.post(
            f"/api/disputes/{dispute_id}/resolve",
            json={"action": "reject", "resolution_note": "Brief was not followed"},
            headers=auth_headers(support),
        )

        db.expire_all()
        assert db.query(Task).filter(Task.id == task.id).one().status == TaskStatusDB.NEEDS_EDITS
        assert db.query(Payment).count() == 0

    def test_review_then_dismiss_restores_task(self, client, db, task, creator, support):
        dispute_id = _raise(client, task, creator).json()["id"]
        headers = auth_headers(support)

        assert client.post(f"/api/disputes/{dispute_id}/review", headers=headers).json()["status"] == "in_review"
        resp = client.post(f"/api/disputes/{dispute_id}/dismiss", json={"resolution_note": "No grounds"}, headers=headers)

        assert resp.json()["status"] == "rejected"
        db.expire_all()
        assert db.query(Task).filter(Task.id == task.id).one().status == TaskStatusDB.UPLOADED
        dispute = db.query(Dispute).filter(Dispute.id == dispute_id).one()
        assert dispute.resolved_by == support.id
        assert dispute.resolved_at is not None

    def test_closed_dispute_cannot_be_resolved_again(self, client, task, creator, support):
        dispute_id = _raise(client, task, creator).json()["id"]
        headers = auth_headers(support)
        body = {"action": "needs_edits", "resolution_note": "Minor fixes needed"}

        assert client.post(f"/api/disputes/{dispute_id}/resolve", json=body, headers=headers).status_code == 200
        assert client.post(f"/api/disputes/{dispute_id}/resolve", json=body, headers=headers).status_code == 400

    def test_parties_cannot_resolve(self, client, task, creator):
        dispute_id = _raise(client, task, creator).json()["id"]

        resp = client.post(
            f"/api/disputes/{dispute_id}/resolve",
            json={"action": "approve", "resolution_note": "I win"},
            headers=auth_headers(creator),
        )
        assert resp.status_code == 403

    def test_unknown_action_is_rejected(self, client, task, creator, support):
        dispute_id = _raise(client, task, creator).json()["id"]

        resp = client.post(
            f"/api/disputes/{dispute_id}/resolve",
            json={"action": "refund", "resolution_note": "Refund the brand"},
            headers=auth_headers(support),
        )
        assert resp.status_code == 400


def test_dispute_listing_is_scoped(client, db, task, creator, brand, support):
    manager, _ = brand
    _raise(client, task, creator)
    stranger = make_creator(db, email="stranger@example.com")

    assert len(client.get("/api/disputes", headers=auth_headers(creator)).json()) == 1
    assert len(client.get("/api/disputes", headers=auth_headers(manager)).json()) == 1
    assert len(client.get("/api/disputes", headers=auth_headers(support)).json()) == 1
    assert client.get("/api/disputes", headers=auth_headers(stranger)).json() == []
    assert client.get("/api/disputes?status=resolved", headers=auth_headers(support)).json() == []
