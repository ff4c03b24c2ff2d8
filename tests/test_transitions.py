import pytest

from conftest import auth_headers, make_brand_manager, make_campaign
from core.transitions import (
    InvalidTransition,
    allowed_targets,
    can_transition,
    ensure_transition,
)
from database.models import AuditLog
from database.marketplace_models import (
    Campaign,
    CampaignStatusDB,
    TaskStatusDB,
    PaymentStatusDB,
    ShipmentStatusDB,
    DisputeStatusDB,
)


class TestTransitionTables:

    def test_task_happy_path(self):
        path = ["selected", "in_production", "uploaded", "needs_edits", "uploaded", "approved", "paid"]
        for current, target in zip(path, path[1:]):
            assert can_transition("task", current, target), f"{current} -> {target}"

    def test_paid_task_is_terminal(self):
        assert allowed_targets("task", TaskStatusDB.PAID) == frozenset()
        for status in TaskStatusDB:
            assert not can_transition("task", TaskStatusDB.PAID, status)

    def test_task_cannot_skip_production(self):
        assert not can_transition("task", "selected", "uploaded")
        assert not can_transition("task", "selected", "approved")

    def test_disputed_task_can_be_settled(self):
        assert allowed_targets("task", "disputed") == {
            TaskStatusDB.APPROVED, TaskStatusDB.NEEDS_EDITS, TaskStatusDB.UPLOADED
        }

    def test_failed_payment_can_retry(self):
        assert can_transition("payment", PaymentStatusDB.FAILED, PaymentStatusDB.PENDING)
        assert not can_transition("payment", PaymentStatusDB.PAID, PaymentStatusDB.FAILED)

    def test_shipment_issue_can_recover(self):
        assert can_transition("shipment_request", ShipmentStatusDB.ISSUE, ShipmentStatusDB.SHIPPED)
        assert not can_transition("shipment_request", ShipmentStatusDB.WAITING_ADDRESS, ShipmentStatusDB.SHIPPED)

    def test_closed_dispute_is_final(self):
        assert not can_transition("dispute", DisputeStatusDB.RESOLVED, DisputeStatusDB.OPEN)
        assert not can_transition("dispute", DisputeStatusDB.REJECTED, DisputeStatusDB.IN_REVIEW)

    def test_unknown_target_is_rejected(self):
        assert not can_transition("campaign", "draft", "published")
        with pytest.raises(InvalidTransition):
            ensure_transition("campaign", "draft", "published")

    def test_ensure_transition_returns_enum_member(self):
        assert ensure_transition("campaign", "draft", "open") is CampaignStatusDB.OPEN

    def test_error_message_names_both_statuses(self):
        with pytest.raises(InvalidTransition) as exc:
            ensure_transition("task", TaskStatusDB.SELECTED, TaskStatusDB.PAID)
        assert str(exc.value) == "Cannot move task from 'selected' to 'paid'"


class TestCampaignStatusEndpoint:

    def test_publish_then_close(self, client, db, brand):
        manager, brand_id = brand
        campaign = make_campaign(db, brand_id, status=CampaignStatusDB.DRAFT)

        resp = client.post(f"/api/campaigns/{campaign.id}/status", json={"status": "open"}, headers=auth_headers(manager))
        assert resp.status_code == 200
        assert resp.json()["status"] == "open"

        resp = client.post(f"/api/campaigns/{campaign.id}/status", json={"status": "closed"}, headers=auth_headers(manager))
        assert resp.status_code == 200

        db.expire_all()
        actions = [log.action for log in db.query(AuditLog).filter(AuditLog.entity_id == campaign.id).all()]
        assert "campaign_open" in actions
        assert "campaign_closed" in actions

    def test_illegal_move_is_400_and_leaves_row_unchanged(self, client, db, brand):
        manager, brand_id = brand
        campaign = make_campaign(db, brand_id, status=CampaignStatusDB.DRAFT)

        resp = client.post(f"/api/campaigns/{campaign.id}/status", json={"status": "closed"}, headers=auth_headers(manager))

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Cannot move campaign from 'draft' to 'closed'"
        db.expire_all()
        assert db.query(Campaign).filter(Campaign.id == campaign.id).first().status == CampaignStatusDB.DRAFT
        assert db.query(AuditLog).filter(AuditLog.entity_id == campaign.id).count() == 0

    def test_other_brand_cannot_change_status(self, client, db, brand):
        _, brand_id = brand
        other_manager, _ = make_brand_manager(db, email="boss@other.co.il", brand_name="Other")
        campaign = make_campaign(db, brand_id, status=CampaignStatusDB.DRAFT)

        resp = client.post(f"/api/campaigns/{campaign.id}/status", json={"status": "open"}, headers=auth_headers(other_manager))
        assert resp.status_code == 403
