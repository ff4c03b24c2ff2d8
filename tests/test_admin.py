from conftest import auth_headers, make_creator, make_staff
from database.models import AuditLog, Creator, Notification, User, UserProfile, UserRole
from services import admin_service


class TestSetAdmins:

    def test_reports_result_per_email(self, client, db, admin, creator):
        resp = client.post(
            "/api/admin/set-admins",
            json={"emails": ["Creator@Example.com", "ghost@example.com"]},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"] == [
            {"email": "Creator@Example.com", "status": "updated", "user_id": creator.id},
            {"email": "ghost@example.com", "status": "not_found"},
        ]
        db.expire_all()
        assert db.query(User).filter(User.id == creator.id).one().role == UserRole.ADMIN

    def test_emails_must_be_a_list(self, client, admin):
        resp = client.post("/api/admin/set-admins", json={"emails": "a@b.com"}, headers=auth_headers(admin))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid emails array"

    def test_only_admins(self, client, db):
        support = make_staff(db, UserRole.SUPPORT)
        resp = client.post("/api/admin/set-admins", json={"emails": []}, headers=auth_headers(support))
        assert resp.status_code == 403

    def test_service_logs_grants(self, db, creator):
        admin_service.set_admins(db, [creator.email])
        assert db.query(AuditLog).filter(AuditLog.action == "admin_granted").count() == 1


class TestModeration:

    def test_blocked_user_loses_access(self, client, db, admin, creator):
        headers = auth_headers(creator)
        assert client.get("/api/auth/me", headers=headers).status_code == 200

        resp = client.post(f"/api/admin/users/{creator.id}/block", headers=auth_headers(admin))
        assert resp.status_code == 200

        resp = client.get("/api/auth/me", headers=headers)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Account is blocked"

        client.post(f"/api/admin/users/{creator.id}/unblock", headers=auth_headers(admin))
        assert client.get("/api/auth/me", headers=headers).status_code == 200

    def test_cannot_block_yourself(self, client, admin):
        resp = client.post(f"/api/admin/users/{admin.id}/block", headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_bulk_block(self, client, db, admin, creator):
        other = make_creator(db, email="other@example.com")

        resp = client.post(
            "/api/admin/users/bulk-block",
            json={"user_ids": [creator.id, other.id]},
            headers=auth_headers(admin),
        )

        assert resp.json() == {"success": True, "updated": 2}
        db.expire_all()
        assert db.query(UserProfile).filter(UserProfile.is_blocked == True).count() == 2

    def test_user_listing_filters(self, client, db, admin, creator):
        resp = client.get("/api/admin/users", params={"search": "noa"}, headers=auth_headers(admin))

        body = resp.json()
        assert body["total"] == 1
        assert body["users"][0]["id"] == creator.id

    def test_brand_users_cannot_moderate(self, client, brand, creator):
        manager, _ = brand
        resp = client.post(f"/api/admin/users/{creator.id}/block", headers=auth_headers(manager))
        assert resp.status_code == 403


class TestVerification:

    def test_verify_creator_notifies(self, client, db, admin, creator):
        resp = client.post(f"/api/admin/creators/{creator.id}/verify", headers=auth_headers(admin))

        assert resp.status_code == 200
        db.expire_all()
        assert db.query(Creator).filter(Creator.user_id == creator.id).one().verified_at is not None
        assert db.query(Notification).filter(Notification.user_id == creator.id).one().type == "profile_verified"

    def test_verify_unknown_brand(self, client, admin):
        resp = client.post("/api/admin/brands/missing/verify", headers=auth_headers(admin))
        assert resp.status_code == 404


class TestAuditLogs:

    def test_filter_by_entity(self, client, admin, brand):
        _, brand_id = brand

        resp = client.get("/api/admin/audit-logs", params={"entity": "brand"}, headers=auth_headers(admin))

        body = resp.json()
        assert body["total"] == 1
        assert body["logs"][0]["entity_id"] == brand_id
        assert body["logs"][0]["action"] == "brand_provisioned"

    def test_finance_cannot_read_audit_logs(self, client, db):
        finance = make_staff(db, UserRole.FINANCE)
        resp = client.get("/api/admin/audit-logs", headers=auth_headers(finance))
        assert resp.status_code == 403


def test_stats_counts_by_status(client, db, admin, creator, brand):
    resp = client.get("/api/admin/stats", headers=auth_headers(admin))

    body = resp.json()
    assert body["users"] == 3
    assert body["brands"] == 1
    assert body["creators"] == 1
    assert body["tasks"] == {}
