from conftest import auth_headers
from database.models import AuditLog, Brand, BrandUser, Creator, Membership, User, UserProfile


def _register(client, **overrides):
    payload = {
        "email": "Dana@Studio.co.il",
        "password": "password123",
        "display_name": "Dana",
        "user_type": "creator",
    }
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


class TestRegister:

    def test_creator_sign_up(self, client, db):
        resp = _register(client, language="en")

        assert resp.status_code == 200
        body = resp.json()
        assert body["role"] == "creator"
        assert body["token_type"] == "bearer"

        user = db.query(User).filter(User.email == "dana@studio.co.il").one()
        assert body["user_id"] == user.id
        assert db.query(Creator).filter(Creator.user_id == user.id).count() == 1
        assert db.query(Membership).filter(Membership.user_id == user.id).one().entity_id == user.id
        assert db.query(UserProfile).filter(UserProfile.user_id == user.id).one().language.value == "en"
        assert db.query(AuditLog).filter(AuditLog.action == "creator_registered").count() == 1

    def test_brand_sign_up_provisions_brand(self, client, db):
        resp = _register(client, email="owner@shop.co.il", user_type="brand", brand_name="Shop")

        assert resp.status_code == 200
        assert resp.json()["role"] == "brand_manager"
        brand = db.query(Brand).one()
        assert brand.name == "Shop"
        assert db.query(BrandUser).filter(BrandUser.brand_id == brand.id).count() == 1

    def test_brand_sign_up_needs_brand_name(self, client, db):
        resp = _register(client, email="owner@shop.co.il", user_type="brand")

        assert resp.status_code == 400
        assert db.query(User).count() == 0

    def test_duplicate_email(self, client, db):
        assert _register(client).status_code == 200
        resp = _register(client, email="dana@studio.co.il")

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Email already registered"
        assert db.query(User).count() == 1

    def test_short_password_is_rejected(self, client):
        assert _register(client, password="short").status_code == 400

    def test_unknown_user_type_is_rejected(self, client):
        assert _register(client, user_type="staff").status_code == 400


class TestLogin:

    def test_login_after_sign_up(self, client):
        _register(client)

        resp = client.post("/api/auth/login", json={"email": "dana@studio.co.il", "password": "password123"})

        assert resp.status_code == 200
        assert resp.json()["role"] == "creator"

    def test_wrong_password(self, client):
        _register(client)

        resp = client.post("/api/auth/login", json={"email": "dana@studio.co.il", "password": "nope-nope"})

        assert resp.status_code == 401

    def test_unknown_email(self, client):
        resp = client.post("/api/auth/login", json={"email": "nobody@studio.co.il", "password": "password123"})
        assert resp.status_code == 401

    def test_blocked_account(self, client, db):
        user_id = _register(client).json()["user_id"]
        db.query(UserProfile).filter(UserProfile.user_id == user_id).update({"is_blocked": True})
        db.commit()

        resp = client.post("/api/auth/login", json={"email": "dana@studio.co.il", "password": "password123"})

        assert resp.status_code == 403


class TestMe:

    def test_creator_profile(self, client, creator):
        resp = client.get("/api/auth/me", headers=auth_headers(creator))

        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == creator.id
        assert body["role"] == "creator"
        assert body["display_name"] == "Noa Creator"
        assert body["brand_id"] is None

    def test_brand_manager_sees_brand(self, client, brand):
        manager, brand_id = brand

        body = client.get("/api/auth/me", headers=auth_headers(manager)).json()

        assert body["role"] == "brand_manager"
        assert body["brand_id"] == brand_id

    def test_staff_role_comes_from_identity(self, client, admin):
        assert client.get("/api/auth/me", headers=auth_headers(admin)).json()["role"] == "admin"

    def test_bad_token(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
