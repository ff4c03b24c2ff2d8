"""
Shared fixtures for the API tests.

Each test gets a fresh in-memory SQLite database. Object storage, the web
push transport, VAPID settings and the push rate limiter are replaced
through FastAPI dependency overrides so nothing leaves the process.
"""
import os
import sys

# Must be set before the application modules create their engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from pywebpush import WebPushException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import auth.utils
from auth.utils import create_access_token, get_password_hash
from core.storage_service import StoredObject, get_storage
from database.config import get_db
from database.models import Base, User, UserProfile, Membership, Creator, UserRole, EntityType
from database.marketplace_models import Campaign, CampaignStatusDB, Task, TaskStatusDB
from services.brand_provisioning import BrandProvisioningService
from services.push_service import VapidSettings, get_push_sender, get_vapid_settings
from services.rate_limiter import PushRateLimiter, get_push_rate_limiter
from server import app

# Cheap hashes keep the suite fast
auth.utils.BCRYPT_ROUNDS = 4


# =============================================================================
# Fakes
# =============================================================================

class FakeStorage:
    """Dict-backed stand-in for the S3 client."""

    def __init__(self):
        self.objects = {}

    def upload(self, bucket, key, file_bytes, content_type):
        self.objects[(bucket, key)] = StoredObject(file_bytes, content_type)
        return key

    def download(self, bucket, key):
        return self.objects.get((bucket, key))


class FakePushSender:
    """Records every send. Endpoints in `fail_with` raise with that status, those in `raise_for` raise that error."""

    def __init__(self):
        self.calls = []
        self.fail_with = {}
        self.raise_for = {}

    def send(self, subscription_info, data, vapid):
        endpoint = subscription_info["endpoint"]
        self.calls.append({"endpoint": endpoint, "payload": json.loads(data)})
        if endpoint in self.raise_for:
            raise self.raise_for[endpoint]
        status_code = self.fail_with.get(endpoint)
        if status_code:
            response = SimpleNamespace(status_code=status_code, text="gone")
            raise WebPushException(f"Push failed: {status_code}", response=response)


# =============================================================================
# Database / client
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def push_sender():
    return FakePushSender()


@pytest.fixture
def vapid():
    return VapidSettings("test-public-key", "test-private-key", "mailto:test@leaders.co.il")


@pytest.fixture
def push_limiter():
    return PushRateLimiter(max_requests=20, window_seconds=60)


@pytest.fixture
def client(session_factory, storage, push_sender, vapid, push_limiter):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_push_sender] = lambda: push_sender
    app.dependency_overrides[get_vapid_settings] = lambda: vapid
    app.dependency_overrides[get_push_rate_limiter] = lambda: push_limiter

    # Not used as a context manager so the startup seeding does not run
    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# Data helpers
# =============================================================================

def auth_headers(user):
    token = create_access_token(data={"sub": user.email, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


def make_staff(db, role=UserRole.ADMIN, email=None):
    email = email or f"{role.value}@leaders.co.il"
    user = User(email=email, password_hash=get_password_hash("password123"), role=role)
    db.add(user)
    db.flush()
    db.add(UserProfile(user_id=user.id, display_name=role.value.title(), email=email))
    db.commit()
    return user


def make_creator(db, email="creator@example.com", display_name="Noa Creator"):
    user = User(email=email, password_hash=get_password_hash("password123"))
    db.add(user)
    db.flush()
    db.add(UserProfile(user_id=user.id, display_name=display_name, email=email))
    db.add(Membership(
        user_id=user.id,
        role=UserRole.CREATOR,
        entity_type=EntityType.CREATOR.value,
        entity_id=user.id,
    ))
    db.add(Creator(user_id=user.id))
    db.commit()
    return user


def make_brand_manager(db, email="manager@acme.co.il", brand_name="Acme"):
    """Provision a brand and return (manager user, brand id)."""
    result = BrandProvisioningService(db).provision(
        brand_name=brand_name,
        manager_email=email,
        manager_password="password123",
        manager_display_name=f"{brand_name} Manager",
    )
    user = db.query(User).filter(User.id == result.user_id).first()
    return user, result.brand_id


def make_campaign(db, brand_id, status=CampaignStatusDB.OPEN, fixed_price=50000, requires_product=False, **kwargs):
    campaign = Campaign(
        brand_id=brand_id,
        title=kwargs.pop("title", "Summer launch"),
        status=status,
        fixed_price=fixed_price,
        requires_product=requires_product,
        **kwargs,
    )
    db.add(campaign)
    db.commit()
    return campaign


def make_task(db, campaign, creator, status=TaskStatusDB.UPLOADED, payment_amount=50000):
    task = Task(
        campaign_id=campaign.id,
        creator_id=creator.id,
        title=campaign.title,
        status=status,
        payment_amount=payment_amount,
    )
    db.add(task)
    db.commit()
    return task


@pytest.fixture
def admin(db):
    return make_staff(db, UserRole.ADMIN)


@pytest.fixture
def creator(db):
    return make_creator(db)


@pytest.fixture
def brand(db):
    """(manager, brand_id) of a freshly provisioned brand."""
    return make_brand_manager(db)
