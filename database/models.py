# Database Models for the LEADERS platform
# Identity, organisations, audit trail and notification delivery

from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Enum, Boolean, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import uuid
import enum

Base = declarative_base()

def generate_uuid():
    return str(uuid.uuid4())

def db_enum(enum_cls, name):
    """Store enum values (not member names) in the column."""
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], name=name)

# Enums
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    FINANCE = "finance"
    SUPPORT = "support"
    CONTENT_OPS = "content_ops"
    BRAND_MANAGER = "brand_manager"
    BRAND_USER = "brand_user"
    CREATOR = "creator"

class LanguageCode(str, enum.Enum):
    HE = "he"
    EN = "en"

class EntityType(str, enum.Enum):
    BRAND = "brand"
    CREATOR = "creator"

# Models
class User(Base):
    """Authentication identity. `role` holds the platform role granted to staff."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(db_enum(UserRole, "user_role"), nullable=True)
    user_metadata = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    profile = relationship("UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan")
    memberships = relationship("Membership", back_populates="user", cascade="all, delete-orphan")
    push_subscriptions = relationship("PushSubscription", back_populates="user", cascade="all, delete-orphan")

class UserProfile(Base):
    __tablename__ = "users_profiles"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    display_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    language = Column(db_enum(LanguageCode, "language_code"), default=LanguageCode.HE)
    avatar_url = Column(String(500))
    is_blocked = Column(Boolean, default=False)
    notification_preferences = Column(JSON)  # {"channels": ["push", "in_app", ...]}
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="profile")

class Membership(Base):
    __tablename__ = "memberships"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(db_enum(UserRole, "user_role"), nullable=False)
    entity_type = Column(String(20))
    entity_id = Column(String(36))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="memberships")

class Brand(Base):
    __tablename__ = "brands"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    industry = Column(String(255))
    website = Column(String(500))
    default_language = Column(db_enum(LanguageCode, "language_code"), default=LanguageCode.HE)
    verified_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship("BrandUser", back_populates="brand", cascade="all, delete-orphan")

class BrandUser(Base):
    __tablename__ = "brand_users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    brand_id = Column(String(36), ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(db_enum(UserRole, "user_role"), default=UserRole.BRAND_USER)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())

    brand = relationship("Brand", back_populates="users")

    __table_args__ = (
        UniqueConstraint("brand_id", "user_id", name="uq_brand_users_brand_user"),
    )

class Creator(Base):
    __tablename__ = "creators"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    country = Column(String(100))
    gender = Column(String(20))
    age_range = Column(String(20))
    niches = Column(JSON)
    occupations = Column(JSON)
    platforms = Column(JSON)
    portfolio_links = Column(JSON)
    tier = Column(String(20))
    verified_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    actor_id = Column(String(36), index=True)
    entity = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(36), index=True)
    action = Column(String(100), nullable=False)
    meta = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())

class PushSubscription(Base):
    __tablename__ = "push_subscriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    endpoint = Column(String(1000), unique=True, nullable=False)
    p256dh = Column(String(255), nullable=False)
    auth = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="push_subscriptions")

class Notification(Base):
    """In-app notification shown in the notification bell."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text)
    action_url = Column(String(500))
    data = Column(JSON)
    is_read = Column(Boolean, default=False)
    read_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

class ProvisioningRequest(Base):
    """Result of an idempotent brand provisioning call, keyed by the caller's token."""
    __tablename__ = "provisioning_requests"

    idempotency_key = Column(String(255), primary_key=True)
    brand_id = Column(String(36), ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_by = Column(String(36))
    created_at = Column(DateTime, server_default=func.now())
