# Campaign Workflow Models for the LEADERS platform
# Campaigns, applications, tasks and everything hanging off a task:
# uploads, revisions, approvals, payments, shipments and disputes.

from sqlalchemy import Column, String, Integer, Float, DateTime, ForeignKey, Text, JSON, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

# Use the same Base from existing models
from database.models import Base, generate_uuid, db_enum


# ============================================================================
# ENUMS
# ============================================================================

class CampaignStatusDB(str, enum.Enum):
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


class ApplicationStatusDB(str, enum.Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class TaskStatusDB(str, enum.Enum):
    SELECTED = "selected"
    IN_PRODUCTION = "in_production"
    UPLOADED = "uploaded"
    NEEDS_EDITS = "needs_edits"
    APPROVED = "approved"
    PAID = "paid"
    DISPUTED = "disputed"


class PaymentStatusDB(str, enum.Enum):
    PENDING = "pending"
    APPROVED_FOR_PAYMENT = "approved_for_payment"
    PAID = "paid"
    FAILED = "failed"


class ShipmentStatusDB(str, enum.Enum):
    NOT_REQUESTED = "not_requested"
    WAITING_ADDRESS = "waiting_address"
    ADDRESS_RECEIVED = "address_received"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    ISSUE = "issue"


class DisputeStatusDB(str, enum.Enum):
    OPEN = "open"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class RejectionReasonDB(str, enum.Enum):
    NOT_RELEVANT = "not_relevant"
    LOW_QUALITY_PROFILE = "low_quality_profile"
    INSUFFICIENT_FOLLOWERS = "insufficient_followers"
    WRONG_NICHE = "wrong_niche"
    TIMING_ISSUE = "timing_issue"
    BUDGET_MISMATCH = "budget_mismatch"
    OTHER = "other"


class RevisionStatusDB(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


# ============================================================================
# CAMPAIGNS & APPLICATIONS
# ============================================================================

class Campaign(Base):
    __tablename__ = "campaigns"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    brand_id = Column(String(36), ForeignKey("brands.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    brief = Column(Text)
    brief_url = Column(String(500))
    objective = Column(Text)
    concept = Column(Text)
    deliverables = Column(JSON)
    fixed_price = Column(Integer)  # agorot
    currency = Column(String(3), default="ILS")
    requires_product = Column(Boolean, default=False)
    deadline = Column(DateTime)
    status = Column(db_enum(CampaignStatusDB, "campaign_status"), default=CampaignStatusDB.DRAFT)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    brand = relationship("Brand")
    applications = relationship("Application", back_populates="campaign", cascade="all, delete-orphan")
    tasks = relationship("Task", back_populates="campaign", cascade="all, delete-orphan")


class Application(Base):
    """A creator's bid on a campaign."""
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(Text)
    availability = Column(String(255))
    portfolio_links = Column(Text)
    deliverable_notes = Column(Text)
    proposed_price = Column(Integer)  # agorot
    status = Column(db_enum(ApplicationStatusDB, "application_status"), default=ApplicationStatusDB.SUBMITTED)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="applications")
    feedback = relationship("ApplicationFeedback", back_populates="application", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("campaign_id", "creator_id", name="uq_applications_campaign_creator"),
    )


class ApplicationFeedback(Base):
    __tablename__ = "application_feedback"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    application_id = Column(String(36), ForeignKey("applications.id", ondelete="CASCADE"), nullable=False)
    decision = Column(String(20), nullable=False)
    reason_code = Column(db_enum(RejectionReasonDB, "rejection_reason"))
    note = Column(Text)
    created_at = Column(DateTime, server_default=func.now())

    application = relationship("Application", back_populates="feedback")


# ============================================================================
# TASKS
# ============================================================================

class Task(Base):
    """One deliverable unit of work for a creator within a campaign."""
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    status = Column(db_enum(TaskStatusDB, "task_status"), default=TaskStatusDB.SELECTED)
    due_at = Column(DateTime)
    payment_amount = Column(Integer, default=0)  # agorot
    requires_product = Column(Boolean, default=False)
    product_requirements = Column(Text)
    shipment_request_id = Column(String(36), ForeignKey("shipment_requests.id", ondelete="SET NULL"))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    campaign = relationship("Campaign", back_populates="tasks")
    shipment_request = relationship("ShipmentRequest")
    uploads = relationship("Upload", back_populates="task", cascade="all, delete-orphan")
    revision_requests = relationship("RevisionRequest", back_populates="task", cascade="all, delete-orphan")
    payment = relationship("Payment", back_populates="task", uselist=False, cascade="all, delete-orphan")
    disputes = relationship("Dispute", back_populates="task", cascade="all, delete-orphan")


class Upload(Base):
    __tablename__ = "uploads"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    storage_path = Column(String(500), nullable=False)
    status = Column(String(20), default="pending")
    meta = Column(JSON)
    created_at = Column(DateTime, server_default=func.now())

    task = relationship("Task", back_populates="uploads")


class RevisionRequest(Base):
    __tablename__ = "revision_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    tags = Column(JSON)
    note = Column(Text, nullable=False)
    status = Column(db_enum(RevisionStatusDB, "revision_status"), default=RevisionStatusDB.OPEN)
    created_at = Column(DateTime, server_default=func.now())
    resolved_at = Column(DateTime)

    task = relationship("Task", back_populates="revision_requests")


class Approval(Base):
    __tablename__ = "approvals"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    decision = Column(String(20), nullable=False)
    note = Column(Text)
    created_at = Column(DateTime, server_default=func.now())


class Rating(Base):
    __tablename__ = "ratings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    quality = Column(Integer)
    on_time = Column(Integer)
    communication = Column(Integer)
    note = Column(Text)
    created_at = Column(DateTime, server_default=func.now())


class CreatorMetrics(Base):
    __tablename__ = "creator_metrics"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_tasks = Column(Integer, default=0)
    approved_tasks = Column(Integer, default=0)
    rejected_tasks = Column(Integer, default=0)
    average_rating = Column(Float, default=0.0)
    approval_rate = Column(Float, default=0.0)
    on_time_deliveries = Column(Integer, default=0)
    late_deliveries = Column(Integer, default=0)
    on_time_rate = Column(Float, default=0.0)
    last_updated = Column(DateTime, server_default=func.now(), onupdate=func.now())


# ============================================================================
# PAYMENTS
# ============================================================================

class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), unique=True, nullable=False)
    amount = Column(Integer, nullable=False)  # agorot
    currency = Column(String(3), default="ILS")
    status = Column(db_enum(PaymentStatusDB, "payment_status"), default=PaymentStatusDB.PENDING)
    proof_url = Column(String(500))
    invoice_url = Column(String(500))
    paid_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    task = relationship("Task", back_populates="payment")


# ============================================================================
# SHIPMENTS
# ============================================================================

class ShipmentAddress(Base):
    __tablename__ = "shipment_addresses"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    street = Column(String(255), nullable=False)
    house_number = Column(String(20), nullable=False)
    apartment = Column(String(20))
    city = Column(String(100), nullable=False)
    postal_code = Column(String(20))
    country = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=False)
    notes = Column(Text)
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime, server_default=func.now())


class ShipmentRequest(Base):
    __tablename__ = "shipment_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    campaign_id = Column(String(36), ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    address_id = Column(String(36), ForeignKey("shipment_addresses.id", ondelete="SET NULL"))
    status = Column(db_enum(ShipmentStatusDB, "shipment_status"), default=ShipmentStatusDB.NOT_REQUESTED)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    address = relationship("ShipmentAddress")
    shipments = relationship("Shipment", back_populates="request", cascade="all, delete-orphan")


class Shipment(Base):
    __tablename__ = "shipments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    shipment_request_id = Column(String(36), ForeignKey("shipment_requests.id", ondelete="CASCADE"), nullable=False)
    carrier = Column(String(100))
    tracking_number = Column(String(100))
    status = Column(db_enum(ShipmentStatusDB, "shipment_status"), default=ShipmentStatusDB.SHIPPED)
    shipped_at = Column(DateTime)
    delivered_at = Column(DateTime)
    issue_reason = Column(String(100))
    issue_note = Column(Text)

    request = relationship("ShipmentRequest", back_populates="shipments")


# ============================================================================
# DISPUTES
# ============================================================================

class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    raised_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(db_enum(DisputeStatusDB, "dispute_status"), default=DisputeStatusDB.OPEN)
    task_status_before = Column(db_enum(TaskStatusDB, "task_status"))
    resolution_note = Column(Text)
    resolved_by = Column(String(36), ForeignKey("users.id"))
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, server_default=func.now())

    task = relationship("Task", back_populates="disputes")
