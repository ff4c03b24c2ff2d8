# Pydantic Schemas for the LEADERS marketplace
# Organized in a modular structure for maintainability

import base64
import binascii
import re
from pydantic import BaseModel, EmailStr, Field, StrictStr, validator
from typing import Optional, List, Literal, Any
from datetime import datetime

from database.models import LanguageCode
from database.marketplace_models import (
    CampaignStatusDB,
    ApplicationStatusDB,
    TaskStatusDB,
    PaymentStatusDB,
    ShipmentStatusDB,
    DisputeStatusDB,
    RejectionReasonDB,
)


UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)

NOTIFICATION_CHANNELS = ("push", "in_app", "email")

B64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def _b64url_decode(value: str) -> bytes:
    if not B64URL_RE.match(value):
        raise ValueError("must be url-safe base64")
    stripped = value.rstrip("=")
    try:
        return base64.urlsafe_b64decode(stripped + "=" * (-len(stripped) % 4))
    except binascii.Error:
        raise ValueError("must be url-safe base64")


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class RegisterRequest(BaseModel):
    """Self-service sign up for creators and brands."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    display_name: str = Field(..., min_length=2, max_length=255)
    user_type: Literal["creator", "brand"]
    language: LanguageCode = LanguageCode.HE
    # Brand sign up only
    brand_name: Optional[str] = Field(None, max_length=255)
    industry: Optional[str] = None
    website: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: Optional[str] = None


# ============================================================================
# ADMIN SCHEMAS
# ============================================================================

class CreateBrandRequest(BaseModel):
    brandName: StrictStr = Field(..., min_length=1, max_length=255)
    managerDisplayName: StrictStr = Field(..., min_length=1, max_length=255)
    managerEmail: EmailStr
    managerPassword: StrictStr = Field(..., min_length=6)
    industry: Optional[StrictStr] = None
    website: Optional[StrictStr] = None


class BulkBlockRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)
    blocked: bool = True


class AuditLogResponse(BaseModel):
    id: str
    actor_id: Optional[str]
    entity: str
    entity_id: Optional[str]
    action: str
    meta: Optional[dict]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class AdminUserResponse(BaseModel):
    id: str
    email: str
    role: Optional[str] = None
    display_name: Optional[str] = None
    is_blocked: bool = False
    created_at: Optional[datetime] = None


# ============================================================================
# PUSH SCHEMAS
# ============================================================================

class PushSendRequest(BaseModel):
    user_id: StrictStr
    title: StrictStr = Field(..., min_length=1, max_length=200)
    body: Optional[StrictStr] = Field(None, max_length=1000)
    url: Optional[StrictStr] = Field(None, max_length=500)

    @validator("user_id")
    def user_id_is_uuid(cls, v):
        if not UUID_RE.match(v):
            raise ValueError("user_id must be a valid UUID")
        return v

    @validator("body", pre=True)
    def body_not_null(cls, v):
        # Leave the field out instead of sending null
        if v is None:
            raise ValueError("body must be a string")
        return v

    @validator("url")
    def url_is_relative(cls, v):
        # Internal navigation only
        if v and not v.startswith("/"):
            raise ValueError("url must be a relative path starting with /")
        return v


class PushKeys(BaseModel):
    """Browser subscription keys: an uncompressed P-256 point and a 16 byte secret."""
    p256dh: str
    auth: str

    @validator("p256dh")
    def p256dh_is_public_key(cls, v):
        if len(_b64url_decode(v)) != 65:
            raise ValueError("p256dh must encode a 65 byte public key")
        return v

    @validator("auth")
    def auth_is_secret(cls, v):
        if len(_b64url_decode(v)) != 16:
            raise ValueError("auth must encode a 16 byte secret")
        return v


class PushSubscriptionCreate(BaseModel):
    endpoint: str = Field(..., max_length=1000)
    keys: PushKeys


class PushSubscriptionDelete(BaseModel):
    endpoint: str


class NotificationPreferencesUpdate(BaseModel):
    channels: List[str]

    @validator("channels")
    def known_channels(cls, v):
        unknown = [c for c in v if c not in NOTIFICATION_CHANNELS]
        if unknown:
            raise ValueError(f"Unknown channels: {', '.join(unknown)}")
        return v


# ============================================================================
# CAMPAIGN SCHEMAS
# ============================================================================

class CampaignCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=255)
    description: Optional[str] = None
    brief: Optional[str] = None
    objective: Optional[str] = None
    concept: Optional[str] = None
    deliverables: Optional[Any] = None
    fixed_price: Optional[int] = Field(None, ge=0)  # agorot
    currency: str = "ILS"
    requires_product: bool = False
    deadline: Optional[datetime] = None


class CampaignUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    brief: Optional[str] = None
    objective: Optional[str] = None
    concept: Optional[str] = None
    deliverables: Optional[Any] = None
    fixed_price: Optional[int] = Field(None, ge=0)
    requires_product: Optional[bool] = None
    deadline: Optional[datetime] = None


class StatusUpdate(BaseModel):
    status: str


class CampaignResponse(BaseModel):
    id: str
    brand_id: str
    title: str
    description: Optional[str]
    brief: Optional[str]
    objective: Optional[str]
    concept: Optional[str]
    deliverables: Optional[Any]
    fixed_price: Optional[int]
    currency: Optional[str]
    requires_product: Optional[bool]
    deadline: Optional[datetime]
    status: CampaignStatusDB
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# APPLICATION SCHEMAS
# ============================================================================

class ApplicationCreate(BaseModel):
    campaign_id: str
    message: Optional[str] = Field(None, max_length=2000)
    availability: Optional[str] = None
    portfolio_links: Optional[str] = None
    deliverable_notes: Optional[str] = None
    proposed_price: Optional[int] = Field(None, ge=0)  # agorot


class ApplicationApprove(BaseModel):
    note: Optional[str] = None


class ApplicationReject(BaseModel):
    reason_code: RejectionReasonDB
    note: str = Field(..., min_length=10)


class ApplicationResponse(BaseModel):
    id: str
    campaign_id: str
    creator_id: str
    message: Optional[str]
    availability: Optional[str]
    portfolio_links: Optional[str]
    proposed_price: Optional[int]
    status: ApplicationStatusDB
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# TASK SCHEMAS
# ============================================================================

class TaskResponse(BaseModel):
    id: str
    campaign_id: str
    creator_id: str
    title: str
    status: TaskStatusDB
    due_at: Optional[datetime]
    payment_amount: Optional[int]
    requires_product: Optional[bool]
    shipment_request_id: Optional[str]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class UploadResponse(BaseModel):
    id: str
    task_id: str
    storage_path: str
    status: Optional[str]
    meta: Optional[dict]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RevisionCreate(BaseModel):
    tags: List[str] = Field(..., min_length=1)
    note: str = Field(..., min_length=10)


class TaskApprove(BaseModel):
    quality: int = Field(..., ge=1, le=5)
    on_time: int = Field(..., ge=1, le=5)
    communication: int = Field(..., ge=1, le=5)
    note: Optional[str] = None


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================

class PaymentResponse(BaseModel):
    id: str
    task_id: str
    amount: int
    currency: Optional[str]
    status: PaymentStatusDB
    proof_url: Optional[str]
    invoice_url: Optional[str]
    paid_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class InvoiceAttach(BaseModel):
    invoice_url: str = Field(..., max_length=500)


# ============================================================================
# SHIPMENT SCHEMAS
# ============================================================================

class AddressCreate(BaseModel):
    full_name: str = Field(..., min_length=2)
    street: str
    house_number: str
    apartment: Optional[str] = None
    city: str
    postal_code: Optional[str] = None
    country: str = "Israel"
    phone: str = Field(..., min_length=6)
    notes: Optional[str] = None


class ShipRequest(BaseModel):
    carrier: str = Field(..., min_length=1)
    tracking_number: str = Field(..., min_length=1)


class ShipmentIssue(BaseModel):
    reason: str = Field(..., min_length=1, max_length=100)
    note: Optional[str] = None


class ShipmentRequestResponse(BaseModel):
    id: str
    campaign_id: str
    creator_id: str
    address_id: Optional[str]
    status: ShipmentStatusDB
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# DISPUTE SCHEMAS
# ============================================================================

class DisputeCreate(BaseModel):
    task_id: str
    reason: str = Field(..., min_length=10, max_length=2000)


class DisputeResolve(BaseModel):
    action: Literal["approve", "reject", "needs_edits"]
    resolution_note: str = Field(..., min_length=5, max_length=2000)


class DisputeDismiss(BaseModel):
    resolution_note: Optional[str] = Field(None, max_length=2000)


class DisputeResponse(BaseModel):
    id: str
    task_id: str
    raised_by: str
    reason: str
    status: DisputeStatusDB
    task_status_before: Optional[TaskStatusDB]
    resolution_note: Optional[str]
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


# ============================================================================
# NOTIFICATION SCHEMAS
# ============================================================================

class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: Optional[str]
    action_url: Optional[str]
    data: Optional[dict]
    is_read: bool
    read_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
