# Schemas module for the LEADERS platform
# Organizes all Pydantic schemas in a modular structure

from schemas.marketplace import (
    # Auth schemas
    RegisterRequest,
    LoginRequest,
    TokenResponse,

    # Admin schemas
    CreateBrandRequest,
    BulkBlockRequest,
    AuditLogResponse,
    AdminUserResponse,

    # Push schemas
    PushSendRequest,
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    NotificationPreferencesUpdate,

    # Campaign schemas
    CampaignCreate,
    CampaignUpdate,
    CampaignResponse,
    StatusUpdate,

    # Application schemas
    ApplicationCreate,
    ApplicationApprove,
    ApplicationReject,
    ApplicationResponse,

    # Task schemas
    TaskResponse,
    UploadResponse,
    RevisionCreate,
    TaskApprove,

    # Payment schemas
    PaymentResponse,
    InvoiceAttach,

    # Shipment schemas
    AddressCreate,
    ShipRequest,
    ShipmentIssue,
    ShipmentRequestResponse,

    # Dispute schemas
    DisputeCreate,
    DisputeResolve,
    DisputeDismiss,
    DisputeResponse,

    # Notification schemas
    NotificationResponse,
)
