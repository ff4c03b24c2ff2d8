# Payments Router for the LEADERS marketplace
# Finance moves payments through approval and payout; brands upload transfer proofs; creators attach invoices

import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User, UserRole
from database.marketplace_models import Campaign, Task, Payment, PaymentStatusDB, TaskStatusDB
from schemas.marketplace import PaymentResponse, InvoiceAttach
from auth.roles import Permission
from auth.decorators import require_permission
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_campaign_manager
from core.transitions import ensure_transition
from core.storage_service import StorageService, UploadTooLarge, get_storage, build_object_key, read_upload
from config.app_config import PAYMENT_PROOFS_BUCKET, UPLOAD_MAX_BYTES
from services.audit_service import AuditService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])

PROOF_CONTENT_TYPES = ("application/pdf", "image/jpeg", "image/png", "image/webp")


def _get_payment(db: Session, payment_id: str) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


def _mark_paid(db: Session, payment: Payment, actor_id: str, proof_url: Optional[str] = None):
    """Payment and task move to paid together."""
    audit = AuditService(db)
    audit.transition(payment, "payment", PaymentStatusDB.PAID, actor_id,
                     meta={"proof_url": proof_url} if proof_url else None)
    audit.transition(payment.task, "task", TaskStatusDB.PAID, actor_id)
    payment.paid_at = datetime.utcnow()
    if proof_url:
        payment.proof_url = proof_url
    NotificationService(db).notify_payment_paid(payment.task.creator_id, payment.id, payment.amount)


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[PaymentStatusDB] = Query(None, alias="status"),
):
    actor = Actor(current_user, db)
    query = db.query(Payment).join(Task, Task.id == Payment.task_id)

    if actor.role in (UserRole.ADMIN, UserRole.FINANCE):
        pass
    elif actor.brand_id:
        query = query.join(Campaign, Campaign.id == Task.campaign_id).filter(Campaign.brand_id == actor.brand_id)
    else:
        query = query.filter(Task.creator_id == actor.id)

    if status_filter:
        query = query.filter(Payment.status == status_filter)
    return query.order_by(Payment.created_at.desc()).all()


# ============================================================================
# FINANCE ENDPOINTS
# ============================================================================

@router.post("/{payment_id}/approve", response_model=PaymentResponse)
async def approve_for_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_PAYMENTS)),
):
    payment = _get_payment(db, payment_id)
    AuditService(db).transition(payment, "payment", PaymentStatusDB.APPROVED_FOR_PAYMENT, current_user.id)
    db.commit()
    db.refresh(payment)
    return payment


@router.post("/{payment_id}/mark-paid", response_model=PaymentResponse)
async def mark_paid(
    payment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_PAYMENTS)),
):
    payment = _get_payment(db, payment_id)
    _mark_paid(db, payment, current_user.id)
    db.commit()
    db.refresh(payment)
    logger.info(f"Payment {payment.id} marked paid by {current_user.id}")
    return payment


@router.post("/{payment_id}/mark-failed", response_model=PaymentResponse)
async def mark_failed(
    payment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_PAYMENTS)),
):
    payment = _get_payment(db, payment_id)
    AuditService(db).transition(payment, "payment", PaymentStatusDB.FAILED, current_user.id)
    db.commit()
    db.refresh(payment)
    return payment


@router.post("/{payment_id}/retry", response_model=PaymentResponse)
async def retry_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_PAYMENTS)),
):
    payment = _get_payment(db, payment_id)
    AuditService(db).transition(payment, "payment", PaymentStatusDB.PENDING, current_user.id, action="payment_retried")
    db.commit()
    db.refresh(payment)
    return payment


# ============================================================================
# BRAND / CREATOR ENDPOINTS
# ============================================================================

@router.post("/{payment_id}/proof", response_model=PaymentResponse)
async def upload_payment_proof(
    payment_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.UPLOAD_PAYMENT_PROOF)),
    storage: StorageService = Depends(get_storage),
):
    """Brand uploads a bank transfer confirmation; the payment is then paid."""
    payment = _get_payment(db, payment_id)
    ensure_campaign_manager(Actor(current_user, db), payment.task.campaign)
    ensure_transition("payment", payment.status, PaymentStatusDB.PAID)
    ensure_transition("task", payment.task.status, TaskStatusDB.PAID)

    content_type = file.content_type or ""
    if content_type not in PROOF_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail=f"File type {content_type or 'unknown'} is not allowed")
    try:
        file_bytes = await read_upload(file, UPLOAD_MAX_BYTES)
    except UploadTooLarge:
        raise HTTPException(status_code=400, detail="File is too large (max 50MB)")

    key = build_object_key(payment.id, file.filename or "proof")
    storage.upload(PAYMENT_PROOFS_BUCKET, key, file_bytes, content_type)

    _mark_paid(db, payment, current_user.id, proof_url=key)
    db.commit()
    db.refresh(payment)
    return payment


@router.post("/{payment_id}/invoice", response_model=PaymentResponse)
async def attach_invoice(
    payment_id: str,
    data: InvoiceAttach,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SUBMIT_INVOICES)),
):
    payment = _get_payment(db, payment_id)
    if payment.task.creator_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")

    payment.invoice_url = data.invoice_url
    AuditService(db).log(current_user.id, "payment", payment.id, "invoice_attached", {"invoice_url": data.invoice_url})
    db.commit()
    db.refresh(payment)
    return payment
