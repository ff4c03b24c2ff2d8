# Tasks Router for the LEADERS marketplace
# Production workflow of a single deliverable: start, upload, revise, approve

import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    Campaign, Task, Upload, RevisionRequest, Approval, Rating, Payment,
    TaskStatusDB, ShipmentStatusDB, RevisionStatusDB, PaymentStatusDB,
)
from schemas.marketplace import TaskResponse, UploadResponse, RevisionCreate, TaskApprove
from auth.roles import Permission
from auth.decorators import require_permission
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_campaign_manager, ensure_task_creator, ensure_task_viewer, brand_member_ids
from core.kanban import group_by_status, TASK_COLUMNS
from core.storage_service import StorageService, UploadTooLarge, get_storage, build_object_key, read_upload
from config.app_config import TASK_UPLOADS_BUCKET, UPLOAD_MAX_BYTES, UPLOAD_ALLOWED_TYPES, DEFAULT_CURRENCY
from services.audit_service import AuditService
from services.notification_service import NotificationService
from services.metrics_service import calculate_creator_metrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def _get_task(db: Session, task_id: str) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


def _scoped_query(db: Session, actor: Actor, campaign_id: Optional[str]):
    query = db.query(Task)
    if actor.is_staff:
        pass
    elif actor.brand_id:
        query = query.join(Campaign, Campaign.id == Task.campaign_id).filter(Campaign.brand_id == actor.brand_id)
    else:
        query = query.filter(Task.creator_id == actor.id)

    if campaign_id:
        query = query.filter(Task.campaign_id == campaign_id)
    return query


# ============================================================================
# READ ENDPOINTS
# ============================================================================

@router.get("", response_model=List[TaskResponse])
async def list_tasks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    campaign_id: Optional[str] = Query(None),
    status_filter: Optional[TaskStatusDB] = Query(None, alias="status"),
):
    query = _scoped_query(db, Actor(current_user, db), campaign_id)
    if status_filter:
        query = query.filter(Task.status == status_filter)
    return query.order_by(Task.created_at.desc()).all()


@router.get("/kanban")
async def tasks_kanban(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    campaign_id: Optional[str] = Query(None),
):
    """Tasks grouped by status; every column is always present."""
    tasks = _scoped_query(db, Actor(current_user, db), campaign_id).order_by(Task.due_at).all()
    return group_by_status(
        tasks,
        TASK_COLUMNS,
        lambda t: TaskResponse.model_validate(t).model_dump(mode="json"),
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = _get_task(db, task_id)
    ensure_task_viewer(Actor(current_user, db), task)
    return task


@router.get("/{task_id}/uploads", response_model=List[UploadResponse])
async def list_uploads(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    task = _get_task(db, task_id)
    ensure_task_viewer(Actor(current_user, db), task)
    return db.query(Upload).filter(Upload.task_id == task.id).order_by(Upload.created_at.desc()).all()


# ============================================================================
# CREATOR ENDPOINTS
# ============================================================================

@router.post("/{task_id}/start", response_model=TaskResponse)
async def start_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SUBMIT_CONTENT)),
):
    """Begin production. Product tasks wait until the product is delivered."""
    task = _get_task(db, task_id)
    ensure_task_creator(Actor(current_user, db), task)

    if task.requires_product:
        shipment = task.shipment_request
        if shipment is None or shipment.status != ShipmentStatusDB.DELIVERED:
            raise HTTPException(status_code=400, detail="The product must be delivered before starting")

    AuditService(db).transition(task, "task", TaskStatusDB.IN_PRODUCTION, current_user.id)
    db.commit()
    db.refresh(task)
    return task


@router.post("/{task_id}/uploads", response_model=UploadResponse)
async def upload_content(
    task_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SUBMIT_CONTENT)),
    storage: StorageService = Depends(get_storage),
):
    task = _get_task(db, task_id)
    ensure_task_creator(Actor(current_user, db), task)

    if task.status not in (TaskStatusDB.IN_PRODUCTION, TaskStatusDB.NEEDS_EDITS):
        raise HTTPException(status_code=400, detail="Uploads are only accepted while in production or after a revision request")

    content_type = file.content_type or ""
    if content_type not in UPLOAD_ALLOWED_TYPES:
        raise HTTPException(status_code=400, detail=f"File type {content_type or 'unknown'} is not allowed")

    try:
        file_bytes = await read_upload(file, UPLOAD_MAX_BYTES)
    except UploadTooLarge:
        raise HTTPException(status_code=400, detail="File is too large (max 50MB)")

    key = build_object_key(task.id, file.filename or "upload")
    storage.upload(TASK_UPLOADS_BUCKET, key, file_bytes, content_type)

    upload = Upload(
        task_id=task.id,
        storage_path=key,
        status="pending",
        meta={"file_name": file.filename, "content_type": content_type, "size": len(file_bytes)},
    )
    db.add(upload)

    now = datetime.utcnow()
    for revision in task.revision_requests:
        if revision.status == RevisionStatusDB.OPEN:
            revision.status = RevisionStatusDB.RESOLVED
            revision.resolved_at = now

    AuditService(db).transition(task, "task", TaskStatusDB.UPLOADED, current_user.id, meta={"storage_path": key})
    NotificationService(db).notify_task_uploaded(brand_member_ids(db, task.campaign.brand_id), task.id, task.title)
    db.commit()
    db.refresh(upload)

    logger.info(f"Upload {key} stored for task {task.id}")
    return upload


# ============================================================================
# BRAND ENDPOINTS
# ============================================================================

@router.post("/{task_id}/revisions", response_model=TaskResponse)
async def request_revision(
    task_id: str,
    data: RevisionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.REVIEW_CONTENT)),
):
    task = _get_task(db, task_id)
    ensure_campaign_manager(Actor(current_user, db), task.campaign)

    if not task.uploads:
        raise HTTPException(status_code=400, detail="There is no uploaded content to revise")

    db.add(RevisionRequest(task_id=task.id, tags=data.tags, note=data.note))
    AuditService(db).transition(task, "task", TaskStatusDB.NEEDS_EDITS, current_user.id,
                                action="revision_requested", meta={"tags": data.tags})
    NotificationService(db).notify_revision_requested(task.creator_id, task.id, data.note)
    db.commit()
    db.refresh(task)
    return task


@router.post("/{task_id}/approve")
async def approve_task(
    task_id: str,
    data: TaskApprove,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.REVIEW_CONTENT)),
):
    """
    Approve delivered content.

    Records the rating and approval, opens a pending payment for the
    task amount and refreshes the creator's metrics, all in one commit.
    """
    task = _get_task(db, task_id)
    ensure_campaign_manager(Actor(current_user, db), task.campaign)

    if not task.payment_amount or task.payment_amount <= 0:
        raise HTTPException(status_code=400, detail="Task has no payment amount")

    AuditService(db).transition(task, "task", TaskStatusDB.APPROVED, current_user.id)
    db.add(Approval(task_id=task.id, decision="approved", note=data.note))
    db.add(Rating(
        task_id=task.id,
        quality=data.quality,
        on_time=data.on_time,
        communication=data.communication,
        note=data.note,
    ))

    payment = task.payment
    if payment is None:
        payment = Payment(
            task_id=task.id,
            amount=task.payment_amount,
            currency=task.campaign.currency or DEFAULT_CURRENCY,
            status=PaymentStatusDB.PENDING,
        )
        db.add(payment)

    db.flush()
    calculate_creator_metrics(db, task.creator_id)
    NotificationService(db).notify_task_approved(task.creator_id, task.id, task.payment_amount)
    db.commit()

    logger.info(f"Task {task.id} approved, payment {payment.id} pending")
    return {"success": True, "task_id": task.id, "payment_id": payment.id, "status": task.status.value}
