# Disputes Router for the LEADERS marketplace
# Handles dispute resolution for tasks

import logging
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    Campaign, Task, Dispute, Payment,
    DisputeStatusDB, TaskStatusDB, PaymentStatusDB,
)
from schemas.marketplace import DisputeCreate, DisputeResolve, DisputeDismiss, DisputeResponse
from auth.roles import Permission
from auth.decorators import require_permission
from auth.ownership import Actor, ensure_task_viewer, brand_member_ids
from auth.dependencies import get_current_user
from config.app_config import DEFAULT_CURRENCY
from services.audit_service import AuditService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/disputes", tags=["Disputes"])

ACTIVE_STATUSES = (DisputeStatusDB.OPEN, DisputeStatusDB.IN_REVIEW)

# Resolution action -> task status
RESOLUTION_TASK_STATUS = {
    "approve": TaskStatusDB.APPROVED,
    "reject": TaskStatusDB.NEEDS_EDITS,
    "needs_edits": TaskStatusDB.NEEDS_EDITS,
}


def _get_dispute(db: Session, dispute_id: str) -> Dispute:
    dispute = db.query(Dispute).filter(Dispute.id == dispute_id).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")
    return dispute


def _parties(db: Session, task: Task) -> List[str]:
    """Creator plus every active member of the campaign's brand."""
    return [task.creator_id] + brand_member_ids(db, task.campaign.brand_id)


# ============================================================================
# USER ENDPOINTS
# ============================================================================

@router.post("", response_model=DisputeResponse, status_code=status.HTTP_201_CREATED)
async def raise_dispute(
    data: DisputeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RAISE_DISPUTES)),
):
    """
    Open a dispute on a task. The task is frozen in `disputed` and its
    previous status is kept so a dismissal can restore it.
    """
    task = db.query(Task).filter(Task.id == data.task_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    actor = Actor(current_user, db)
    if not (actor.is_task_creator(task) or actor.is_task_brand_member(task)):
        raise HTTPException(status_code=403, detail="Access denied")

    active = db.query(Dispute).filter(
        Dispute.task_id == task.id,
        Dispute.status.in_(ACTIVE_STATUSES)
    ).first()
    if active:
        raise HTTPException(status_code=400, detail="This task already has an active dispute")

    status_before = task.status
    audit = AuditService(db)
    audit.transition(task, "task", TaskStatusDB.DISPUTED, current_user.id)

    dispute = Dispute(
        task_id=task.id,
        raised_by=current_user.id,
        reason=data.reason,
        status=DisputeStatusDB.OPEN,
        task_status_before=status_before,
    )
    db.add(dispute)
    db.flush()
    audit.log(current_user.id, "dispute", dispute.id, "dispute_opened", {"task_id": task.id})

    others = [uid for uid in _parties(db, task) if uid != current_user.id]
    NotificationService(db).notify_dispute_opened(others, dispute.id, task.id)
    db.commit()
    db.refresh(dispute)

    logger.info(f"Dispute {dispute.id} opened on task {task.id}")
    return dispute


@router.get("", response_model=List[DisputeResponse])
async def list_disputes(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[DisputeStatusDB] = Query(None, alias="status"),
):
    actor = Actor(current_user, db)
    query = db.query(Dispute)

    if not actor.is_staff:
        query = query.join(Task, Task.id == Dispute.task_id)
        if actor.brand_id:
            query = query.join(Campaign, Campaign.id == Task.campaign_id).filter(Campaign.brand_id == actor.brand_id)
        else:
            query = query.filter(Task.creator_id == actor.id)

    if status_filter:
        query = query.filter(Dispute.status == status_filter)

    return query.order_by(Dispute.created_at.desc()).all()


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    dispute = _get_dispute(db, dispute_id)
    ensure_task_viewer(Actor(current_user, db), dispute.task)
    return dispute


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================

@router.post("/{dispute_id}/review", response_model=DisputeResponse)
async def start_review(
    dispute_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RESOLVE_DISPUTES)),
):
    dispute = _get_dispute(db, dispute_id)
    AuditService(db).transition(dispute, "dispute", DisputeStatusDB.IN_REVIEW, current_user.id)
    db.commit()
    db.refresh(dispute)
    return dispute


@router.post("/{dispute_id}/resolve", response_model=DisputeResponse)
async def resolve_dispute(
    dispute_id: str,
    data: DisputeResolve,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RESOLVE_DISPUTES)),
):
    """
    Resolve in favour of the creator (approve, opening a payment if there is
    none yet) or send the task back for edits (reject / needs_edits).
    """
    dispute = _get_dispute(db, dispute_id)
    task = dispute.task
    audit = AuditService(db)

    audit.transition(dispute, "dispute", DisputeStatusDB.RESOLVED, current_user.id,
                     meta={"action": data.action})
    audit.transition(task, "task", RESOLUTION_TASK_STATUS[data.action], current_user.id,
                     meta={"dispute_id": dispute.id})

    if data.action == "approve" and task.payment is None and (task.payment_amount or 0) > 0:
        db.add(Payment(
            task_id=task.id,
            amount=task.payment_amount,
            currency=task.campaign.currency or DEFAULT_CURRENCY,
            status=PaymentStatusDB.PENDING,
        ))

    dispute.resolution_note = data.resolution_note
    dispute.resolved_by = current_user.id
    dispute.resolved_at = datetime.utcnow()

    NotificationService(db).notify_dispute_resolved(_parties(db, task), dispute.id, data.resolution_note)
    db.commit()
    db.refresh(dispute)
    return dispute


@router.post("/{dispute_id}/dismiss", response_model=DisputeResponse)
async def dismiss_dispute(
    dispute_id: str,
    data: DisputeDismiss,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.RESOLVE_DISPUTES)),
):
    """Reject the dispute and put the task back where it was."""
    dispute = _get_dispute(db, dispute_id)
    task = dispute.task
    audit = AuditService(db)

    audit.transition(dispute, "dispute", DisputeStatusDB.REJECTED, current_user.id)
    if dispute.task_status_before and task.status == TaskStatusDB.DISPUTED:
        audit.transition(task, "task", dispute.task_status_before, current_user.id,
                         action="task_restored", meta={"dispute_id": dispute.id})

    dispute.resolution_note = data.resolution_note
    dispute.resolved_by = current_user.id
    dispute.resolved_at = datetime.utcnow()

    NotificationService(db).notify_dispute_resolved(_parties(db, task), dispute.id, data.resolution_note or "dismissed")
    db.commit()
    db.refresh(dispute)
    return dispute
