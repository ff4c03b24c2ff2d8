# Applications Router for the LEADERS marketplace
# Creators apply to open campaigns; brands approve (creating the task) or reject with feedback

import logging
from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    Campaign, Application, ApplicationFeedback, Task, ShipmentRequest,
    CampaignStatusDB, ApplicationStatusDB, TaskStatusDB, ShipmentStatusDB,
)
from schemas.marketplace import ApplicationCreate, ApplicationResponse, ApplicationApprove, ApplicationReject
from auth.roles import Permission
from auth.decorators import require_permission
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_campaign_manager
from core.kanban import group_by_status, APPLICATION_COLUMNS
from services.audit_service import AuditService
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


def _get_application(db: Session, application_id: str) -> Application:
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    return application


def _scoped_query(db: Session, actor: Actor, campaign_id: Optional[str]):
    query = db.query(Application)
    if actor.is_staff:
        pass
    elif actor.brand_id:
        query = query.join(Campaign, Campaign.id == Application.campaign_id).filter(
            Campaign.brand_id == actor.brand_id
        )
    else:
        query = query.filter(Application.creator_id == actor.id)

    if campaign_id:
        query = query.filter(Application.campaign_id == campaign_id)
    return query


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def apply_to_campaign(
    data: ApplicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.APPLY_TO_CAMPAIGNS)),
):
    campaign = db.query(Campaign).filter(Campaign.id == data.campaign_id).first()
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    if campaign.status != CampaignStatusDB.OPEN:
        raise HTTPException(status_code=400, detail="Campaign is not open for applications")

    existing = db.query(Application).filter(
        Application.campaign_id == campaign.id,
        Application.creator_id == current_user.id
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="You already applied to this campaign")

    application = Application(creator_id=current_user.id, **data.model_dump())
    db.add(application)
    db.flush()
    AuditService(db).log(current_user.id, "application", application.id, "application_submitted")
    db.commit()
    db.refresh(application)
    return application


@router.get("", response_model=List[ApplicationResponse])
async def list_applications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    campaign_id: Optional[str] = Query(None),
    status_filter: Optional[ApplicationStatusDB] = Query(None, alias="status"),
):
    query = _scoped_query(db, Actor(current_user, db), campaign_id)
    if status_filter:
        query = query.filter(Application.status == status_filter)
    return query.order_by(Application.created_at.desc()).all()


@router.get("/kanban")
async def applications_kanban(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    campaign_id: Optional[str] = Query(None),
):
    """Applications grouped by status; every column is always present."""
    applications = _scoped_query(db, Actor(current_user, db), campaign_id).order_by(Application.created_at).all()
    return group_by_status(
        applications,
        APPLICATION_COLUMNS,
        lambda a: ApplicationResponse.model_validate(a).model_dump(mode="json"),
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    application = _get_application(db, application_id)
    actor = Actor(current_user, db)
    if not (actor.is_staff or application.creator_id == actor.id or actor.owns_campaign(application.campaign)):
        raise HTTPException(status_code=403, detail="Access denied")
    return application


@router.post("/{application_id}/approve")
async def approve_application(
    application_id: str,
    data: ApplicationApprove,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.REVIEW_APPLICATIONS)),
):
    """
    Approve an application and create the creator's task.

    When the campaign ships a product, a shipment request waiting for the
    creator's address is linked to the task. Everything commits together.
    """
    application = _get_application(db, application_id)
    campaign = application.campaign
    ensure_campaign_manager(Actor(current_user, db), campaign)

    audit = AuditService(db)
    audit.transition(application, "application", ApplicationStatusDB.APPROVED, current_user.id,
                     meta={"note": data.note} if data.note else None)
    db.add(ApplicationFeedback(application_id=application.id, decision="approved", note=data.note))

    task = Task(
        campaign_id=campaign.id,
        creator_id=application.creator_id,
        title=campaign.title,
        status=TaskStatusDB.SELECTED,
        due_at=campaign.deadline,
        payment_amount=application.proposed_price or campaign.fixed_price or 0,
        requires_product=bool(campaign.requires_product),
    )
    db.add(task)
    db.flush()

    if campaign.requires_product:
        shipment_request = ShipmentRequest(
            campaign_id=campaign.id,
            creator_id=application.creator_id,
            status=ShipmentStatusDB.WAITING_ADDRESS,
        )
        db.add(shipment_request)
        db.flush()
        task.shipment_request_id = shipment_request.id
        audit.log(current_user.id, "shipment_request", shipment_request.id, "shipment_requested", {"task_id": task.id})

    audit.log(current_user.id, "task", task.id, "task_created", {"application_id": application.id})
    NotificationService(db).notify_application_approved(application.creator_id, campaign.title, task.id)
    db.commit()

    logger.info(f"Application {application.id} approved, task {task.id} created")
    return {
        "success": True,
        "application_id": application.id,
        "task_id": task.id,
        "shipment_request_id": task.shipment_request_id,
    }


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: str,
    data: ApplicationReject,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.REVIEW_APPLICATIONS)),
):
    application = _get_application(db, application_id)
    ensure_campaign_manager(Actor(current_user, db), application.campaign)

    AuditService(db).transition(application, "application", ApplicationStatusDB.REJECTED, current_user.id,
                                meta={"reason_code": data.reason_code.value})
    db.add(ApplicationFeedback(
        application_id=application.id,
        decision="rejected",
        reason_code=data.reason_code,
        note=data.note,
    ))
    NotificationService(db).notify_application_rejected(
        application.creator_id, application.campaign.title, data.reason_code.value
    )
    db.commit()
    db.refresh(application)
    return application
