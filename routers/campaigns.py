# Campaigns Router for the LEADERS marketplace
# Brands create and manage campaigns; creators browse open ones

from fastapi import APIRouter, HTTPException, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import Campaign, CampaignStatusDB
from schemas.marketplace import CampaignCreate, CampaignUpdate, CampaignResponse, StatusUpdate
from auth.roles import Permission
from auth.decorators import require_permission
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_campaign_manager
from services.audit_service import AuditService

router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


def _get_campaign(db: Session, campaign_id: str) -> Campaign:
    campaign = db.query(Campaign).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[CampaignStatusDB] = Query(None, alias="status"),
):
    """
    Staff see every campaign, brand members their brand's campaigns,
    creators only open campaigns.
    """
    actor = Actor(current_user, db)
    query = db.query(Campaign)

    if actor.is_staff:
        pass
    elif actor.brand_id:
        query = query.filter(Campaign.brand_id == actor.brand_id)
    else:
        query = query.filter(Campaign.status == CampaignStatusDB.OPEN)

    if status_filter:
        query = query.filter(Campaign.status == status_filter)

    return query.order_by(Campaign.created_at.desc()).all()


@router.post("", response_model=CampaignResponse, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    data: CampaignCreate,
    brand_id: Optional[str] = Query(None, description="Required for staff creating on behalf of a brand"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS)),
):
    actor = Actor(current_user, db)
    target_brand = actor.brand_id if not actor.is_staff else brand_id
    if not target_brand:
        raise HTTPException(status_code=400, detail="brand_id is required")

    campaign = Campaign(brand_id=target_brand, status=CampaignStatusDB.DRAFT, **data.model_dump())
    db.add(campaign)
    db.flush()
    AuditService(db).log(actor.id, "campaign", campaign.id, "campaign_created", {"title": campaign.title})
    db.commit()
    db.refresh(campaign)
    return campaign


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    campaign = _get_campaign(db, campaign_id)
    actor = Actor(current_user, db)
    if not (actor.is_staff or actor.owns_campaign(campaign) or campaign.status == CampaignStatusDB.OPEN):
        raise HTTPException(status_code=403, detail="Access denied")
    return campaign


@router.put("/{campaign_id}", response_model=CampaignResponse)
async def update_campaign(
    campaign_id: str,
    data: CampaignUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS)),
):
    campaign = _get_campaign(db, campaign_id)
    ensure_campaign_manager(Actor(current_user, db), campaign)

    if campaign.status == CampaignStatusDB.ARCHIVED:
        raise HTTPException(status_code=400, detail="Archived campaigns cannot be edited")

    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(campaign, field, value)

    AuditService(db).log(current_user.id, "campaign", campaign.id, "campaign_updated", {"fields": list(changes)})
    db.commit()
    db.refresh(campaign)
    return campaign


@router.post("/{campaign_id}/status", response_model=CampaignResponse)
async def change_campaign_status(
    campaign_id: str,
    data: StatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_CAMPAIGNS)),
):
    """Publish, close, reopen or archive a campaign."""
    campaign = _get_campaign(db, campaign_id)
    ensure_campaign_manager(Actor(current_user, db), campaign)

    AuditService(db).transition(campaign, "campaign", data.status, current_user.id)
    db.commit()
    db.refresh(campaign)
    return campaign
