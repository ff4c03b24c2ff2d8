# Shipments Router for the LEADERS marketplace
# Product seeding: creator address -> brand ships -> delivery confirmed (or an issue is reported)

from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from database.config import get_db
from database.models import User
from database.marketplace_models import (
    Campaign, ShipmentRequest, ShipmentAddress, Shipment, ShipmentStatusDB,
)
from schemas.marketplace import AddressCreate, ShipRequest, ShipmentIssue, ShipmentRequestResponse
from auth.roles import Permission
from auth.decorators import require_permission
from auth.dependencies import get_current_user
from auth.ownership import Actor, ensure_campaign_manager
from services.audit_service import AuditService
from services.notification_service import NotificationService

router = APIRouter(prefix="/shipments", tags=["Shipments"])


def _get_request(db: Session, request_id: str) -> ShipmentRequest:
    shipment_request = db.query(ShipmentRequest).filter(ShipmentRequest.id == request_id).first()
    if not shipment_request:
        raise HTTPException(status_code=404, detail="Shipment request not found")
    return shipment_request


def _campaign(db: Session, shipment_request: ShipmentRequest) -> Campaign:
    return db.query(Campaign).filter(Campaign.id == shipment_request.campaign_id).first()


def _ensure_party(db: Session, actor: Actor, shipment_request: ShipmentRequest):
    """The creator or a member of the campaign's brand."""
    if shipment_request.creator_id == actor.id:
        return
    ensure_campaign_manager(actor, _campaign(db, shipment_request))


def _latest_shipment(shipment_request: ShipmentRequest) -> Optional[Shipment]:
    shipments = sorted(shipment_request.shipments, key=lambda s: s.shipped_at or datetime.min)
    return shipments[-1] if shipments else None


@router.get("", response_model=List[ShipmentRequestResponse])
async def list_shipment_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    campaign_id: Optional[str] = Query(None),
    status_filter: Optional[ShipmentStatusDB] = Query(None, alias="status"),
):
    actor = Actor(current_user, db)
    query = db.query(ShipmentRequest)
    if actor.is_staff:
        pass
    elif actor.brand_id:
        query = query.join(Campaign, Campaign.id == ShipmentRequest.campaign_id).filter(
            Campaign.brand_id == actor.brand_id
        )
    else:
        query = query.filter(ShipmentRequest.creator_id == actor.id)

    if campaign_id:
        query = query.filter(ShipmentRequest.campaign_id == campaign_id)
    if status_filter:
        query = query.filter(ShipmentRequest.status == status_filter)
    return query.order_by(ShipmentRequest.created_at.desc()).all()


@router.post("/{request_id}/address", response_model=ShipmentRequestResponse)
async def submit_address(
    request_id: str,
    data: AddressCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.SUBMIT_SHIPPING_ADDRESS)),
):
    shipment_request = _get_request(db, request_id)
    if shipment_request.creator_id != current_user.id:
        raise HTTPException(status_code=403, detail="Access denied")

    AuditService(db).transition(shipment_request, "shipment_request", ShipmentStatusDB.ADDRESS_RECEIVED, current_user.id)
    address = ShipmentAddress(creator_id=current_user.id, **data.model_dump())
    db.add(address)
    db.flush()
    shipment_request.address_id = address.id
    db.commit()
    db.refresh(shipment_request)
    return shipment_request


@router.post("/{request_id}/ship", response_model=ShipmentRequestResponse)
async def ship_product(
    request_id: str,
    data: ShipRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_SHIPMENTS)),
):
    shipment_request = _get_request(db, request_id)
    ensure_campaign_manager(Actor(current_user, db), _campaign(db, shipment_request))

    AuditService(db).transition(shipment_request, "shipment_request", ShipmentStatusDB.SHIPPED, current_user.id,
                                meta={"carrier": data.carrier, "tracking_number": data.tracking_number})
    db.add(Shipment(
        shipment_request_id=shipment_request.id,
        carrier=data.carrier,
        tracking_number=data.tracking_number,
        status=ShipmentStatusDB.SHIPPED,
        shipped_at=datetime.utcnow(),
    ))
    NotificationService(db).notify_shipment_shipped(
        shipment_request.creator_id, shipment_request.id, data.carrier, data.tracking_number
    )
    db.commit()
    db.refresh(shipment_request)
    return shipment_request


@router.post("/{request_id}/deliver", response_model=ShipmentRequestResponse)
async def confirm_delivery(
    request_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    shipment_request = _get_request(db, request_id)
    _ensure_party(db, Actor(current_user, db), shipment_request)

    AuditService(db).transition(shipment_request, "shipment_request", ShipmentStatusDB.DELIVERED, current_user.id)
    shipment = _latest_shipment(shipment_request)
    if shipment:
        shipment.status = ShipmentStatusDB.DELIVERED
        shipment.delivered_at = datetime.utcnow()
    db.commit()
    db.refresh(shipment_request)
    return shipment_request


@router.post("/{request_id}/issue", response_model=ShipmentRequestResponse)
async def report_issue(
    request_id: str,
    data: ShipmentIssue,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    shipment_request = _get_request(db, request_id)
    _ensure_party(db, Actor(current_user, db), shipment_request)

    AuditService(db).transition(shipment_request, "shipment_request", ShipmentStatusDB.ISSUE, current_user.id,
                                meta={"reason": data.reason})
    shipment = _latest_shipment(shipment_request)
    if shipment:
        shipment.status = ShipmentStatusDB.ISSUE
        shipment.issue_reason = data.reason
        shipment.issue_note = data.note
    db.commit()
    db.refresh(shipment_request)
    return shipment_request
