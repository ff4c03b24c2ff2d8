# Admin Router for the LEADERS platform
# Brand provisioning, admin grants, user moderation, verification and the audit log browser

import logging
from fastapi import APIRouter, HTTPException, Depends, Query, Request, Header
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User, UserProfile, AuditLog
from schemas.marketplace import CreateBrandRequest, BulkBlockRequest, AuditLogResponse, AdminUserResponse
from auth.roles import Permission
from auth.decorators import require_admin, require_permission
from services.brand_provisioning import BrandProvisioningService, BrandProvisioningError
from services import admin_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


# ============================================================================
# PROVISIONING
# ============================================================================

@router.post("/create-brand")
async def create_brand(
    request: Request,
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    """
    Create a brand with its first manager account.

    All rows are written in one transaction. Sending the same
    Idempotency-Key again returns the original result.
    """
    body = await _json_object(request)
    try:
        data = CreateBrandRequest(**body)
    except ValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise HTTPException(status_code=400, detail=f"Missing or invalid fields: {', '.join(missing)}")

    try:
        result = BrandProvisioningService(db).provision(
            brand_name=data.brandName,
            manager_email=data.managerEmail,
            manager_password=data.managerPassword,
            manager_display_name=data.managerDisplayName,
            industry=data.industry,
            website=data.website,
            created_by=current_user.id,
            idempotency_key=idempotency_key,
        )
    except BrandProvisioningError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return result.to_response()


@router.post("/set-admins")
async def set_admins(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin()),
):
    body = await _json_object(request)
    emails = body.get("emails")
    if not isinstance(emails, list):
        raise HTTPException(status_code=400, detail="Invalid emails array")

    results = admin_service.set_admins(db, emails, actor_id=current_user.id)
    return {"success": True, "data": results}


# ============================================================================
# USERS
# ============================================================================

@router.get("/users")
async def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
    search: Optional[str] = Query(None, description="Email or display name contains"),
    blocked: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    query = db.query(User, UserProfile).outerjoin(UserProfile, UserProfile.user_id == User.id)

    if search:
        pattern = f"%{search.lower()}%"
        query = query.filter(
            User.email.ilike(pattern) | UserProfile.display_name.ilike(pattern)
        )
    if blocked is not None:
        query = query.filter(UserProfile.is_blocked == blocked)

    total = query.count()
    rows = query.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "users": [
            AdminUserResponse(
                id=user.id,
                email=user.email,
                role=user.role.value if user.role else None,
                display_name=profile.display_name if profile else None,
                is_blocked=bool(profile and profile.is_blocked),
                created_at=user.created_at,
            )
            for user, profile in rows
        ],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.post("/users/bulk-block")
async def bulk_block_users(
    data: BulkBlockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
):
    if current_user.id in data.user_ids and data.blocked:
        raise HTTPException(status_code=400, detail="You cannot block yourself")

    updated = admin_service.set_blocked(db, data.user_ids, data.blocked, current_user.id)
    return {"success": True, "updated": updated}


@router.post("/users/{user_id}/block")
async def block_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot block yourself")
    if not admin_service.set_blocked(db, [user_id], True, current_user.id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True}


@router.post("/users/{user_id}/unblock")
async def unblock_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
):
    if not admin_service.set_blocked(db, [user_id], False, current_user.id):
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True}


# ============================================================================
# VERIFICATION
# ============================================================================

@router.post("/creators/{creator_id}/verify")
async def verify_creator(
    creator_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_USERS)),
):
    creator = admin_service.verify_creator(db, creator_id, current_user.id)
    if creator is None:
        raise HTTPException(status_code=404, detail="Creator not found")
    return {"success": True, "verified_at": creator.verified_at}


@router.post("/brands/{brand_id}/verify")
async def verify_brand(
    brand_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.MANAGE_BRANDS)),
):
    brand = admin_service.verify_brand(db, brand_id, current_user.id)
    if brand is None:
        raise HTTPException(status_code=404, detail="Brand not found")
    return {"success": True, "verified_at": brand.verified_at}


# ============================================================================
# AUDIT LOG & DASHBOARD
# ============================================================================

@router.get("/audit-logs")
async def get_audit_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_AUDIT_LOGS)),
    entity: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    actor_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
):
    query = db.query(AuditLog)
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)

    total = query.count()
    logs = query.order_by(AuditLog.created_at.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "logs": [AuditLogResponse.model_validate(log) for log in logs],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.get("/stats")
async def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_ADMIN_STATS)),
):
    return admin_service.dashboard_stats(db)
