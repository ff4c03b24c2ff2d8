# FastAPI Server for the LEADERS UGC marketplace
# Authentication, router wiring, error translation and startup seeding

import logging
import sys

from fastapi import FastAPI, HTTPException, Depends, status, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config.app_config import LOG_LEVEL, ADMIN_USER, ADMIN_PASS, METRICS_REFRESH_HOURS
from database.config import get_db, init_db, SessionLocal
from database.models import User, UserProfile, Membership, Creator, UserRole, EntityType
from auth.utils import verify_password, get_password_hash, create_access_token
from auth.dependencies import get_current_user
from auth.decorators import get_user_role, get_user_brand_id
from core.transitions import InvalidTransition
from schemas.marketplace import RegisterRequest, LoginRequest, TokenResponse
from services.audit_service import AuditService
from services.brand_provisioning import BrandProvisioningService, BrandProvisioningError
from services.change_feed import change_feed, install_change_feed
from services.metrics_service import recalculate_all

from routers.admin import router as admin_router
from routers.push import router as push_router
from routers.storage import router as storage_router
from routers.campaigns import router as campaigns_router
from routers.applications import router as applications_router
from routers.tasks import router as tasks_router
from routers.payments import router as payments_router
from routers.shipments import router as shipments_router
from routers.disputes import router as disputes_router
from routers.notifications import router as notifications_router
from routers.realtime import router as realtime_router

# Configure Logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="LEADERS API",
    description="UGC marketplace connecting brands, creators and staff",
    version="1.0.0"
)

install_change_feed(change_feed)


@app.on_event("startup")
def startup_event():
    init_db()

    # Seed the platform admin
    db = SessionLocal()
    try:
        admin = db.query(User).filter(User.email == ADMIN_USER).first()
        if not admin:
            logger.info(f"Seeding admin user: {ADMIN_USER}")
            admin = User(
                email=ADMIN_USER,
                password_hash=get_password_hash(ADMIN_PASS),
                role=UserRole.ADMIN,
                user_metadata={"display_name": "LEADERS Admin"},
            )
            db.add(admin)
            db.flush()
            db.add(UserProfile(user_id=admin.id, display_name="LEADERS Admin", email=ADMIN_USER))
            db.commit()
    except Exception as e:
        logger.error(f"Admin seeding failed: {e}")
        db.rollback()
    finally:
        db.close()

    from apscheduler.schedulers.background import BackgroundScheduler

    def refresh_creator_metrics():
        db = SessionLocal()
        try:
            count = recalculate_all(db)
            logger.info(f"Creator metrics refreshed for {count} creators")
        except Exception as e:
            logger.error(f"Creator metrics refresh failed: {e}")
            db.rollback()
        finally:
            db.close()

    scheduler = BackgroundScheduler()
    scheduler.add_job(refresh_creator_metrics, 'interval', hours=METRICS_REFRESH_HOURS)
    scheduler.start()
    logger.info(f"Scheduler started: creator metrics refreshed every {METRICS_REFRESH_HOURS}h")


# CORS Setup - Allow all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Required when using "*"
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


# ============================================================================
# ERROR TRANSLATION
# ============================================================================

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(admin_router, prefix="/api")
app.include_router(push_router, prefix="/api")
app.include_router(storage_router, prefix="/api")
app.include_router(campaigns_router, prefix="/api")
app.include_router(applications_router, prefix="/api")
app.include_router(tasks_router, prefix="/api")
app.include_router(payments_router, prefix="/api")
app.include_router(shipments_router, prefix="/api")
app.include_router(disputes_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(realtime_router, prefix="/api")


# Health Check
@app.get("/")
def root():
    return {
        "message": "LEADERS API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============================================================================
# AUTHENTICATION ENDPOINTS
# ============================================================================

def _token_for(user: User, db: Session) -> dict:
    role = get_user_role(user, db)
    access_token = create_access_token(data={"sub": user.email, "user_id": user.id})
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user_id": user.id,
        "role": role.value if role else None,
    }


@app.post("/api/auth/register", response_model=TokenResponse)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """
    Register a creator or a brand.
    Brands are provisioned together with their manager membership.
    Returns JWT token on success.
    """
    email = data.email.lower()

    if data.user_type == "brand":
        if not data.brand_name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="brand_name is required")
        try:
            result = BrandProvisioningService(db).provision(
                brand_name=data.brand_name,
                manager_email=email,
                manager_password=data.password,
                manager_display_name=data.display_name,
                industry=data.industry,
                website=data.website,
            )
        except BrandProvisioningError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        user = db.query(User).filter(User.id == result.user_id).first()
        return _token_for(user, db)

    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    user = User(
        email=email,
        password_hash=get_password_hash(data.password),
        user_metadata={"display_name": data.display_name, "user_type": "creator"},
    )
    db.add(user)
    db.flush()
    db.add(UserProfile(
        user_id=user.id,
        display_name=data.display_name,
        email=email,
        language=data.language,
    ))
    db.add(Membership(
        user_id=user.id,
        role=UserRole.CREATOR,
        entity_type=EntityType.CREATOR.value,
        entity_id=user.id,
        is_active=True,
    ))
    db.add(Creator(user_id=user.id))
    AuditService(db).log(user.id, "user", user.id, "creator_registered")
    db.commit()
    db.refresh(user)

    return _token_for(user, db)


@app.post("/api/auth/login", response_model=TokenResponse)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.
    Returns JWT token on success.
    """
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password"
        )

    profile = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    if profile and profile.is_blocked:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked")

    return _token_for(user, db)


@app.get("/api/auth/me")
async def get_current_user_info(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    profile = db.query(UserProfile).filter(UserProfile.user_id == current_user.id).first()
    role = get_user_role(current_user, db)

    return {
        "id": current_user.id,
        "email": current_user.email,
        "role": role.value if role else None,
        "display_name": profile.display_name if profile else None,
        "language": profile.language.value if profile and profile.language else None,
        "brand_id": get_user_brand_id(current_user, db),
        "notification_preferences": profile.notification_preferences if profile else None,
        "created_at": current_user.created_at,
    }
