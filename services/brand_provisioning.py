# Brand Provisioning Service
# Creates a brand together with its first manager account in one transaction:
# identity -> profile -> brand -> membership -> brand_user.

import logging
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.utils import get_password_hash
from database.models import (
    User,
    UserProfile,
    Brand,
    Membership,
    BrandUser,
    ProvisioningRequest,
    UserRole,
    LanguageCode,
    EntityType,
)
from services.audit_service import AuditService

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class BrandProvisioningError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass
class ProvisionedBrand:
    brand_id: str
    brand_name: str
    user_id: str
    email: str

    def to_response(self) -> dict:
        return {
            "success": True,
            "brand": {"id": self.brand_id, "name": self.brand_name},
            "user": {"id": self.user_id, "email": self.email},
        }


def normalize_website(website: Optional[str]) -> Optional[str]:
    """Prefix https:// unless the URL already carries an http(s) scheme."""
    if not website or not website.strip():
        return None
    website = website.strip()
    return website if _SCHEME_RE.match(website) else f"https://{website}"


class BrandProvisioningService:
    def __init__(self, db: Session):
        self.db = db

    def provision(
        self,
        brand_name: str,
        manager_email: str,
        manager_password: str,
        manager_display_name: str,
        industry: Optional[str] = None,
        website: Optional[str] = None,
        created_by: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> ProvisionedBrand:
        """
        Create the brand and its manager. Either every row is written or none.

        Replaying an idempotency key returns the first result unchanged.
        """
        manager_email = manager_email.strip().lower()

        if idempotency_key:
            previous = self._replay(idempotency_key)
            if previous:
                logger.info(f"Provisioning replayed for key {idempotency_key}")
                return previous

        if self.db.query(User).filter(User.email == manager_email).first():
            raise BrandProvisioningError("A user with this email already exists", status_code=400)

        try:
            # 1. Authentication identity
            user = User(
                email=manager_email,
                password_hash=get_password_hash(manager_password),
                user_metadata={"display_name": manager_display_name, "user_type": "brand"},
            )
            self.db.add(user)
            self.db.flush()
            logger.info(f"Provisioning: user {user.id} created")

            # 2. Profile
            self.db.add(UserProfile(
                user_id=user.id,
                display_name=manager_display_name,
                email=manager_email,
                language=LanguageCode.HE,
            ))

            # 3. Brand, unverified so onboarding runs on first login
            brand = Brand(
                name=brand_name,
                industry=industry or None,
                website=normalize_website(website),
                default_language=LanguageCode.HE,
            )
            self.db.add(brand)
            self.db.flush()
            logger.info(f"Provisioning: brand {brand.id} created")

            # 4. Membership
            self.db.add(Membership(
                user_id=user.id,
                role=UserRole.BRAND_MANAGER,
                entity_type=EntityType.BRAND.value,
                entity_id=brand.id,
                is_active=True,
            ))

            # 5. Brand user link
            self.db.add(BrandUser(
                brand_id=brand.id,
                user_id=user.id,
                role=UserRole.BRAND_MANAGER,
                is_active=True,
            ))

            if idempotency_key:
                self.db.add(ProvisioningRequest(
                    idempotency_key=idempotency_key,
                    brand_id=brand.id,
                    user_id=user.id,
                    created_by=created_by,
                ))

            AuditService(self.db).log(
                created_by or user.id, "brand", brand.id, "brand_provisioned",
                {"manager_user_id": user.id},
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if idempotency_key:
                # A concurrent call with the same key committed first
                previous = self._replay(idempotency_key)
                if previous:
                    logger.info(f"Provisioning replayed for key {idempotency_key} after conflict")
                    return previous
            logger.error(f"Provisioning conflict for {manager_email}: {e}")
            raise BrandProvisioningError("Brand or user already exists", status_code=400)
        except Exception:
            self.db.rollback()
            logger.exception(f"Provisioning failed for {manager_email}, rolled back")
            raise

        logger.info(f"Provisioning complete: brand {brand.id}, manager {user.id}")
        return ProvisionedBrand(brand.id, brand.name, user.id, manager_email)

    def _replay(self, idempotency_key: str) -> Optional[ProvisionedBrand]:
        record = self.db.query(ProvisioningRequest).filter(
            ProvisioningRequest.idempotency_key == idempotency_key
        ).first()
        if record is None:
            return None
        brand = self.db.query(Brand).filter(Brand.id == record.brand_id).first()
        user = self.db.query(User).filter(User.id == record.user_id).first()
        if brand is None or user is None:
            # Brand or manager removed since; the key may be used again
            logger.warning(f"Provisioning key {idempotency_key} points at deleted rows, discarding it")
            self.db.delete(record)
            self.db.flush()
            return None
        return ProvisionedBrand(brand.id, brand.name, user.id, user.email)
