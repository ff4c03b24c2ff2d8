# Authentication Dependencies for the LEADERS platform
# Provides dependencies for getting the current user from JWT token

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from database.config import get_db
from database.models import User, UserProfile
from auth.utils import decode_access_token


security = HTTPBearer(auto_error=False)


def _load_user(token: str, db: Session) -> Optional[User]:
    token_data = decode_access_token(token)
    if token_data is None:
        return None
    if token_data.user_id:
        return db.query(User).filter(User.id == token_data.user_id).first()
    return db.query(User).filter(User.email == token_data.email).first()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Validate JWT token and return current user.
    This is the core authentication dependency.
    Blocked accounts are refused even with a valid token.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _load_user(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profile = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    if profile and profile.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is blocked"
        )

    return user


