from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from sqlalchemy.exc import OperationalError, TimeoutError
from app.db.database import get_db
from app.core.security import decode_token
from app.core.exceptions import AuthenticationError
from app.models.user import User
from typing import Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is answered with 401 rather than 403
security = HTTPBearer(auto_error=False)


def _load_user(db: Session, user_id: UUID) -> Optional[User]:
    try:
        return db.query(User).filter(User.id == user_id).first()
    except (OperationalError, TimeoutError) as e:
        logger.error(f"Database connection failed during user lookup: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database temporarily unavailable, please retry"
        )




def authenticate(credentials: Optional[HTTPAuthorizationCredentials], db: Session) -> User:
    """Resolve the bearer token to a user, AuthenticationError otherwise"""
    if not credentials:
        raise AuthenticationError("Unauthorized")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    # Check token type
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError("Could not validate credentials")

    user = _load_user(db, user_id)
    if user is None:
        raise AuthenticationError("User not found")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from the identity provider's JWT
    """
    try:
        return authenticate(credentials, db)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_optional_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Optional authentication - returns None if no valid token
    """
    try:
        return authenticate(credentials, db)
    except AuthenticationError:
        return None
