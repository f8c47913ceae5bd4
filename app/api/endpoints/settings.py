from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.dependencies import get_current_user
from app.models.user import User
from app.schemas.social import PrivacySettings, PrivacySettingsUpdate
from app.services.social_service import SocialService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Settings"])


@router.get("/privacy", response_model=PrivacySettings)
async def get_privacy_settings(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        return SocialService.get_privacy_settings(db, current_user.id)

    except Exception as e:
        logger.error(f"Get privacy settings error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching privacy settings"
        )


@router.patch("/privacy", response_model=PrivacySettings)
async def update_privacy_settings(
    update: PrivacySettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update any subset of the privacy settings"""
    try:
        return SocialService.update_privacy_settings(db, current_user.id, update)

    except Exception as e:
        logger.error(f"Privacy update error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Update failed"
        )
