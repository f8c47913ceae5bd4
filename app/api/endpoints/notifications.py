from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.database import get_db
from app.core.dependencies import get_current_user
from app.core.exceptions import SocialEngineError
from app.models.user import User
from app.schemas.notification import (
    NotificationListResponse, NotificationResponse, MarkReadRequest, MarkReadResponse,
    DeleteNotificationRequest
)
from app.schemas.social import UserSummary
from app.services.notification_service import NotificationService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    limit: int = Query(settings.NOTIFICATION_LIST_LIMIT, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Most recent notifications for the current user"""
    try:
        notifications, unread_count = NotificationService.list_for_user(db, current_user.id, limit)

        return NotificationListResponse(
            notifications=[
                NotificationResponse(
                    id=n.id,
                    type=n.type,
                    actor=UserSummary(
                        id=n.actor_id,
                        display_name=n.actor.display_name if n.actor else None,
                        username=n.actor.username if n.actor else "Unknown",
                        avatar_url=n.actor.avatar_url if n.actor else None
                    ),
                    entity_id=n.entity_id,
                    entity_type=n.entity_type,
                    text=n.text,
                    read=n.read,
                    created_at=n.created_at
                )
                for n in notifications
            ],
            unread_count=unread_count
        )

    except Exception as e:
        logger.error(f"Error fetching notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching notifications"
        )


@router.patch("/read", response_model=MarkReadResponse)
async def mark_notifications_read(
    body: MarkReadRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        updated = NotificationService.mark_read(db, current_user.id, body.notification_ids)
        return MarkReadResponse(updated=updated)

    except Exception as e:
        logger.error(f"Error marking notifications as read: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating notifications"
        )


@router.delete("")
async def delete_notification(
    body: DeleteNotificationRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    try:
        NotificationService.delete(db, current_user.id, body.notification_id)
        return {"success": True}

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting notification: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the notification"
        )
