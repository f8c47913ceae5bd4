from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from uuid import UUID

from app.db.database import get_db
from app.core.dependencies import get_current_user
from app.core.exceptions import SocialEngineError
from app.models.user import User
from app.schemas.social import (
    FollowersListResponse, FollowingListResponse, FollowStatsResponse,
    FollowTargetRequest, BlockStatusResponse
)
from app.services.social_service import SocialService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Social"])


@router.get("/users/{user_id}/followers", response_model=FollowersListResponse)
async def get_user_followers(
    user_id: UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get list of followers for a user"""
    try:
        followers, total = SocialService.get_followers(db, user_id, page, per_page)

        total_pages = (total + per_page - 1) // per_page

        return FollowersListResponse(
            followers=followers,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages
        )

    except Exception as e:
        logger.error(f"Get followers error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching followers"
        )


@router.get("/users/{user_id}/following", response_model=FollowingListResponse)
async def get_user_following(
    user_id: UUID,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get list of users that a user is following"""
    try:
        following, total = SocialService.get_following(db, user_id, page, per_page)

        total_pages = (total + per_page - 1) // per_page

        return FollowingListResponse(
            following=following,
            total=total,
            page=page,
            per_page=per_page,
            total_pages=total_pages
        )

    except Exception as e:
        logger.error(f"Get following error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching following"
        )


@router.get("/users/{user_id}/follow-stats", response_model=FollowStatsResponse)
async def get_user_follow_stats(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get follow statistics for a user"""
    try:
        return SocialService.get_follow_stats(db, user_id)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Get follow stats error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching follow stats"
        )


@router.post("/blocks", response_model=BlockStatusResponse)
async def block_user(
    body: FollowTargetRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Block a user"""
    try:
        SocialService.block_user(db, current_user.id, body.target_id)
        return BlockStatusResponse(target_id=body.target_id, is_blocked=True)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Block user error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while blocking user"
        )


@router.delete("/blocks", response_model=BlockStatusResponse)
async def unblock_user(
    body: FollowTargetRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Remove a block; unblocking someone who is not blocked is a no-op"""
    try:
        SocialService.unblock_user(db, current_user.id, body.target_id)
        return BlockStatusResponse(target_id=body.target_id, is_blocked=False)

    except Exception as e:
        logger.error(f"Unblock user error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while unblocking user"
        )
