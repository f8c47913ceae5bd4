from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.core.config import settings
from app.db.database import get_db
from app.core.dependencies import get_current_user, get_optional_current_user
from app.core.exceptions import SocialEngineError
from app.models.user import User
from app.schemas.comment import (
    CommentCreate, CommentCreateResponse, CommentResponse, CommentListResponse, CommentThreadResponse,
    CommentDeleteRequest, CommentDeleteResponse, CommentLikeRequest, CommentLikeResponse
)
from app.services.comment_service import CommentService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Comments"])


@router.get("", response_model=CommentListResponse)
async def list_comments(
    video_id: UUID = Query(..., alias="videoId"),
    limit: int = Query(settings.COMMENTS_DEFAULT_LIMIT, ge=1, le=100),
    skip: int = Query(0, ge=0),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """
    Comments for a video, newest first. Rows are flat: group them by parentId
    and order each node's replies oldest first to rebuild the thread.
    """
    try:
        rows, total_count, has_more = CommentService.list_comments(
            db, video_id, limit, skip, current_user.id if current_user else None
        )
        return CommentListResponse(comments=rows, total_count=total_count, has_more=has_more)

    except Exception as e:
        logger.error(f"Error fetching comments: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching comments"
        )


@router.get("/thread", response_model=CommentThreadResponse)
async def list_comment_thread(
    video_id: UUID = Query(..., alias="videoId"),
    limit: int = Query(settings.COMMENTS_DEFAULT_LIMIT, ge=1, le=100),
    skip: int = Query(0, ge=0),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """Same page as the flat listing, already grouped into a reply tree"""
    try:
        rows, total_count, has_more = CommentService.list_comments(
            db, video_id, limit, skip, current_user.id if current_user else None
        )
        return CommentThreadResponse(
            comments=CommentService.build_thread(rows),
            total_count=total_count,
            has_more=has_more
        )

    except Exception as e:
        logger.error(f"Error fetching comment thread: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching comments"
        )


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(
    comment_id: UUID,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    try:
        return CommentService.get_comment(db, comment_id, current_user.id if current_user else None)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error fetching comment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the comment"
        )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CommentCreateResponse)
async def create_comment(
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a comment or a reply (parentId)"""
    try:
        comment = CommentService.create_comment(
            db, current_user.id, body.video_id, body.text, body.parent_id
        )

        return CommentCreateResponse(
            comment=CommentService.to_response(comment),
            total_count=CommentService.count_all(db, body.video_id)
        )

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating comment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while creating the comment"
        )


@router.delete("", response_model=CommentDeleteResponse)
async def delete_comment(
    body: CommentDeleteRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a comment immediately (author) or remove it (video owner)"""
    try:
        state, video_id = CommentService.delete_comment(db, current_user.id, body.comment_id)

        return CommentDeleteResponse(
            total_count=CommentService.count_active(db, video_id),
            state=state
        )

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting comment: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the comment"
        )


@router.post("/like", response_model=CommentLikeResponse)
async def toggle_comment_like(
    body: CommentLikeRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Like a comment, or unlike it if already liked"""
    try:
        is_liked, like_count = CommentService.toggle_like(db, current_user.id, body.comment_id)
        return CommentLikeResponse(is_liked=is_liked, like_count=like_count)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error toggling comment like: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while liking the comment"
        )
