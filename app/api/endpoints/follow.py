from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.db.database import get_db
from app.core.dependencies import get_current_user, get_optional_current_user
from app.core.exceptions import SocialEngineError
from app.models.user import User
from app.schemas.social import (
    FollowTargetRequest, FollowStatusResponse, IsFollowingResponse,
    FollowRequestInfo, FollowRequestListResponse, FollowRequestActionResponse,
    RelationshipState, UserSummary
)
from app.services.social_service import SocialService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Follow"])


@router.post("", response_model=FollowStatusResponse)
async def follow_user(
    body: FollowTargetRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Follow a user, or request to follow a private account"""
    try:
        state, created = SocialService.request_follow(db, current_user.id, body.target_id)

        # 201 only when a new follow edge was created
        status_code = (
            status.HTTP_201_CREATED
            if created and state == RelationshipState.FOLLOWING
            else status.HTTP_200_OK
        )
        return JSONResponse(
            status_code=status_code,
            content=FollowStatusResponse(status=state).model_dump(by_alias=True, mode="json")
        )

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Follow user error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while following user"
        )


@router.delete("", response_model=FollowStatusResponse)
async def unfollow_user(
    body: FollowTargetRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Unfollow a user or withdraw a pending request; a no-op is still a 200"""
    try:
        SocialService.cancel_follow(db, current_user.id, body.target_id)
        return FollowStatusResponse(status=RelationshipState.NOT_FOLLOWING)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Unfollow user error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while unfollowing user"
        )


@router.get("", response_model=IsFollowingResponse)
async def check_if_following(
    target_id: Optional[UUID] = Query(None, alias="targetId"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """Check if current user is following another user"""
    if target_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Target ID required"
        )

    # Anonymous viewers simply follow nobody
    if current_user is None:
        return IsFollowingResponse(is_following=False)

    try:
        return IsFollowingResponse(
            is_following=SocialService.is_following(db, current_user.id, target_id)
        )

    except Exception as e:
        logger.error(f"Check following error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while checking follow status"
        )


@router.get("/requests", response_model=FollowRequestListResponse)
async def list_follow_requests(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pending follow requests addressed to the current user"""
    try:
        requests = SocialService.list_pending_requests(db, current_user.id)

        return FollowRequestListResponse(requests=[
            FollowRequestInfo(
                id=req.id,
                requester=UserSummary(
                    id=req.requester_id,
                    display_name=req.requester.display_name or req.requester.username or "User",
                    username=req.requester.username,
                    avatar_url=req.requester.avatar_url
                ),
                status=req.status,
                created_at=req.created_at
            )
            for req in requests
            if req.requester is not None
        ])

    except Exception as e:
        logger.error(f"List follow requests error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching follow requests"
        )


@router.post("/requests/{request_id}/approve", response_model=FollowRequestActionResponse)
async def approve_follow_request(
    request_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Approve a pending follow request"""
    try:
        follow_request = SocialService.approve_request(db, current_user.id, request_id)
        return FollowRequestActionResponse(id=follow_request.id, status=follow_request.status)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Approve follow request error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while approving the request"
        )


@router.post("/requests/{request_id}/reject", response_model=FollowRequestActionResponse)
async def reject_follow_request(
    request_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Reject a pending follow request"""
    try:
        follow_request = SocialService.reject_request(db, current_user.id, request_id)
        return FollowRequestActionResponse(id=follow_request.id, status=follow_request.status)

    except SocialEngineError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Reject follow request error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while rejecting the request"
        )
