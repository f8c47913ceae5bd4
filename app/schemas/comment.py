from pydantic import Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from enum import Enum

from app.schemas.base import CamelModel
from app.schemas.social import UserSummary


class CommentState(str, Enum):
    ACTIVE = "active"
    REMOVED = "removed"   # soft-deleted by the video owner
    DELETED = "deleted"   # soft-deleted by its author, replies kept
    PURGED = "purged"     # row gone


class CommentCreate(CamelModel):
    # Presence and length of text are checked by CommentService so that the
    # error reads like every other validation failure
    video_id: UUID
    text: Optional[str] = None
    parent_id: Optional[UUID] = None


class CommentResponse(CamelModel):
    id: UUID
    video_id: UUID
    author: UserSummary
    text: str
    created_at: datetime
    parent_id: Optional[UUID] = None
    like_count: int = 0
    is_liked: bool = False
    is_deleted: bool = False
    deleted_by: Optional[UUID] = None


class ThreadedComment(CommentResponse):
    replies: List["ThreadedComment"] = Field(default_factory=list)


class CommentListResponse(CamelModel):
    comments: List[CommentResponse]
    total_count: int
    has_more: bool


class CommentThreadResponse(CamelModel):
    comments: List[ThreadedComment]
    total_count: int
    has_more: bool


class CommentCreateResponse(CamelModel):
    comment: CommentResponse
    total_count: int


class CommentDeleteRequest(CamelModel):
    comment_id: UUID


class CommentDeleteResponse(CamelModel):
    total_count: int
    state: CommentState


class CommentLikeRequest(CamelModel):
    comment_id: UUID


class CommentLikeResponse(CamelModel):
    is_liked: bool
    like_count: int


ThreadedComment.model_rebuild()
