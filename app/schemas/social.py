from typing import List, Optional
from datetime import datetime
from uuid import UUID
from enum import Enum

from app.schemas.base import CamelModel


class RelationshipState(str, Enum):
    NOT_FOLLOWING = "not_following"
    REQUESTED = "requested"
    FOLLOWING = "following"


class FollowRequestStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class CommentPermission(str, Enum):
    EVERYONE = "everyone"
    FOLLOWERS = "followers"
    NO_ONE = "no_one"


class MentionPermission(str, Enum):
    EVERYONE = "everyone"
    FOLLOWERS = "followers"


class FollowTargetRequest(CamelModel):
    target_id: UUID


class FollowStatusResponse(CamelModel):
    status: RelationshipState


class IsFollowingResponse(CamelModel):
    is_following: bool


class UserSummary(CamelModel):
    id: UUID
    display_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class UserFollowInfo(CamelModel):
    id: UUID
    username: Optional[str]
    display_name: Optional[str]
    avatar_url: Optional[str]
    followed_at: datetime


class FollowersListResponse(CamelModel):
    followers: List[UserFollowInfo]
    total: int
    page: int
    per_page: int
    total_pages: int


class FollowingListResponse(CamelModel):
    following: List[UserFollowInfo]
    total: int
    page: int
    per_page: int
    total_pages: int


class FollowStatsResponse(CamelModel):
    followers_count: int
    following_count: int


class FollowRequestInfo(CamelModel):
    id: UUID
    requester: UserSummary
    status: FollowRequestStatus
    created_at: datetime


class FollowRequestListResponse(CamelModel):
    requests: List[FollowRequestInfo]


class FollowRequestActionResponse(CamelModel):
    id: UUID
    status: FollowRequestStatus


class BlockStatusResponse(CamelModel):
    target_id: UUID
    is_blocked: bool


class PrivacySettings(CamelModel):
    is_public: bool = True
    require_follow_approval: Optional[bool] = None
    comment_permission: CommentPermission = CommentPermission.EVERYONE
    mention_permission: MentionPermission = MentionPermission.EVERYONE
    appear_in_discover: bool = True
    allow_suggestions: bool = True


class PrivacySettingsUpdate(CamelModel):
    """Partial update, only fields present in the request body are written"""
    is_public: Optional[bool] = None
    require_follow_approval: Optional[bool] = None
    comment_permission: Optional[CommentPermission] = None
    mention_permission: Optional[MentionPermission] = None
    appear_in_discover: Optional[bool] = None
    allow_suggestions: Optional[bool] = None
