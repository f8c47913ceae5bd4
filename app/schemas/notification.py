from pydantic import Field, validator
from typing import Annotated, List, Optional, Union, Literal
from datetime import datetime
from uuid import UUID
from enum import Enum

from app.core.config import settings
from app.schemas.base import CamelModel
from app.schemas.social import UserSummary


class NotificationType(str, Enum):
    FOLLOW = "follow"
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_ACCEPTED = "follow_accepted"
    COMMENT = "comment"
    MENTION = "mention"
    LIKE = "like"


class EntityType(str, Enum):
    USER = "user"
    FOLLOW_REQUEST = "follow_request"
    VIDEO = "video"


def make_snippet(text: str) -> str:
    """Preview text stored on a notification"""
    return text.strip()[:settings.NOTIFICATION_SNIPPET_LENGTH]


class _NotificationPayload(CamelModel):
    recipient_id: UUID
    actor_id: UUID
    entity_id: UUID

    def to_row(self) -> dict:
        """Column values for the notifications table"""
        return {
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "type": self.type,
            "entity_id": self.entity_id,
            "entity_type": self.entity_type,
            "text": getattr(self, "text", None),
            "read": False,
        }


class _SnippetPayload(_NotificationPayload):
    text: str

    @validator("text")
    def truncate_text(cls, v):
        return make_snippet(v)


class FollowNotification(_NotificationPayload):
    """entity_id is the new follower"""
    type: Literal["follow"] = "follow"
    entity_type: Literal["user"] = "user"


class FollowRequestNotification(_NotificationPayload):
    """entity_id is the pending follow request"""
    type: Literal["follow_request"] = "follow_request"
    entity_type: Literal["follow_request"] = "follow_request"


class FollowAcceptedNotification(_NotificationPayload):
    """entity_id is the account that approved the request"""
    type: Literal["follow_accepted"] = "follow_accepted"
    entity_type: Literal["user"] = "user"


class CommentNotification(_SnippetPayload):
    type: Literal["comment"] = "comment"
    entity_type: Literal["video"] = "video"


class MentionNotification(_SnippetPayload):
    type: Literal["mention"] = "mention"
    entity_type: Literal["video"] = "video"


class CommentLikeNotification(_SnippetPayload):
    type: Literal["like"] = "like"
    entity_type: Literal["video"] = "video"


NotificationPayload = Annotated[
    Union[
        FollowNotification,
        FollowRequestNotification,
        FollowAcceptedNotification,
        CommentNotification,
        MentionNotification,
        CommentLikeNotification,
    ],
    Field(discriminator="type"),
]


class NotificationResponse(CamelModel):
    id: UUID
    type: NotificationType
    actor: UserSummary
    entity_id: Optional[UUID]
    entity_type: Optional[EntityType]
    text: Optional[str]
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: List[NotificationResponse]
    unread_count: int


class MarkReadRequest(CamelModel):
    notification_ids: List[UUID] = Field(..., min_length=1)


class MarkReadResponse(CamelModel):
    updated: int


class DeleteNotificationRequest(CamelModel):
    notification_id: UUID
