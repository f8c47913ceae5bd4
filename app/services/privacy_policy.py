"""
Privacy policy evaluation.

Pure functions, no database access: callers load the target's privacy
settings, the actor -> target relationship state and whether a block exists
in either direction, and get back what the actor may do to the target.
"""
from dataclasses import dataclass

from app.models.user import User
from app.schemas.social import (
    PrivacySettings, RelationshipState,
    CommentPermission, MentionPermission
)


@dataclass(frozen=True)
class PolicyDecision:
    allow_follow: bool
    allow_comment: bool
    allow_mention: bool
    requires_approval: bool


def privacy_from_user(user: User) -> PrivacySettings:
    """Read the privacy columns of a user row, defaulting unset values"""
    return PrivacySettings(
        is_public=user.is_public if user.is_public is not None else True,
        require_follow_approval=user.require_follow_approval,
        comment_permission=user.comment_permission or CommentPermission.EVERYONE,
        mention_permission=user.mention_permission or MentionPermission.EVERYONE,
        appear_in_discover=user.appear_in_discover if user.appear_in_discover is not None else True,
        allow_suggestions=user.allow_suggestions if user.allow_suggestions is not None else True,
    )


def requires_approval(privacy: PrivacySettings) -> bool:
    """
    An explicit require_follow_approval=True always gates followers. A private
    account gates them too unless the owner explicitly opted out.
    """
    if privacy.require_follow_approval is True:
        return True
    return privacy.is_public is False and privacy.require_follow_approval is not False


def can_comment(
    privacy: PrivacySettings,
    relationship: RelationshipState,
    blocked: bool,
    is_self: bool = False
) -> bool:
    if blocked:
        return False
    if is_self:
        return True

    if privacy.comment_permission == CommentPermission.NO_ONE:
        return False
    if privacy.comment_permission == CommentPermission.FOLLOWERS:
        return relationship == RelationshipState.FOLLOWING
    return True


def can_mention(
    privacy: PrivacySettings,
    relationship: RelationshipState,
    blocked: bool
) -> bool:
    if blocked:
        return False
    if privacy.mention_permission == MentionPermission.FOLLOWERS:
        return relationship == RelationshipState.FOLLOWING
    return True


def evaluate(
    privacy: PrivacySettings,
    relationship: RelationshipState,
    blocked: bool,
    is_self: bool = False
) -> PolicyDecision:
    """Everything an actor may do to a target; a block denies all of it"""
    return PolicyDecision(
        allow_follow=not blocked and not is_self,
        allow_comment=can_comment(privacy, relationship, blocked, is_self),
        allow_mention=can_mention(privacy, relationship, blocked),
        requires_approval=requires_approval(privacy),
    )
