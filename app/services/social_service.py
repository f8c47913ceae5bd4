from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, or_, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import List, Optional, Tuple
from uuid import UUID
from datetime import datetime
from enum import Enum
import logging

from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.user import User
from app.models.social import Follow, FollowRequest, Block
from app.schemas.social import (
    UserFollowInfo, FollowStatsResponse, PrivacySettings, PrivacySettingsUpdate,
    RelationshipState, FollowRequestStatus
)
from app.schemas.notification import (
    FollowNotification, FollowRequestNotification, FollowAcceptedNotification
)
from app.services import privacy_policy
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class SocialService:
    """
    Follow / block / privacy relationship state machine.

    Per ordered pair (actor -> target) the state is NOT_FOLLOWING, REQUESTED
    (a pending FollowRequest) or FOLLOWING (a Follow row). Every mutation runs
    as one transaction; the unique constraints on the pair columns are what
    stops concurrent duplicates, a violation collapses into the idempotent
    result.
    """

    @staticmethod
    def _get_user(db: Session, user_id: UUID) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def is_blocked(db: Session, user_a: UUID, user_b: UUID) -> bool:
        """True when either user has blocked the other"""
        block = db.query(Block.id).filter(
            or_(
                and_(Block.blocker_id == user_a, Block.blocked_id == user_b),
                and_(Block.blocker_id == user_b, Block.blocked_id == user_a)
            )
        ).first()

        return block is not None

    @staticmethod
    def is_following(db: Session, follower_id: UUID, following_id: UUID) -> bool:
        """Check if one user is following another"""

        follow = db.query(Follow.id).filter(
            and_(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id
            )
        ).first()

        return follow is not None

    @staticmethod
    def _get_request(db: Session, requester_id: UUID, recipient_id: UUID) -> Optional[FollowRequest]:
        return db.query(FollowRequest).filter(
            and_(
                FollowRequest.requester_id == requester_id,
                FollowRequest.recipient_id == recipient_id
            )
        ).first()

    @staticmethod
    def get_relationship_state(db: Session, actor_id: UUID, target_id: UUID) -> RelationshipState:
        if SocialService.is_following(db, actor_id, target_id):
            return RelationshipState.FOLLOWING

        request = SocialService._get_request(db, actor_id, target_id)
        if request and request.status == FollowRequestStatus.PENDING.value:
            return RelationshipState.REQUESTED

        return RelationshipState.NOT_FOLLOWING

    @staticmethod
    def _increment_counters(db: Session, follower_id: UUID, following_id: UUID) -> None:
        db.query(User).filter(User.id == follower_id).update(
            {User.following_count: User.following_count + 1}, synchronize_session=False
        )
        db.query(User).filter(User.id == following_id).update(
            {User.followers_count: User.followers_count + 1}, synchronize_session=False
        )

    @staticmethod
    def _decrement_counters(db: Session, follower_id: UUID, following_id: UUID) -> None:
        # Guarded at zero, counters never go negative
        db.query(User).filter(User.id == follower_id, User.following_count > 0).update(
            {User.following_count: User.following_count - 1}, synchronize_session=False
        )
        db.query(User).filter(User.id == following_id, User.followers_count > 0).update(
            {User.followers_count: User.followers_count - 1}, synchronize_session=False
        )

    @staticmethod
    def _create_edge(db: Session, follower_id: UUID, following_id: UUID) -> Follow:
        """Insert the follow edge and bump both counters in the current transaction"""
        follow = Follow(follower_id=follower_id, following_id=following_id)
        db.add(follow)
        db.flush()

        SocialService._increment_counters(db, follower_id, following_id)
        return follow

    @staticmethod
    def request_follow(db: Session, actor_id: UUID, target_id: UUID) -> Tuple[RelationshipState, bool]:
        """
        Follow a user, or ask to follow them when their account requires approval.

        Returns the resulting state and whether anything was written. Repeating
        the call is safe: an existing edge or pending request comes back as-is
        without a second notification.
        """
        if actor_id == target_id:
            raise AuthorizationError("Cannot follow yourself")

        if SocialService.is_blocked(db, actor_id, target_id):
            raise AuthorizationError("Action not allowed")

        target = SocialService._get_user(db, target_id)

        if SocialService.is_following(db, actor_id, target_id):
            return RelationshipState.FOLLOWING, False

        existing_request = SocialService._get_request(db, actor_id, target_id)
        if existing_request and existing_request.status == FollowRequestStatus.PENDING.value:
            return RelationshipState.REQUESTED, False

        decision = privacy_policy.evaluate(
            privacy_policy.privacy_from_user(target),
            RelationshipState.NOT_FOLLOWING,
            blocked=False
        )

        try:
            if decision.requires_approval:
                if existing_request:
                    # Re-open a rejected/accepted request; fresh timestamp so it resurfaces
                    reopened = db.query(FollowRequest).filter(
                        FollowRequest.id == existing_request.id,
                        FollowRequest.status != FollowRequestStatus.PENDING.value
                    ).update({
                        FollowRequest.status: FollowRequestStatus.PENDING.value,
                        FollowRequest.created_at: datetime.utcnow()
                    }, synchronize_session=False)

                    if not reopened:
                        db.rollback()
                        return RelationshipState.REQUESTED, False

                    request_id = existing_request.id
                else:
                    follow_request = FollowRequest(
                        requester_id=actor_id,
                        recipient_id=target_id,
                        status=FollowRequestStatus.PENDING.value
                    )
                    db.add(follow_request)
                    db.flush()
                    request_id = follow_request.id

                NotificationService.create(db, FollowRequestNotification(
                    recipient_id=target_id,
                    actor_id=actor_id,
                    entity_id=request_id
                ))
                db.commit()

                logger.info(f"Follow request {actor_id} -> {target_id} pending")
                return RelationshipState.REQUESTED, True

            SocialService._create_edge(db, actor_id, target_id)
            NotificationService.create(db, FollowNotification(
                recipient_id=target_id,
                actor_id=actor_id,
                entity_id=actor_id
            ))
            db.commit()

            logger.info(f"User {actor_id} now follows {target_id}")
            return RelationshipState.FOLLOWING, True

        except IntegrityError:
            # A concurrent identical call won the unique constraint
            db.rollback()
            logger.info(f"Duplicate follow {actor_id} -> {target_id} collapsed into existing state")
            return SocialService.get_relationship_state(db, actor_id, target_id), False
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def cancel_follow(db: Session, actor_id: UUID, target_id: UUID) -> RelationshipState:
        """
        Unfollow, or withdraw a pending request. Returns the state the pair was
        in before the call; NOT_FOLLOWING means nothing changed.
        """
        try:
            deleted = db.query(Follow).filter(
                and_(
                    Follow.follower_id == actor_id,
                    Follow.following_id == target_id
                )
            ).delete(synchronize_session=False)

            if deleted:
                SocialService._decrement_counters(db, actor_id, target_id)
                db.commit()
                logger.info(f"User {actor_id} unfollowed {target_id}")
                return RelationshipState.FOLLOWING

            cancelled = db.query(FollowRequest).filter(
                and_(
                    FollowRequest.requester_id == actor_id,
                    FollowRequest.recipient_id == target_id,
                    FollowRequest.status == FollowRequestStatus.PENDING.value
                )
            ).delete(synchronize_session=False)
            db.commit()

        except SQLAlchemyError:
            db.rollback()
            raise

        if cancelled:
            logger.info(f"Follow request {actor_id} -> {target_id} cancelled")
            return RelationshipState.REQUESTED

        return RelationshipState.NOT_FOLLOWING

    @staticmethod
    def _get_actionable_request(db: Session, actor_id: UUID, request_id: UUID) -> FollowRequest:
        follow_request = db.query(FollowRequest).filter(FollowRequest.id == request_id).first()
        if not follow_request:
            raise NotFoundError("Request not found")

        # Only the recipient can approve/reject
        if follow_request.recipient_id != actor_id:
            raise AuthorizationError("Only the recipient can respond to this request")

        if follow_request.status != FollowRequestStatus.PENDING.value:
            raise NotFoundError("Request not found or already processed")

        return follow_request

    @staticmethod
    def _transition_request(db: Session, request_id: UUID, status: FollowRequestStatus) -> None:
        """pending -> status, or NotFoundError if another call already moved it"""
        updated = db.query(FollowRequest).filter(
            FollowRequest.id == request_id,
            FollowRequest.status == FollowRequestStatus.PENDING.value
        ).update({FollowRequest.status: status.value}, synchronize_session=False)

        if not updated:
            raise NotFoundError("Request not found or already processed")

    @staticmethod
    def approve_request(db: Session, actor_id: UUID, request_id: UUID) -> FollowRequest:
        """Turn a pending request into a follow edge and tell the requester"""
        follow_request = SocialService._get_actionable_request(db, actor_id, request_id)
        requester_id = follow_request.requester_id

        if SocialService.is_blocked(db, requester_id, actor_id):
            raise AuthorizationError("Action not allowed")

        try:
            SocialService._transition_request(db, request_id, FollowRequestStatus.ACCEPTED)

            if not SocialService.is_following(db, requester_id, actor_id):
                SocialService._create_edge(db, requester_id, actor_id)
                NotificationService.create(db, FollowAcceptedNotification(
                    recipient_id=requester_id,
                    actor_id=actor_id,
                    entity_id=actor_id
                ))
            db.commit()

        except IntegrityError:
            # Edge appeared concurrently; only the status flip is still owed
            db.rollback()
            SocialService._transition_request(db, request_id, FollowRequestStatus.ACCEPTED)
            db.commit()
        except (NotFoundError, SQLAlchemyError):
            db.rollback()
            raise

        logger.info(f"Follow request {request_id} approved by {actor_id}")
        db.refresh(follow_request)
        return follow_request

    @staticmethod
    def reject_request(db: Session, actor_id: UUID, request_id: UUID) -> FollowRequest:
        """Reject a pending request; the row is kept with status rejected"""
        follow_request = SocialService._get_actionable_request(db, actor_id, request_id)

        try:
            SocialService._transition_request(db, request_id, FollowRequestStatus.REJECTED)
            db.commit()
        except (NotFoundError, SQLAlchemyError):
            db.rollback()
            raise

        logger.info(f"Follow request {request_id} rejected by {actor_id}")
        db.refresh(follow_request)
        return follow_request

    @staticmethod
    def list_pending_requests(db: Session, recipient_id: UUID) -> List[FollowRequest]:
        """Pending requests addressed to a user, most recent first"""
        return db.query(FollowRequest).options(
            joinedload(FollowRequest.requester)
        ).filter(
            FollowRequest.recipient_id == recipient_id,
            FollowRequest.status == FollowRequestStatus.PENDING.value
        ).order_by(desc(FollowRequest.created_at)).all()

    @staticmethod
    def get_followers(
        db: Session,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20
    ) -> Tuple[List[UserFollowInfo], int]:
        """Get list of followers for a user"""

        query = db.query(
            User.id,
            User.username,
            User.display_name,
            User.avatar_url,
            Follow.created_at.label('followed_at')
        ).join(
            Follow, Follow.follower_id == User.id
        ).filter(
            Follow.following_id == user_id
        )

        # Get total count
        total = query.count()

        # Apply pagination
        query = query.order_by(desc(Follow.created_at))
        query = query.offset((page - 1) * per_page)
        query = query.limit(per_page)

        followers = []
        for row in query.all():
            followers.append(UserFollowInfo(
                id=row.id,
                username=row.username,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                followed_at=row.followed_at
            ))

        return followers, total

    @staticmethod
    def get_following(
        db: Session,
        user_id: UUID,
        page: int = 1,
        per_page: int = 20
    ) -> Tuple[List[UserFollowInfo], int]:
        """Get list of users that a user is following"""

        query = db.query(
            User.id,
            User.username,
            User.display_name,
            User.avatar_url,
            Follow.created_at.label('followed_at')
        ).join(
            Follow, Follow.following_id == User.id
        ).filter(
            Follow.follower_id == user_id
        )

        total = query.count()

        query = query.order_by(desc(Follow.created_at))
        query = query.offset((page - 1) * per_page)
        query = query.limit(per_page)

        following = [
            UserFollowInfo(
                id=row.id,
                username=row.username,
                display_name=row.display_name,
                avatar_url=row.avatar_url,
                followed_at=row.followed_at
            )
            for row in query.all()
        ]

        return following, total

    @staticmethod
    def get_follow_stats(db: Session, user_id: UUID) -> FollowStatsResponse:
        """Follow statistics from the denormalized counters"""
        user = SocialService._get_user(db, user_id)

        return FollowStatsResponse(
            followers_count=user.followers_count or 0,
            following_count=user.following_count or 0
        )

    @staticmethod
    def block_user(db: Session, actor_id: UUID, target_id: UUID) -> bool:
        """
        Block a user. Existing follows and requests between the pair are left
        in place; the block only stops new ones. Returns False when the block
        already existed.
        """
        if actor_id == target_id:
            raise AuthorizationError("Cannot block yourself")

        SocialService._get_user(db, target_id)

        existing = db.query(Block.id).filter(
            Block.blocker_id == actor_id,
            Block.blocked_id == target_id
        ).first()
        if existing:
            return False

        try:
            db.add(Block(blocker_id=actor_id, blocked_id=target_id))
            db.commit()
        except IntegrityError:
            db.rollback()
            return False
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(f"User {actor_id} blocked {target_id}")
        return True

    @staticmethod
    def unblock_user(db: Session, actor_id: UUID, target_id: UUID) -> bool:
        try:
            deleted = db.query(Block).filter(
                Block.blocker_id == actor_id,
                Block.blocked_id == target_id
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        return bool(deleted)

    @staticmethod
    def get_privacy_settings(db: Session, user_id: UUID) -> PrivacySettings:
        user = SocialService._get_user(db, user_id)
        return privacy_policy.privacy_from_user(user)

    @staticmethod
    def update_privacy_settings(db: Session, user_id: UUID, update: PrivacySettingsUpdate) -> PrivacySettings:
        """Write only the fields the caller sent"""
        user = SocialService._get_user(db, user_id)

        for field, value in update.model_dump(exclude_unset=True).items():
            # require_follow_approval may be reset to "unset"; the other columns are not nullable
            if value is None and field != "require_follow_approval":
                continue
            setattr(user, field, value.value if isinstance(value, Enum) else value)

        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        db.refresh(user)
        return privacy_policy.privacy_from_user(user)
