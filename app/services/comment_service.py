from sqlalchemy.orm import Session, joinedload
from sqlalchemy import and_, or_, desc, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID
import logging
import re

from app.core.config import settings
from app.core.exceptions import ValidationError, AuthorizationError, NotFoundError
from app.models.user import User, Video
from app.models.social import Comment, CommentLike, Follow, Block
from app.schemas.comment import CommentResponse, ThreadedComment, CommentState
from app.schemas.notification import (
    CommentNotification, MentionNotification, CommentLikeNotification
)
from app.schemas.social import UserSummary, RelationshipState, CommentPermission
from app.services import privacy_policy
from app.services.notification_service import NotificationService
from app.services.social_service import SocialService

logger = logging.getLogger(__name__)

# ASCII word characters only, so a mention stops at the first accented letter
MENTION_PATTERN = re.compile(r"@(\w+)", re.ASCII)

REMOVED_PLACEHOLDER = "[removed]"
DELETED_PLACEHOLDER = "[deleted]"
LIKE_SNIPPET_LENGTH = 20


class CommentService:
    """
    Threaded, moderation-aware comments.

    Comment states: ACTIVE -> REMOVED (video owner moderates someone else's
    comment), ACTIVE -> DELETED (author deletes a comment that has replies),
    ACTIVE -> PURGED (author deletes a leaf). REMOVED and DELETED are terminal.
    """

    @staticmethod
    def parse_mentions(text: str) -> List[str]:
        """Usernames mentioned as @name, deduplicated in first-seen order"""
        seen = []
        for username in MENTION_PATTERN.findall(text or ""):
            if username not in seen:
                seen.append(username)
        return seen

    @staticmethod
    def _clean_text(text: Optional[str]) -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationError("videoId and text are required")
        if len(cleaned) > settings.COMMENT_MAX_LENGTH:
            raise ValidationError(f"Comment too long (max {settings.COMMENT_MAX_LENGTH} characters)")
        return cleaned

    @staticmethod
    def _get_video(db: Session, video_id: UUID) -> Video:
        video = db.query(Video).options(joinedload(Video.owner)).filter(Video.id == video_id).first()
        if not video:
            raise NotFoundError("Video not found")
        return video

    @staticmethod
    def _check_parent(db: Session, video_id: UUID, parent_id: UUID) -> None:
        parent = db.query(Comment).filter(Comment.id == parent_id).first()
        if not parent:
            raise NotFoundError("Parent comment not found")
        if parent.video_id != video_id:
            raise ValidationError("Parent comment belongs to a different video")
        if parent.is_deleted:
            raise ValidationError("Cannot reply to a deleted comment")

    @staticmethod
    def _check_comment_permission(db: Session, actor_id: UUID, owner: User) -> None:
        is_self = owner.id == actor_id
        blocked = not is_self and SocialService.is_blocked(db, actor_id, owner.id)
        relationship = (
            RelationshipState.FOLLOWING
            if not is_self and SocialService.is_following(db, actor_id, owner.id)
            else RelationshipState.NOT_FOLLOWING
        )

        privacy = privacy_policy.privacy_from_user(owner)
        decision = privacy_policy.evaluate(privacy, relationship, blocked, is_self=is_self)
        if decision.allow_comment:
            return

        if blocked:
            raise AuthorizationError("Action not allowed")
        if privacy.comment_permission == CommentPermission.NO_ONE:
            raise AuthorizationError("Comments are disabled for this video")
        raise AuthorizationError("Only followers can comment")

    @staticmethod
    def _queue_mention_notifications(db: Session, actor_id: UUID, video_id: UUID, text: str) -> int:
        """Resolve @mentions and insert every permitted notification in one batch"""
        usernames = CommentService.parse_mentions(text)
        if not usernames:
            return 0

        users_by_name = {
            user.username: user
            for user in db.query(User).filter(User.username.in_(usernames)).all()
        }
        mentioned = [
            users_by_name[name] for name in usernames
            if name in users_by_name and users_by_name[name].id != actor_id
        ]
        if not mentioned:
            return 0

        mentioned_ids = [user.id for user in mentioned]

        followed_ids = {
            row.following_id for row in db.query(Follow.following_id).filter(
                Follow.follower_id == actor_id,
                Follow.following_id.in_(mentioned_ids)
            )
        }
        blocked_ids: Set[UUID] = set()
        for row in db.query(Block.blocker_id, Block.blocked_id).filter(
            or_(
                and_(Block.blocker_id == actor_id, Block.blocked_id.in_(mentioned_ids)),
                and_(Block.blocked_id == actor_id, Block.blocker_id.in_(mentioned_ids))
            )
        ):
            blocked_ids.add(row.blocked_id if row.blocker_id == actor_id else row.blocker_id)

        payloads = []
        for user in mentioned:
            relationship = (
                RelationshipState.FOLLOWING if user.id in followed_ids
                else RelationshipState.NOT_FOLLOWING
            )
            if not privacy_policy.can_mention(
                privacy_policy.privacy_from_user(user),
                relationship,
                blocked=user.id in blocked_ids
            ):
                logger.debug(f"Mention of {user.id} dropped by privacy settings")
                continue

            payloads.append(MentionNotification(
                recipient_id=user.id,
                actor_id=actor_id,
                entity_id=video_id,
                text=text
            ))

        return NotificationService.create_batch(db, payloads)

    @staticmethod
    def create_comment(
        db: Session,
        actor_id: UUID,
        video_id: UUID,
        text: Optional[str],
        parent_id: Optional[UUID] = None
    ) -> Comment:
        """Create a comment or reply, notify the video owner and mentioned users"""
        cleaned = CommentService._clean_text(text)
        video = CommentService._get_video(db, video_id)
        owner = video.owner

        if parent_id:
            CommentService._check_parent(db, video_id, parent_id)

        CommentService._check_comment_permission(db, actor_id, owner)

        try:
            comment = Comment(
                video_id=video_id,
                author_id=actor_id,
                parent_id=parent_id,
                text=cleaned
            )
            db.add(comment)
            db.flush()

            if owner.id != actor_id:
                NotificationService.create(db, CommentNotification(
                    recipient_id=owner.id,
                    actor_id=actor_id,
                    entity_id=video_id,
                    text=cleaned
                ))

            mentions = CommentService._queue_mention_notifications(db, actor_id, video_id, cleaned)
            db.commit()

        except IntegrityError:
            # Parent purged between the check and the insert
            db.rollback()
            raise NotFoundError("Parent comment not found")
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(f"Comment {comment.id} created on video {video_id} ({mentions} mentions notified)")
        db.refresh(comment)
        return comment

    @staticmethod
    def delete_comment(db: Session, actor_id: UUID, comment_id: UUID) -> Tuple[CommentState, UUID]:
        """
        Delete immediately. Returns the resulting state and the video id so
        callers can recount.
        """
        comment = db.query(Comment).options(
            joinedload(Comment.video)
        ).filter(Comment.id == comment_id).first()

        if not comment or comment.is_deleted:
            raise NotFoundError("Comment not found")

        video_id = comment.video_id
        is_author = comment.author_id == actor_id
        is_video_owner = comment.video is not None and comment.video.owner_id == actor_id

        if not is_author and not is_video_owner:
            raise AuthorizationError("Only the author or the video owner can delete this comment")

        try:
            if is_video_owner and not is_author:
                comment.is_deleted = True
                comment.deleted_by = actor_id
                comment.text = REMOVED_PLACEHOLDER
                state = CommentState.REMOVED
            else:
                has_children = db.query(Comment.id).filter(Comment.parent_id == comment.id).first() is not None

                if has_children:
                    # Keep the row so replies stay attached
                    comment.is_deleted = True
                    comment.deleted_by = actor_id
                    comment.text = DELETED_PLACEHOLDER
                    state = CommentState.DELETED
                else:
                    db.delete(comment)
                    state = CommentState.PURGED

            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.info(f"Comment {comment_id} {state.value} by {actor_id}")
        return state, video_id

    @staticmethod
    def count_all(db: Session, video_id: UUID) -> int:
        """Every comment row on the video, soft-deleted ones included"""
        return db.query(func.count(Comment.id)).filter(Comment.video_id == video_id).scalar()

    @staticmethod
    def count_active(db: Session, video_id: UUID) -> int:
        return db.query(func.count(Comment.id)).filter(
            Comment.video_id == video_id,
            Comment.is_deleted.is_(False)
        ).scalar()

    @staticmethod
    def _like_stats(
        db: Session,
        comment_ids: List[UUID],
        viewer_id: Optional[UUID]
    ) -> Tuple[Dict[UUID, int], Set[UUID]]:
        if not comment_ids:
            return {}, set()

        counts = dict(
            db.query(CommentLike.comment_id, func.count(CommentLike.id)).filter(
                CommentLike.comment_id.in_(comment_ids)
            ).group_by(CommentLike.comment_id).all()
        )

        liked = set()
        if viewer_id:
            liked = {
                row.comment_id for row in db.query(CommentLike.comment_id).filter(
                    CommentLike.comment_id.in_(comment_ids),
                    CommentLike.user_id == viewer_id
                )
            }

        return counts, liked

    @staticmethod
    def to_response(comment: Comment, like_count: int = 0, is_liked: bool = False) -> CommentResponse:
        author = comment.author
        return CommentResponse(
            id=comment.id,
            video_id=comment.video_id,
            author=UserSummary(
                id=comment.author_id,
                display_name=author.display_name if author else "Unknown User",
                username=author.username if author else None,
                avatar_url=author.avatar_url if author else None
            ),
            text=comment.text,
            created_at=comment.created_at,
            parent_id=comment.parent_id,
            like_count=like_count,
            is_liked=is_liked,
            is_deleted=bool(comment.is_deleted),
            deleted_by=comment.deleted_by
        )

    @staticmethod
    def list_comments(
        db: Session,
        video_id: UUID,
        limit: int = 20,
        skip: int = 0,
        viewer_id: Optional[UUID] = None
    ) -> Tuple[List[CommentResponse], int, bool]:
        """
        Flat page of comments, newest first. Callers rebuild the tree by
        parent_id (see build_thread). total_count includes soft-deleted rows
        so that paging stays consistent.
        """
        comments = db.query(Comment).options(
            joinedload(Comment.author)
        ).filter(
            Comment.video_id == video_id
        ).order_by(
            desc(Comment.created_at)
        ).offset(skip).limit(limit).all()

        total_count = CommentService.count_all(db, video_id)

        counts, liked = CommentService._like_stats(db, [c.id for c in comments], viewer_id)
        rows = [
            CommentService.to_response(c, counts.get(c.id, 0), c.id in liked)
            for c in comments
        ]

        return rows, total_count, skip + len(comments) < total_count

    @staticmethod
    def get_comment(db: Session, comment_id: UUID, viewer_id: Optional[UUID] = None) -> CommentResponse:
        comment = db.query(Comment).options(
            joinedload(Comment.author)
        ).filter(Comment.id == comment_id).first()

        if not comment:
            raise NotFoundError("Comment not found")

        counts, liked = CommentService._like_stats(db, [comment.id], viewer_id)
        return CommentService.to_response(comment, counts.get(comment.id, 0), comment.id in liked)

    @staticmethod
    def build_thread(rows: List[CommentResponse]) -> List[ThreadedComment]:
        """
        Group a newest-first page into a tree: roots keep recency order,
        replies under each node read oldest first. Replies whose parent is
        not on the page are shown as roots.
        """
        nodes = {row.id: ThreadedComment(**row.model_dump()) for row in rows}

        roots = []
        for row in rows:
            node = nodes[row.id]
            parent = nodes.get(row.parent_id) if row.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent.replies.append(node)

        for node in nodes.values():
            node.replies.sort(key=lambda reply: reply.created_at)

        return roots

    @staticmethod
    def like_text(text: str) -> str:
        snippet = text[:LIKE_SNIPPET_LENGTH]
        if len(text) > LIKE_SNIPPET_LENGTH:
            snippet += "..."
        return f'liked your comment: "{snippet}"'

    @staticmethod
    def _get_like(db: Session, comment_id: UUID, user_id: UUID) -> Optional[CommentLike]:
        return db.query(CommentLike).filter(
            CommentLike.comment_id == comment_id,
            CommentLike.user_id == user_id
        ).first()

    @staticmethod
    def toggle_like(db: Session, actor_id: UUID, comment_id: UUID) -> Tuple[bool, int]:
        """Like or unlike a comment; returns the new is_liked and like count"""
        comment = db.query(Comment).filter(Comment.id == comment_id).first()
        if not comment or comment.is_deleted:
            raise NotFoundError("Comment not found")

        if comment.author_id != actor_id and SocialService.is_blocked(db, actor_id, comment.author_id):
            raise AuthorizationError("Action not allowed")

        existing = CommentService._get_like(db, comment_id, actor_id)

        try:
            if existing:
                db.delete(existing)
                is_liked = False
            else:
                db.add(CommentLike(comment_id=comment_id, user_id=actor_id))
                db.flush()
                if comment.author_id != actor_id:
                    NotificationService.create(db, CommentLikeNotification(
                        recipient_id=comment.author_id,
                        actor_id=actor_id,
                        entity_id=comment.video_id,
                        text=CommentService.like_text(comment.text)
                    ))
                is_liked = True
            db.commit()

        except IntegrityError:
            # Liked concurrently by the same user
            db.rollback()
            is_liked = True
        except SQLAlchemyError:
            db.rollback()
            raise

        like_count = db.query(func.count(CommentLike.id)).filter(
            CommentLike.comment_id == comment_id
        ).scalar()

        return is_liked, like_count
