from sqlalchemy.orm import Session, joinedload
from sqlalchemy import insert, desc, func
from typing import List, Tuple
from uuid import UUID
import logging

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.models.social import Notification
from app.schemas.notification import NotificationPayload

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Notification fan-out.

    create / create_batch only flush into the caller's transaction so that a
    notification is committed together with the action that caused it.
    """

    @staticmethod
    def create(db: Session, payload: NotificationPayload) -> Notification:
        """Create a single-recipient notification"""
        notification = Notification(**payload.to_row())
        db.add(notification)
        db.flush()

        logger.info(f"Notification {payload.type} queued for {payload.recipient_id}")
        return notification

    @staticmethod
    def create_batch(db: Session, payloads: List[NotificationPayload]) -> int:
        """Insert all notifications with one bulk INSERT"""
        if not payloads:
            return 0

        db.execute(insert(Notification), [payload.to_row() for payload in payloads])

        logger.info(f"Batch of {len(payloads)} notifications queued")
        return len(payloads)

    @staticmethod
    def list_for_user(db: Session, user_id: UUID, limit: int = None) -> Tuple[List[Notification], int]:
        """Newest notifications for a user along with their unread count"""
        limit = limit or settings.NOTIFICATION_LIST_LIMIT

        notifications = db.query(Notification).options(
            joinedload(Notification.actor)
        ).filter(
            Notification.recipient_id == user_id
        ).order_by(
            desc(Notification.created_at)
        ).limit(limit).all()

        return notifications, NotificationService.unread_count(db, user_id)

    @staticmethod
    def unread_count(db: Session, user_id: UUID) -> int:
        return db.query(func.count(Notification.id)).filter(
            Notification.recipient_id == user_id,
            Notification.read.is_(False)
        ).scalar()

    @staticmethod
    def mark_read(db: Session, user_id: UUID, notification_ids: List[UUID]) -> int:
        """Mark notifications read, touching only rows addressed to the user"""
        try:
            updated = db.query(Notification).filter(
                Notification.id.in_(notification_ids),
                Notification.recipient_id == user_id
            ).update({Notification.read: True}, synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise

        return updated

    @staticmethod
    def delete(db: Session, user_id: UUID, notification_id: UUID) -> None:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.recipient_id == user_id
        ).first()

        if not notification:
            raise NotFoundError("Notification not found")

        try:
            db.delete(notification)
            db.commit()
        except Exception:
            db.rollback()
            raise
