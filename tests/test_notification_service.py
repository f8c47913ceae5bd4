import uuid

import pytest
from pydantic import TypeAdapter
from sqlalchemy import event

from app.core.exceptions import NotFoundError
from app.models.social import Notification
from app.schemas.notification import (
    NotificationPayload, FollowNotification, MentionNotification, make_snippet
)
from app.services.notification_service import NotificationService


def test_payload_union_picks_variant_by_type():
    recipient, actor, video = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()

    payload = TypeAdapter(NotificationPayload).validate_python({
        "type": "mention",
        "recipientId": str(recipient),
        "actorId": str(actor),
        "entityId": str(video),
        "text": "x" * 70,
    })

    assert isinstance(payload, MentionNotification)
    row = payload.to_row()
    assert row["entity_type"] == "video"
    assert row["text"] == "x" * 50
    assert row["read"] is False


def test_follow_payload_has_no_text():
    payload = FollowNotification(recipient_id=uuid.uuid4(), actor_id=uuid.uuid4(), entity_id=uuid.uuid4())

    row = payload.to_row()

    assert row["type"] == "follow"
    assert row["entity_type"] == "user"
    assert row["text"] is None


def test_make_snippet_strips_before_truncating():
    assert make_snippet("   short  ") == "short"
    assert len(make_snippet("y" * 200)) == 50


def test_create_batch_uses_single_insert(db, make_user):
    actor = make_user("actor")
    recipients = [make_user(f"user{i}") for i in range(3)]
    video_id = uuid.uuid4()
    payloads = [
        MentionNotification(recipient_id=r.id, actor_id=actor.id, entity_id=video_id, text="hello")
        for r in recipients
    ]

    inserts = []

    def count_inserts(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("INSERT INTO NOTIFICATIONS"):
            inserts.append(statement)

    engine = db.get_bind()
    event.listen(engine, "before_cursor_execute", count_inserts)
    try:
        created = NotificationService.create_batch(db, payloads)
        db.commit()
    finally:
        event.remove(engine, "before_cursor_execute", count_inserts)

    assert created == 3
    assert len(inserts) == 1
    assert db.query(Notification).count() == 3


def test_create_batch_with_nothing_to_send(db):
    assert NotificationService.create_batch(db, []) == 0


def test_list_and_unread_count(db, make_user):
    actor = make_user("actor")
    recipient = make_user("recipient")
    for _ in range(2):
        NotificationService.create(db, FollowNotification(
            recipient_id=recipient.id, actor_id=actor.id, entity_id=actor.id
        ))
    db.commit()

    notifications, unread = NotificationService.list_for_user(db, recipient.id)

    assert len(notifications) == 2
    assert unread == 2
    assert notifications[0].actor.username == "actor"


def test_mark_read_only_touches_own_notifications(db, make_user):
    actor = make_user("actor")
    recipient = make_user("recipient")
    notification = NotificationService.create(db, FollowNotification(
        recipient_id=recipient.id, actor_id=actor.id, entity_id=actor.id
    ))
    db.commit()

    assert NotificationService.mark_read(db, actor.id, [notification.id]) == 0
    assert NotificationService.unread_count(db, recipient.id) == 1

    assert NotificationService.mark_read(db, recipient.id, [notification.id]) == 1
    assert NotificationService.unread_count(db, recipient.id) == 0


def test_delete_notification(db, make_user):
    actor = make_user("actor")
    recipient = make_user("recipient")
    notification = NotificationService.create(db, FollowNotification(
        recipient_id=recipient.id, actor_id=actor.id, entity_id=actor.id
    ))
    db.commit()

    with pytest.raises(NotFoundError):
        NotificationService.delete(db, actor.id, notification.id)

    NotificationService.delete(db, recipient.id, notification.id)
    assert db.query(Notification).count() == 0

    with pytest.raises(NotFoundError):
        NotificationService.delete(db, recipient.id, notification.id)
