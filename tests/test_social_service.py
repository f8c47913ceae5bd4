from datetime import datetime, timedelta

import pytest

from app.core.exceptions import AuthorizationError, NotFoundError
from app.models.social import Follow, FollowRequest, Block, Notification
from app.schemas.social import RelationshipState, FollowRequestStatus, PrivacySettingsUpdate
from app.services.social_service import SocialService


def _notifications(db, type_, recipient_id):
    return db.query(Notification).filter(
        Notification.type == type_,
        Notification.recipient_id == recipient_id
    ).all()


def test_follow_twice_creates_one_edge_and_one_notification(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", require_follow_approval=False)

    first = SocialService.request_follow(db, alice.id, bob.id)
    second = SocialService.request_follow(db, alice.id, bob.id)

    assert first == (RelationshipState.FOLLOWING, True)
    assert second == (RelationshipState.FOLLOWING, False)
    assert db.query(Follow).count() == 1
    assert len(_notifications(db, "follow", bob.id)) == 1

    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 1
    assert bob.followers_count == 1


def test_follow_approval_target_gets_pending_request(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", require_follow_approval=True)

    state, created = SocialService.request_follow(db, alice.id, bob.id)

    assert state == RelationshipState.REQUESTED
    assert created is True
    assert db.query(Follow).count() == 0

    requests = db.query(FollowRequest).all()
    assert len(requests) == 1
    assert requests[0].status == "pending"

    notifications = _notifications(db, "follow_request", bob.id)
    assert len(notifications) == 1
    assert notifications[0].entity_id == requests[0].id
    assert notifications[0].entity_type == "follow_request"


def test_private_account_without_explicit_opt_out_requires_approval(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)

    state, _ = SocialService.request_follow(db, alice.id, bob.id)

    assert state == RelationshipState.REQUESTED


def test_repeated_request_does_not_notify_again(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)

    SocialService.request_follow(db, alice.id, bob.id)
    state, created = SocialService.request_follow(db, alice.id, bob.id)

    assert state == RelationshipState.REQUESTED
    assert created is False
    assert db.query(FollowRequest).count() == 1
    assert len(_notifications(db, "follow_request", bob.id)) == 1


def test_cancel_after_following_decrements_both_counters(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    SocialService.request_follow(db, alice.id, bob.id)

    previous = SocialService.cancel_follow(db, alice.id, bob.id)

    assert previous == RelationshipState.FOLLOWING
    assert db.query(Follow).count() == 0
    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 0
    assert bob.followers_count == 0

    # Second cancel is a no-op and never pushes counters below zero
    assert SocialService.cancel_follow(db, alice.id, bob.id) == RelationshipState.NOT_FOLLOWING
    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 0
    assert bob.followers_count == 0


def test_cancel_never_makes_counters_negative(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    # Edge present but counters already drifted to zero
    db.add(Follow(follower_id=alice.id, following_id=bob.id))
    db.commit()

    SocialService.cancel_follow(db, alice.id, bob.id)

    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 0
    assert bob.followers_count == 0


def test_cancel_withdraws_pending_request_without_notifying(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    notifications_before = db.query(Notification).count()

    previous = SocialService.cancel_follow(db, alice.id, bob.id)

    assert previous == RelationshipState.REQUESTED
    assert db.query(FollowRequest).count() == 0
    assert db.query(Notification).count() == notifications_before


@pytest.mark.parametrize("blocker", ["actor", "target"])
def test_block_in_either_direction_forbids_follow(db, make_user, blocker):
    alice = make_user("alice")
    bob = make_user("bob")
    if blocker == "actor":
        db.add(Block(blocker_id=alice.id, blocked_id=bob.id))
    else:
        db.add(Block(blocker_id=bob.id, blocked_id=alice.id))
    db.commit()

    with pytest.raises(AuthorizationError):
        SocialService.request_follow(db, alice.id, bob.id)

    assert db.query(Follow).count() == 0
    assert db.query(FollowRequest).count() == 0


def test_block_does_not_remove_existing_follow(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    SocialService.request_follow(db, alice.id, bob.id)

    SocialService.block_user(db, bob.id, alice.id)

    assert SocialService.is_following(db, alice.id, bob.id)


def test_follow_self_is_forbidden(db, make_user):
    alice = make_user("alice")

    with pytest.raises(AuthorizationError):
        SocialService.request_follow(db, alice.id, alice.id)


def test_follow_missing_user(db, make_user):
    import uuid
    alice = make_user("alice")

    with pytest.raises(NotFoundError):
        SocialService.request_follow(db, alice.id, uuid.uuid4())


def test_approve_creates_edge_and_notifies_requester(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    request = db.query(FollowRequest).one()

    approved = SocialService.approve_request(db, bob.id, request.id)

    assert approved.status == FollowRequestStatus.ACCEPTED.value
    assert SocialService.is_following(db, alice.id, bob.id)
    assert SocialService.get_relationship_state(db, alice.id, bob.id) == RelationshipState.FOLLOWING
    assert len(_notifications(db, "follow_accepted", alice.id)) == 1
    db.refresh(bob)
    assert bob.followers_count == 1
    # The request row is kept
    assert db.query(FollowRequest).count() == 1


def test_only_recipient_can_approve(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    mallory = make_user("mallory")
    SocialService.request_follow(db, alice.id, bob.id)
    request = db.query(FollowRequest).one()

    with pytest.raises(AuthorizationError):
        SocialService.approve_request(db, mallory.id, request.id)

    assert db.query(Follow).count() == 0


def test_approve_twice_is_not_found(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    request = db.query(FollowRequest).one()
    SocialService.approve_request(db, bob.id, request.id)

    with pytest.raises(NotFoundError):
        SocialService.approve_request(db, bob.id, request.id)

    db.refresh(bob)
    assert bob.followers_count == 1


def test_reject_then_rerequest_reopens_same_row(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    request = db.query(FollowRequest).one()
    request_id = request.id

    rejected = SocialService.reject_request(db, bob.id, request_id)
    assert rejected.status == FollowRequestStatus.REJECTED.value

    old_timestamp = datetime.utcnow() - timedelta(days=3)
    request.created_at = old_timestamp
    db.commit()

    state, created = SocialService.request_follow(db, alice.id, bob.id)

    assert state == RelationshipState.REQUESTED
    assert created is True
    requests = db.query(FollowRequest).all()
    assert len(requests) == 1
    assert requests[0].id == request_id
    assert requests[0].status == "pending"
    assert requests[0].created_at > old_timestamp
    # One from the first request, exactly one new for the re-request
    assert len(_notifications(db, "follow_request", bob.id)) == 2


def test_accepted_then_unfollowed_rerequest_goes_back_to_pending(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    SocialService.approve_request(db, bob.id, db.query(FollowRequest).one().id)
    SocialService.cancel_follow(db, alice.id, bob.id)

    state, _ = SocialService.request_follow(db, alice.id, bob.id)

    assert state == RelationshipState.REQUESTED
    assert db.query(FollowRequest).one().status == "pending"
    assert db.query(Follow).count() == 0


def test_pending_requests_listed_newest_first(db, make_user):
    bob = make_user("bob", is_public=False)
    alice = make_user("alice")
    carol = make_user("carol")
    SocialService.request_follow(db, alice.id, bob.id)
    SocialService.request_follow(db, carol.id, bob.id)
    older = db.query(FollowRequest).filter(FollowRequest.requester_id == alice.id).one()
    older.created_at = datetime.utcnow() - timedelta(hours=1)
    db.commit()

    pending = SocialService.list_pending_requests(db, bob.id)

    assert [r.requester_id for r in pending] == [carol.id, alice.id]


def test_follow_stats_and_lists(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    SocialService.request_follow(db, alice.id, bob.id)
    SocialService.request_follow(db, carol.id, bob.id)

    stats = SocialService.get_follow_stats(db, bob.id)
    followers, total = SocialService.get_followers(db, bob.id)
    following, following_total = SocialService.get_following(db, alice.id)

    assert stats.followers_count == 2
    assert stats.following_count == 0
    assert total == 2
    assert {f.username for f in followers} == {"alice", "carol"}
    assert following_total == 1
    assert following[0].id == bob.id


def test_block_and_unblock(db, make_user):
    alice = make_user("alice")
    bob = make_user("bob")

    assert SocialService.block_user(db, alice.id, bob.id) is True
    assert SocialService.block_user(db, alice.id, bob.id) is False
    assert SocialService.is_blocked(db, bob.id, alice.id)

    assert SocialService.unblock_user(db, alice.id, bob.id) is True
    assert not SocialService.is_blocked(db, alice.id, bob.id)
    assert SocialService.unblock_user(db, alice.id, bob.id) is False


def test_update_privacy_settings_only_touches_sent_fields(db, make_user):
    alice = make_user("alice")

    updated = SocialService.update_privacy_settings(
        db, alice.id, PrivacySettingsUpdate(commentPermission="followers", isPublic=False)
    )

    assert updated.comment_permission == "followers"
    assert updated.is_public is False
    assert updated.mention_permission == "everyone"
    assert updated.require_follow_approval is None


def _miss_first_follow_check(monkeypatch):
    """Make the first is_following call miss, as if a concurrent request inserted the edge right after it"""
    real_is_following = SocialService.is_following
    calls = []

    def is_following(db, follower_id, following_id):
        calls.append((follower_id, following_id))
        if len(calls) == 1:
            return False
        return real_is_following(db, follower_id, following_id)

    monkeypatch.setattr(SocialService, "is_following", staticmethod(is_following))


def test_concurrent_follow_collapses_into_existing_edge(db, make_user, monkeypatch):
    alice = make_user("alice")
    bob = make_user("bob")
    SocialService.request_follow(db, alice.id, bob.id)
    _miss_first_follow_check(monkeypatch)

    result = SocialService.request_follow(db, alice.id, bob.id)

    assert result == (RelationshipState.FOLLOWING, False)
    assert db.query(Follow).count() == 1
    assert len(_notifications(db, "follow", bob.id)) == 1
    db.refresh(alice)
    db.refresh(bob)
    assert alice.following_count == 1
    assert bob.followers_count == 1


def test_approve_when_edge_appeared_concurrently(db, make_user, monkeypatch):
    alice = make_user("alice")
    bob = make_user("bob", is_public=False)
    SocialService.request_follow(db, alice.id, bob.id)
    request_id = db.query(FollowRequest).one().id
    # Edge written by a concurrent approval, counters already bumped
    db.add(Follow(follower_id=alice.id, following_id=bob.id))
    bob.followers_count = 1
    alice.following_count = 1
    db.commit()
    _miss_first_follow_check(monkeypatch)

    approved = SocialService.approve_request(db, bob.id, request_id)

    assert approved.status == FollowRequestStatus.ACCEPTED.value
    assert db.query(Follow).count() == 1
    assert _notifications(db, "follow_accepted", alice.id) == []
    db.refresh(bob)
    assert bob.followers_count == 1
