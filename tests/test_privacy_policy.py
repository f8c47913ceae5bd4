import pytest

from app.schemas.social import PrivacySettings, RelationshipState
from app.services import privacy_policy


@pytest.mark.parametrize("is_public,require_follow_approval,expected", [
    (True, None, False),
    (True, False, False),
    (True, True, True),
    (False, None, True),
    (False, True, True),
    (False, False, False),
])
def test_requires_approval(is_public, require_follow_approval, expected):
    privacy = PrivacySettings(is_public=is_public, require_follow_approval=require_follow_approval)
    assert privacy_policy.requires_approval(privacy) is expected


def test_block_denies_everything():
    decision = privacy_policy.evaluate(PrivacySettings(), RelationshipState.FOLLOWING, blocked=True)

    assert decision.allow_follow is False
    assert decision.allow_comment is False
    assert decision.allow_mention is False


def test_everyone_allows_strangers():
    decision = privacy_policy.evaluate(PrivacySettings(), RelationshipState.NOT_FOLLOWING, blocked=False)

    assert decision.allow_follow is True
    assert decision.allow_comment is True
    assert decision.allow_mention is True
    assert decision.requires_approval is False


def test_followers_only_comments():
    privacy = PrivacySettings(comment_permission="followers")

    assert not privacy_policy.can_comment(privacy, RelationshipState.NOT_FOLLOWING, blocked=False)
    # A pending request is not enough
    assert not privacy_policy.can_comment(privacy, RelationshipState.REQUESTED, blocked=False)
    assert privacy_policy.can_comment(privacy, RelationshipState.FOLLOWING, blocked=False)


def test_no_one_allows_only_the_owner():
    privacy = PrivacySettings(comment_permission="no_one")

    assert not privacy_policy.can_comment(privacy, RelationshipState.FOLLOWING, blocked=False)
    assert privacy_policy.can_comment(privacy, RelationshipState.NOT_FOLLOWING, blocked=False, is_self=True)


def test_followers_only_mentions():
    privacy = PrivacySettings(mention_permission="followers")

    assert not privacy_policy.can_mention(privacy, RelationshipState.NOT_FOLLOWING, blocked=False)
    assert privacy_policy.can_mention(privacy, RelationshipState.FOLLOWING, blocked=False)
    assert not privacy_policy.can_mention(privacy, RelationshipState.FOLLOWING, blocked=True)


def test_self_cannot_follow():
    decision = privacy_policy.evaluate(PrivacySettings(), RelationshipState.NOT_FOLLOWING, blocked=False, is_self=True)

    assert decision.allow_follow is False
    assert decision.allow_comment is True


def test_privacy_from_user_defaults(make_user):
    user = make_user("quiet", is_public=False)

    privacy = privacy_policy.privacy_from_user(user)

    assert privacy.is_public is False
    assert privacy.require_follow_approval is None
    assert privacy.comment_permission == "everyone"
    assert privacy_policy.requires_approval(privacy) is True
