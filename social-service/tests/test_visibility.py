import pytest

from social_service.domain.models import FollowStatus, Visibility
from social_service.domain.visibility import (
    VisibilityReason,
    can_view,
    needs_relationship,
    resolve,
)
from social_service.errors import NotFoundError

from conftest import ALICE, BOB, CAROL, DAVE, PUBLIC_POST, PRIVATE_POST, BOB_POST


def test_owner_always_sees_own_content():
    decision = resolve(ALICE, ALICE, Visibility.PRIVATE)
    assert decision.allowed
    assert decision.reason == VisibilityReason.OWN_CONTENT


def test_public_content_visible_to_anonymous_viewer():
    decision = resolve(None, ALICE, Visibility.PUBLIC)
    assert decision
    assert decision.reason == VisibilityReason.PUBLIC


def test_anonymous_viewer_denied_private_content():
    assert not can_view(None, ALICE, Visibility.PRIVATE, FollowStatus.ACCEPTED, True)


@pytest.mark.parametrize(
    "follow_status, allowed",
    [
        (None, False),
        (FollowStatus.PENDING, False),
        (FollowStatus.REJECTED, False),
        (FollowStatus.ACCEPTED, True),
    ],
)
def test_private_content_requires_accepted_follow(follow_status, allowed):
    assert can_view(BOB, ALICE, Visibility.PRIVATE, follow_status) is allowed


def test_tagged_viewer_may_see_private_content():
    decision = resolve(BOB, ALICE, Visibility.PRIVATE, None, viewer_is_tagged=True)
    assert decision.allowed
    assert decision.reason == VisibilityReason.TAGGED


def test_follow_rule_decides_before_tag_rule():
    decision = resolve(BOB, ALICE, Visibility.PRIVATE, FollowStatus.ACCEPTED, viewer_is_tagged=True)
    assert decision.reason == VisibilityReason.FOLLOWING


def test_denied_reason_is_not_following():
    assert resolve(BOB, ALICE, "private").reason == VisibilityReason.NOT_FOLLOWING


def test_needs_relationship_only_for_other_viewers_of_private_content():
    assert needs_relationship(BOB, ALICE, Visibility.PRIVATE)
    assert not needs_relationship(ALICE, ALICE, Visibility.PRIVATE)
    assert not needs_relationship(BOB, ALICE, Visibility.PUBLIC)
    assert not needs_relationship(None, ALICE, Visibility.PRIVATE)


@pytest.mark.asyncio
async def test_can_view_loads_follow_state(engine):
    assert await engine.can_view(CAROL, PUBLIC_POST)
    assert not await engine.can_view(CAROL, PRIVATE_POST)

    await engine.request_follow(CAROL, ALICE)  # Alice is public, accepted at once

    assert await engine.can_view(CAROL, PRIVATE_POST)


@pytest.mark.asyncio
async def test_pending_follow_does_not_grant_access(engine):
    await engine.request_follow(ALICE, BOB)

    assert not await engine.can_view(ALICE, BOB_POST)


@pytest.mark.asyncio
async def test_revoked_follow_removes_access(engine):
    await engine.request_follow(ALICE, BOB)
    await engine.respond_follow(BOB, ALICE, "accept")
    assert await engine.can_view(ALICE, BOB_POST)

    await engine.remove_follow(ALICE, ALICE, BOB)

    assert not await engine.can_view(ALICE, BOB_POST)


@pytest.mark.asyncio
async def test_tagged_profile_sees_private_content(engine):
    await engine.tag_profile(BOB_POST, DAVE, BOB)

    assert await engine.can_view(DAVE, BOB_POST)

    await engine.untag_profile(BOB_POST, DAVE, DAVE)

    assert not await engine.can_view(DAVE, BOB_POST)


@pytest.mark.asyncio
async def test_can_view_missing_content(engine):
    with pytest.raises(NotFoundError):
        await engine.can_view(ALICE, 999)
