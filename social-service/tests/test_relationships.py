import asyncio

import pytest

from social_service.config import settings
from social_service.domain.models import FollowStatus, NotificationType
from social_service.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from conftest import ALICE, BOB, CAROL, DAVE, PRIVATE_POST


async def _notifications(engine, profile_id):
    page = await engine.list_notifications(profile_id)
    return page.notifications


@pytest.mark.asyncio
async def test_follow_public_profile_is_accepted(engine):
    edge = await engine.request_follow(BOB, ALICE)

    assert edge.status == FollowStatus.ACCEPTED
    notifications = await _notifications(engine, ALICE)
    assert [n.type for n in notifications] == [NotificationType.NEW_FOLLOWER]
    assert notifications[0].actor_id == BOB


@pytest.mark.asyncio
async def test_private_profile_flow(engine):
    """Request, accept, then notify the requester only"""
    edge = await engine.request_follow(ALICE, BOB)
    assert edge.status == FollowStatus.PENDING
    assert await _notifications(engine, BOB) == []

    requests, total, has_more = await engine.pending_follow_requests(BOB)
    assert [r.follower_id for r in requests] == [ALICE]
    assert total == 1
    assert not has_more

    accepted = await engine.respond_follow(BOB, ALICE, "accept")
    assert accepted.status == FollowStatus.ACCEPTED
    assert accepted.responded_at is not None

    alice_notifications = await _notifications(engine, ALICE)
    assert len(alice_notifications) == 1
    assert alice_notifications[0].type == NotificationType.FOLLOW_ACCEPTED
    assert alice_notifications[0].actor_id == BOB
    assert await _notifications(engine, BOB) == []

    requests, total, _ = await engine.pending_follow_requests(BOB)
    assert requests == []
    assert total == 0


@pytest.mark.asyncio
async def test_reject_produces_no_notification(engine):
    await engine.request_follow(ALICE, BOB)

    rejected = await engine.respond_follow(BOB, ALICE, "reject")

    assert rejected.status == FollowStatus.REJECTED
    assert await _notifications(engine, ALICE) == []


@pytest.mark.asyncio
async def test_cannot_follow_self(engine):
    with pytest.raises(ValidationError):
        await engine.request_follow(ALICE, ALICE)
    assert await engine.relationship(ALICE, ALICE) is None


@pytest.mark.asyncio
async def test_follow_unknown_profile(engine):
    with pytest.raises(NotFoundError):
        await engine.request_follow(ALICE, 404)


@pytest.mark.asyncio
async def test_duplicate_follow_is_conflict(engine):
    await engine.request_follow(ALICE, BOB)

    with pytest.raises(ConflictError):
        await engine.request_follow(ALICE, BOB)


@pytest.mark.asyncio
async def test_rejected_edge_blocks_new_request_until_removed(engine):
    await engine.request_follow(ALICE, BOB)
    await engine.respond_follow(BOB, ALICE, "reject")

    with pytest.raises(ConflictError):
        await engine.request_follow(ALICE, BOB)

    await engine.remove_follow(BOB, ALICE, BOB)
    edge = await engine.request_follow(ALICE, BOB)
    assert edge.status == FollowStatus.PENDING


@pytest.mark.asyncio
async def test_only_followed_party_can_respond(engine):
    await engine.request_follow(ALICE, BOB)

    with pytest.raises(PermissionDeniedError):
        await engine.respond_follow(CAROL, ALICE, "accept", following_id=BOB)

    edge = await engine.relationship(ALICE, BOB)
    assert edge.status == FollowStatus.PENDING


@pytest.mark.asyncio
async def test_respond_without_pending_request(engine):
    with pytest.raises(NotFoundError):
        await engine.respond_follow(BOB, ALICE, "accept")

    await engine.request_follow(ALICE, BOB)
    await engine.respond_follow(BOB, ALICE, "accept")

    with pytest.raises(NotFoundError):
        await engine.respond_follow(BOB, ALICE, "reject")


@pytest.mark.asyncio
async def test_unknown_decision(engine):
    await engine.request_follow(ALICE, BOB)

    with pytest.raises(ValidationError):
        await engine.respond_follow(BOB, ALICE, "maybe")


@pytest.mark.asyncio
async def test_remove_follow_requires_a_party(engine):
    await engine.request_follow(ALICE, CAROL)

    with pytest.raises(PermissionDeniedError):
        await engine.remove_follow(DAVE, ALICE, CAROL)

    removed = await engine.remove_follow(CAROL, ALICE, CAROL)
    assert removed.follower_id == ALICE
    assert await engine.relationship(ALICE, CAROL) is None

    with pytest.raises(NotFoundError):
        await engine.remove_follow(ALICE, ALICE, CAROL)


@pytest.mark.asyncio
async def test_cancel_pending_request(engine):
    await engine.request_follow(ALICE, BOB)

    await engine.remove_follow(ALICE, ALICE, BOB)

    _, total, _ = await engine.pending_follow_requests(BOB)
    assert total == 0


@pytest.mark.asyncio
async def test_following_limit(engine, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FOLLOWING_LIMIT", 1)
    await engine.request_follow(BOB, ALICE)

    with pytest.raises(ValidationError):
        await engine.request_follow(BOB, CAROL)


@pytest.mark.asyncio
async def test_pending_requests_pagination(engine, store):
    for follower_id in range(10, 15):
        store.add_profile(follower_id)
        await engine.request_follow(follower_id, BOB)

    first, total, has_more = await engine.pending_follow_requests(BOB, page=1, page_size=2)
    assert total == 5
    assert has_more
    assert [edge.follower_id for edge in first] == [14, 13]

    last, _, has_more = await engine.pending_follow_requests(BOB, page=3, page_size=2)
    assert [edge.follower_id for edge in last] == [10]
    assert not has_more


@pytest.mark.asyncio
async def test_follow_status_is_cached_and_invalidated(store, redis_cache):
    from social_service.application.engine import build_memory_engine

    engine = build_memory_engine(store, cache=redis_cache)

    assert await engine.relationships.follow_status(ALICE, BOB) is None
    assert await redis_cache.get_follow_status(ALICE, BOB) == "none"

    await engine.request_follow(ALICE, BOB)
    assert await redis_cache.get_follow_status(ALICE, BOB) is None
    assert await engine.relationships.follow_status(ALICE, BOB) == FollowStatus.PENDING

    await engine.respond_follow(BOB, ALICE, "accept")
    assert await engine.relationships.follow_status(ALICE, BOB) == FollowStatus.ACCEPTED


@pytest.mark.asyncio
async def test_unfollow_during_status_load_does_not_cache_stale_access(store, redis_cache):
    from social_service.application.engine import build_memory_engine

    engine = build_memory_engine(store, cache=redis_cache)
    await engine.request_follow(BOB, ALICE)

    follows = engine.relationships.follows
    original_find = follows.find
    loaded = asyncio.Event()
    release = asyncio.Event()

    async def slow_find(follower_id, following_id):
        edge = await original_find(follower_id, following_id)
        loaded.set()
        await release.wait()
        return edge

    follows.find = slow_find
    reader = asyncio.create_task(engine.can_view(BOB, PRIVATE_POST))
    await loaded.wait()

    follows.find = original_find
    await engine.remove_follow(BOB, BOB, ALICE)
    release.set()

    # The in-flight read answers from the edge it already loaded
    assert await reader is True
    assert await redis_cache.get_follow_status(BOB, ALICE) is None
    assert await engine.can_view(BOB, PRIVATE_POST) is False


@pytest.mark.asyncio
async def test_follow_status_without_races_is_cached(store, redis_cache):
    from social_service.application.engine import build_memory_engine

    engine = build_memory_engine(store, cache=redis_cache)
    await engine.request_follow(BOB, ALICE)

    assert await engine.relationships.follow_status(BOB, ALICE) == FollowStatus.ACCEPTED
    assert await redis_cache.get_follow_status(BOB, ALICE) == "accepted"


async def _small_graph(engine):
    await engine.request_follow(CAROL, ALICE)
    await engine.request_follow(BOB, ALICE)
    await engine.request_follow(ALICE, BOB)
    await engine.respond_follow(BOB, ALICE, "accept")
    await engine.request_follow(DAVE, BOB)


@pytest.mark.asyncio
async def test_followers_lists_accepted_edges_only(engine):
    await _small_graph(engine)

    edges, total, has_more = await engine.followers(ALICE)
    assert [edge.follower_id for edge in edges] == [BOB, CAROL]
    assert total == 2
    assert not has_more

    edges, total, _ = await engine.followers(BOB, viewer_id=BOB)
    assert [edge.follower_id for edge in edges] == [ALICE]
    assert total == 1


@pytest.mark.asyncio
async def test_private_profile_connections_need_accepted_follow(engine):
    await _small_graph(engine)

    with pytest.raises(PermissionDeniedError):
        await engine.followers(BOB, viewer_id=CAROL)
    with pytest.raises(PermissionDeniedError):
        await engine.following(BOB)
    with pytest.raises(PermissionDeniedError):
        await engine.followers(BOB, viewer_id=DAVE)

    edges, _, _ = await engine.following(BOB, viewer_id=ALICE)
    assert [edge.following_id for edge in edges] == [ALICE]


@pytest.mark.asyncio
async def test_following_paginates(engine):
    await _small_graph(engine)
    await engine.request_follow(ALICE, CAROL)

    edges, total, has_more = await engine.following(ALICE, page=1, page_size=1)
    assert [edge.following_id for edge in edges] == [CAROL]
    assert total == 2
    assert has_more


@pytest.mark.asyncio
async def test_follow_stats(engine):
    await _small_graph(engine)

    stats = await engine.follow_stats(BOB, viewer_id=BOB)
    assert (stats.follower_count, stats.following_count) == (1, 1)
    assert stats.pending_requests_count == 1

    stats = await engine.follow_stats(BOB, viewer_id=CAROL)
    assert stats.follower_count == 1
    assert stats.pending_requests_count is None

    with pytest.raises(NotFoundError):
        await engine.follow_stats(999)
    with pytest.raises(NotFoundError):
        await engine.followers(999)
