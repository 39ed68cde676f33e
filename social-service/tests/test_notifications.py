import pytest

from social_service.application.engine import build_memory_engine
from social_service.domain.models import (
    DEFAULT_PREFERENCE_FLAGS,
    NotificationPayload,
    NotificationType,
)
from social_service.errors import NotFoundError, PermissionDeniedError, ValidationError

from conftest import ALICE, BOB, CAROL, PUBLIC_POST


@pytest.mark.asyncio
async def test_dispatch_skips_self_notification(engine):
    result = await engine.dispatcher.dispatch(ALICE, NotificationType.LIKE, ALICE)

    assert result is None
    assert await engine.unread_notification_count(ALICE) == 0


@pytest.mark.asyncio
async def test_dispatch_creates_notification(engine):
    notification = await engine.dispatcher.dispatch(
        ALICE,
        NotificationType.SYSTEM_ANNOUNCEMENT,
        BOB,
        NotificationPayload(message="welcome", metadata={"campaign": "launch"}),
    )

    assert notification.recipient_id == ALICE
    assert notification.metadata == {"campaign": "launch"}
    assert not notification.read


@pytest.mark.asyncio
async def test_disabled_category_suppresses_notification(engine):
    """A disabled like flag suppresses the notification, not the like"""
    await engine.set_preference(ALICE, ALICE, "like", False)

    await engine.record_like(BOB, PUBLIC_POST)

    assert (await engine.counters(PUBLIC_POST)).likes_count == 1
    assert (await engine.list_notifications(ALICE)).notifications == []

    await engine.record_comment(BOB, PUBLIC_POST, "still notified")
    types = [n.type for n in (await engine.list_notifications(ALICE)).notifications]
    assert types == [NotificationType.COMMENT]


@pytest.mark.asyncio
async def test_preferences_created_with_defaults(engine, store):
    assert ALICE not in store.preferences

    preference = await engine.get_preferences(ALICE)

    assert preference.flags == DEFAULT_PREFERENCE_FLAGS
    assert preference.flags["push"] is True
    assert preference.flags["email"] is False
    assert ALICE in store.preferences


@pytest.mark.asyncio
async def test_set_preference_changes_one_key(engine):
    preference = await engine.set_preference(BOB, BOB, "email", True)

    assert preference.flags["email"] is True
    assert preference.flags["like"] is True


@pytest.mark.asyncio
async def test_set_preference_rules(engine):
    with pytest.raises(PermissionDeniedError):
        await engine.set_preference(BOB, ALICE, "like", False)
    with pytest.raises(ValidationError):
        await engine.set_preference(ALICE, ALICE, "carrier_pigeon", True)


@pytest.mark.asyncio
async def test_set_preferences_with_unknown_key_writes_nothing(engine):
    with pytest.raises(ValidationError):
        await engine.set_preferences(ALICE, ALICE, {"like": False, "bogus": True})

    preference = await engine.get_preferences(ALICE)
    assert preference.flags["like"] is True


@pytest.mark.asyncio
async def test_set_preferences_changes_several_keys(engine):
    preference = await engine.set_preferences(BOB, BOB, {"like": False, "email": True})

    assert preference.flags["like"] is False
    assert preference.flags["email"] is True
    assert preference.flags["comment"] is True


@pytest.mark.asyncio
async def test_list_notifications_cursor(engine):
    created = []
    for _ in range(5):
        created.append(
            await engine.dispatcher.dispatch(ALICE, NotificationType.SYSTEM_ANNOUNCEMENT, BOB)
        )
    expected = [n.id for n in reversed(created)]

    first = await engine.list_notifications(ALICE, limit=2)
    assert [n.id for n in first.notifications] == expected[:2]
    assert first.has_more

    second = await engine.list_notifications(ALICE, cursor=first.next_cursor, limit=2)
    third = await engine.list_notifications(ALICE, cursor=second.next_cursor, limit=2)

    assert [n.id for n in second.notifications] == expected[2:4]
    assert [n.id for n in third.notifications] == expected[4:]
    assert not third.has_more
    assert third.next_cursor is None


@pytest.mark.asyncio
async def test_mark_read(engine):
    notification = await engine.dispatcher.dispatch(ALICE, NotificationType.LIKE, BOB)
    assert await engine.unread_notification_count(ALICE) == 1

    with pytest.raises(PermissionDeniedError):
        await engine.mark_notification_read(BOB, notification.id)

    read = await engine.mark_notification_read(ALICE, notification.id)
    assert read.read
    assert read.read_at is not None
    assert await engine.unread_notification_count(ALICE) == 0

    again = await engine.mark_notification_read(ALICE, notification.id)
    assert again.read_at == read.read_at

    with pytest.raises(NotFoundError):
        await engine.mark_notification_read(ALICE, 999)


@pytest.mark.asyncio
async def test_mark_all_read_and_unread_filter(engine):
    await engine.dispatcher.dispatch(ALICE, NotificationType.LIKE, BOB)
    await engine.dispatcher.dispatch(ALICE, NotificationType.COMMENT, CAROL)
    await engine.dispatcher.dispatch(BOB, NotificationType.LIKE, CAROL)

    assert len((await engine.list_notifications(ALICE, unread_only=True)).notifications) == 2

    assert await engine.mark_all_read(ALICE) == 2
    assert await engine.mark_all_read(ALICE) == 0

    assert (await engine.list_notifications(ALICE, unread_only=True)).notifications == []
    assert await engine.unread_notification_count(BOB) == 1


@pytest.mark.asyncio
async def test_unread_count_cache_invalidated(store, redis_cache):
    engine = build_memory_engine(store, cache=redis_cache)

    assert await engine.unread_notification_count(ALICE) == 0
    assert await redis_cache.get_unread_count(ALICE) == 0

    await engine.record_like(BOB, PUBLIC_POST)
    assert await redis_cache.get_unread_count(ALICE) is None
    assert await engine.unread_notification_count(ALICE) == 1

    await engine.mark_all_read(ALICE)
    assert await engine.unread_notification_count(ALICE) == 0


@pytest.mark.asyncio
async def test_dispatch_failure_does_not_fail_command(engine, monkeypatch):
    async def broken_insert(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    original_insert = engine.dispatcher.repo.insert
    monkeypatch.setattr(engine.dispatcher.repo, "insert", broken_insert)

    await engine.record_like(BOB, PUBLIC_POST)

    assert (await engine.counters(PUBLIC_POST)).likes_count == 1
    assert len(engine.bus.failed) == 1

    monkeypatch.setattr(engine.dispatcher.repo, "insert", original_insert)
    assert await engine.bus.retry_failed() == 1
    assert engine.bus.failed == []
    types = [n.type for n in (await engine.list_notifications(ALICE)).notifications]
    assert types == [NotificationType.LIKE]
