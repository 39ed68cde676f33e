import pytest

from social_service.config import settings
from social_service.domain.models import NotificationType, TagStatus, Visibility
from social_service.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from conftest import ALICE, BOB, CAROL, DAVE, PUBLIC_POST, PRIVATE_POST, BOB_POST


@pytest.mark.asyncio
async def test_tag_notifies_tagged_profile(engine):
    tag = await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)

    assert tag.status == TagStatus.ACTIVE
    notifications = (await engine.list_notifications(CAROL)).notifications
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.TAG
    assert notifications[0].actor_id == ALICE
    assert notifications[0].content_id == PUBLIC_POST
    assert notifications[0].tag_id == tag.id


@pytest.mark.asyncio
async def test_untag_then_retag(engine):
    """Tag, untag, tag again: one row, active, two notifications"""
    first = await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)
    removed = await engine.untag_profile(PUBLIC_POST, CAROL, ALICE)
    assert removed.status == TagStatus.REMOVED
    assert await engine.tags_for_content(PUBLIC_POST) == []

    second = await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)

    assert second.id == first.id
    assert second.status == TagStatus.ACTIVE
    tags = await engine.tags_for_content(PUBLIC_POST)
    assert [t.tagged_profile_id for t in tags] == [CAROL]
    types = [n.type for n in (await engine.list_notifications(CAROL)).notifications]
    assert types == [NotificationType.TAG, NotificationType.TAG]


@pytest.mark.asyncio
async def test_duplicate_active_tag_is_conflict(engine):
    await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)

    with pytest.raises(ConflictError):
        await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)


@pytest.mark.asyncio
async def test_only_owner_can_tag(engine):
    with pytest.raises(PermissionDeniedError):
        await engine.tag_profile(PUBLIC_POST, CAROL, BOB)


@pytest.mark.asyncio
async def test_tag_unknown_profile_or_content(engine):
    with pytest.raises(NotFoundError):
        await engine.tag_profile(PUBLIC_POST, 404, ALICE)
    with pytest.raises(NotFoundError):
        await engine.tag_profile(999, CAROL, ALICE)


@pytest.mark.asyncio
async def test_self_tag_is_silent(engine):
    await engine.tag_profile(PUBLIC_POST, ALICE, ALICE)

    assert (await engine.list_notifications(ALICE)).notifications == []


@pytest.mark.asyncio
async def test_self_tag_can_be_disabled(engine, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_SELF_TAG", False)

    with pytest.raises(ValidationError):
        await engine.tag_profile(PUBLIC_POST, ALICE, ALICE)


@pytest.mark.asyncio
async def test_untag_permissions(engine):
    await engine.tag_profile(PUBLIC_POST, CAROL, ALICE)

    with pytest.raises(PermissionDeniedError):
        await engine.untag_profile(PUBLIC_POST, CAROL, DAVE)

    await engine.untag_profile(PUBLIC_POST, CAROL, CAROL)

    with pytest.raises(NotFoundError):
        await engine.untag_profile(PUBLIC_POST, CAROL, CAROL)


@pytest.mark.asyncio
async def test_tagged_content_filtered_for_viewer(engine):
    await engine.tag_profile(PUBLIC_POST, DAVE, ALICE)
    await engine.tag_profile(PRIVATE_POST, DAVE, ALICE)
    await engine.tag_profile(BOB_POST, DAVE, BOB)

    own, has_more = await engine.tagged_content(DAVE)
    assert {c.id for c in own} == {PUBLIC_POST, PRIVATE_POST, BOB_POST}
    assert not has_more

    seen_by_carol, _ = await engine.tagged_content(DAVE, viewer_id=CAROL)
    assert [c.id for c in seen_by_carol] == [PUBLIC_POST]

    await engine.request_follow(CAROL, ALICE)
    seen_by_carol, _ = await engine.tagged_content(DAVE, viewer_id=CAROL)
    assert {c.id for c in seen_by_carol} == {PUBLIC_POST, PRIVATE_POST}


@pytest.mark.asyncio
async def test_tagged_content_pagination(engine, store):
    for content_id in range(300, 305):
        store.add_content(content_id, ALICE)
        await engine.tag_profile(content_id, CAROL, ALICE)

    first, has_more = await engine.tagged_content(CAROL, page=1, page_size=3)
    assert len(first) == 3
    assert has_more

    rest, has_more = await engine.tagged_content(CAROL, page=2, page_size=3)
    assert len(rest) == 2
    assert not has_more
    assert {c.id for c in first + rest} == set(range(300, 305))


@pytest.mark.asyncio
async def test_tags_for_private_content_require_access(engine):
    await engine.tag_profile(BOB_POST, DAVE, BOB)

    with pytest.raises(PermissionDeniedError):
        await engine.tags_for_content(BOB_POST, viewer_id=CAROL)

    tags = await engine.tags_for_content(BOB_POST, viewer_id=DAVE)
    assert [t.tagged_profile_id for t in tags] == [DAVE]


@pytest.mark.asyncio
async def test_tagged_content_pages_are_filled_past_hidden_items(engine, store):
    for content_id in range(300, 304):
        store.add_content(content_id, ALICE, Visibility.PUBLIC)
        await engine.tag_profile(content_id, CAROL, ALICE)
    for content_id in range(310, 313):
        store.add_content(content_id, ALICE, Visibility.PRIVATE)
        await engine.tag_profile(content_id, CAROL, ALICE)

    first, has_more = await engine.tagged_content(CAROL, viewer_id=DAVE, page=1, page_size=2)
    assert len(first) == 2
    assert has_more

    rest, has_more = await engine.tagged_content(CAROL, viewer_id=DAVE, page=2, page_size=2)
    assert len(rest) == 2
    assert not has_more
    assert {c.id for c in first + rest} == set(range(300, 304))
