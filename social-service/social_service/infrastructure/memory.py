"""
In-memory store - repository implementations without a database

Used by the test-suite and by STORAGE_BACKEND=memory for local runs. Method
bodies never await, so each call is atomic with respect to other coroutines
on the event loop, mirroring the single-statement atomicity of the
PostgreSQL repositories.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from itertools import count
from typing import Optional, List, Dict, Tuple, Iterable, Iterator

from ..domain.models import (
    Profile,
    Visibility,
    FollowEdge,
    FollowStatus,
    Content,
    ContentKind,
    ContentCounters,
    Fact,
    FactType,
    Tag,
    TagStatus,
    NotificationPreference,
    Notification,
    NotificationType,
    NotificationPayload,
)
from ..domain.repositories import (
    IProfileRepository,
    IContentRepository,
    IFollowRepository,
    IEngagementRepository,
    ITagRepository,
    IPreferenceRepository,
    INotificationRepository,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemoryStore:
    """Tables of the in-memory backend"""

    profiles: Dict[int, Profile] = field(default_factory=dict)
    contents: Dict[int, Content] = field(default_factory=dict)
    follows: Dict[Tuple[int, int], FollowEdge] = field(default_factory=dict)
    likes: Dict[Tuple[int, int], Fact] = field(default_factory=dict)
    saves: Dict[Tuple[int, int], Fact] = field(default_factory=dict)
    comments: Dict[int, Fact] = field(default_factory=dict)
    tags: Dict[Tuple[int, int], Tag] = field(default_factory=dict)
    preferences: Dict[int, NotificationPreference] = field(default_factory=dict)
    notifications: Dict[int, Notification] = field(default_factory=dict)
    sequence: Iterator[int] = field(default_factory=lambda: count(1))

    def next_id(self) -> int:
        return next(self.sequence)

    def add_profile(self, profile_id: int, visibility: Visibility = Visibility.PUBLIC) -> Profile:
        """Register a profile, as the identity provider would at signup"""
        profile = Profile(id=profile_id, visibility=Visibility(visibility))
        self.profiles[profile_id] = profile
        return profile

    def add_content(
        self,
        content_id: int,
        owner_id: int,
        visibility: Visibility = Visibility.PUBLIC,
        kind: ContentKind = ContentKind.POST,
    ) -> Content:
        """Register a content row, as the content store would on creation"""
        content = Content(
            id=content_id,
            owner_id=owner_id,
            visibility=Visibility(visibility),
            kind=ContentKind(kind),
        )
        self.contents[content_id] = content
        return content

    def remove_content(self, content_id: int):
        """Delete a content row and cascade to its facts and tags"""
        self.contents.pop(content_id, None)
        for table in (self.likes, self.saves, self.tags):
            for key in [key for key in table if key[0] == content_id]:
                del table[key]
        for comment_id in [cid for cid, c in self.comments.items() if c.content_id == content_id]:
            del self.comments[comment_id]

    def fact_table(self, fact_type: FactType) -> Dict[Tuple[int, int], Fact]:
        return self.likes if fact_type == FactType.LIKE else self.saves

    def live_counts(self, content_id: int) -> ContentCounters:
        """Literal count of live fact rows of a content item"""
        return ContentCounters(
            likes_count=sum(1 for key in self.likes if key[0] == content_id),
            comments_count=sum(1 for c in self.comments.values() if c.content_id == content_id),
            saves_count=sum(1 for key in self.saves if key[0] == content_id),
        )


class MemoryProfileRepository(IProfileRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def find_by_id(self, profile_id: int) -> Optional[Profile]:
        return self.store.profiles.get(profile_id)


class MemoryContentRepository(IContentRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    def _snapshot(self, content: Content) -> Content:
        return replace(content, counters=replace(content.counters))

    async def find_by_id(self, content_id: int) -> Optional[Content]:
        content = self.store.contents.get(content_id)
        return self._snapshot(content) if content else None

    async def find_many(self, content_ids: Iterable[int]) -> Dict[int, Content]:
        return {
            content_id: self._snapshot(self.store.contents[content_id])
            for content_id in content_ids
            if content_id in self.store.contents
        }


class MemoryFollowRepository(IFollowRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def create(
        self, follower_id: int, following_id: int, status: FollowStatus
    ) -> Optional[FollowEdge]:
        key = (follower_id, following_id)
        if key in self.store.follows:
            return None
        edge = FollowEdge(
            follower_id=follower_id,
            following_id=following_id,
            status=FollowStatus(status),
            created_at=_now(),
        )
        self.store.follows[key] = edge
        return replace(edge)

    async def find(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        edge = self.store.follows.get((follower_id, following_id))
        return replace(edge) if edge else None

    async def transition(
        self,
        follower_id: int,
        following_id: int,
        from_status: FollowStatus,
        to_status: FollowStatus,
    ) -> Optional[FollowEdge]:
        edge = self.store.follows.get((follower_id, following_id))
        if not edge or edge.status != from_status:
            return None
        edge.status = FollowStatus(to_status)
        edge.responded_at = _now()
        return replace(edge)

    async def delete(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        edge = self.store.follows.pop((follower_id, following_id), None)
        return replace(edge) if edge else None

    async def list_incoming(
        self, following_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        edges = [
            replace(edge)
            for edge in self.store.follows.values()
            if edge.following_id == following_id and edge.status == status
        ]
        edges.reverse()  # newest first; dicts keep insertion order
        return edges[offset:offset + limit]

    async def list_outgoing(
        self, follower_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        edges = [
            replace(edge)
            for edge in self.store.follows.values()
            if edge.follower_id == follower_id and edge.status == status
        ]
        edges.reverse()
        return edges[offset:offset + limit]

    async def count_incoming(self, following_id: int, status: FollowStatus) -> int:
        return sum(
            1
            for edge in self.store.follows.values()
            if edge.following_id == following_id and edge.status == status
        )

    async def count_outgoing(self, follower_id: int, status: FollowStatus) -> int:
        return sum(
            1
            for edge in self.store.follows.values()
            if edge.follower_id == follower_id and edge.status == status
        )


class MemoryEngagementRepository(IEngagementRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def insert_fact(
        self,
        fact_type: FactType,
        content_id: int,
        actor_id: int,
        body: Optional[str] = None,
    ) -> Optional[Fact]:
        if fact_type == FactType.COMMENT:
            comment = Fact(
                fact_type=fact_type,
                content_id=content_id,
                actor_id=actor_id,
                id=self.store.next_id(),
                body=body,
                created_at=_now(),
            )
            self.store.comments[comment.id] = comment
            return replace(comment)

        table = self.store.fact_table(fact_type)
        key = (content_id, actor_id)
        if key in table:
            return None
        fact = Fact(fact_type=fact_type, content_id=content_id, actor_id=actor_id, created_at=_now())
        table[key] = fact
        return replace(fact)

    async def delete_fact(
        self, fact_type: FactType, content_id: int, actor_id: int
    ) -> Optional[Fact]:
        fact = self.store.fact_table(fact_type).pop((content_id, actor_id), None)
        return replace(fact) if fact else None

    async def find_comment(self, comment_id: int) -> Optional[Fact]:
        comment = self.store.comments.get(comment_id)
        return replace(comment) if comment else None

    async def delete_comment(self, comment_id: int) -> Optional[Fact]:
        comment = self.store.comments.pop(comment_id, None)
        return replace(comment) if comment else None

    async def apply_counter_delta(
        self, content_id: int, fact_type: FactType, delta: int
    ) -> Optional[ContentCounters]:
        content = self.store.contents.get(content_id)
        if not content:
            return None
        column = fact_type.counter_field
        setattr(content.counters, column, max(getattr(content.counters, column) + delta, 0))
        return replace(content.counters)

    async def recompute_counters(
        self, content_id: int
    ) -> Optional[Dict[str, ContentCounters]]:
        content = self.store.contents.get(content_id)
        if not content:
            return None
        before = replace(content.counters)
        content.counters = self.store.live_counts(content_id)
        return {"before": before, "after": replace(content.counters)}


class MemoryTagRepository(ITagRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def activate(
        self, content_id: int, tagged_profile_id: int, created_by_profile_id: int
    ) -> Optional[Tag]:
        key = (content_id, tagged_profile_id)
        tag = self.store.tags.get(key)
        if tag and tag.is_active():
            return None
        if tag:
            tag.status = TagStatus.ACTIVE
            tag.created_by_profile_id = created_by_profile_id
            tag.updated_at = _now()
        else:
            tag = Tag(
                id=self.store.next_id(),
                content_id=content_id,
                tagged_profile_id=tagged_profile_id,
                created_by_profile_id=created_by_profile_id,
                created_at=_now(),
                updated_at=_now(),
            )
            self.store.tags[key] = tag
        return replace(tag)

    async def find(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        tag = self.store.tags.get((content_id, tagged_profile_id))
        return replace(tag) if tag else None

    async def mark_removed(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        tag = self.store.tags.get((content_id, tagged_profile_id))
        if not tag or not tag.is_active():
            return None
        tag.status = TagStatus.REMOVED
        tag.updated_at = _now()
        return replace(tag)

    async def list_active_for_profile(
        self, tagged_profile_id: int, limit: int, offset: int
    ) -> List[Tag]:
        tags = [
            replace(tag)
            for tag in self.store.tags.values()
            if tag.tagged_profile_id == tagged_profile_id and tag.is_active()
        ]
        tags.sort(key=lambda tag: (tag.updated_at, tag.id), reverse=True)
        return tags[offset:offset + limit]

    async def list_active_for_content(self, content_id: int) -> List[Tag]:
        tags = [
            replace(tag)
            for tag in self.store.tags.values()
            if tag.content_id == content_id and tag.is_active()
        ]
        return sorted(tags, key=lambda tag: tag.id)


class MemoryPreferenceRepository(IPreferenceRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    def _ensure(self, profile_id: int, defaults: Dict[str, bool]) -> NotificationPreference:
        preference = self.store.preferences.get(profile_id)
        if preference is None:
            preference = NotificationPreference(
                profile_id=profile_id,
                flags=dict(defaults),
                created_at=_now(),
                updated_at=_now(),
            )
            self.store.preferences[profile_id] = preference
        return preference

    async def get_or_create(
        self, profile_id: int, defaults: Dict[str, bool]
    ) -> NotificationPreference:
        preference = self._ensure(profile_id, defaults)
        return replace(preference, flags=dict(preference.flags))

    async def set_flags(
        self, profile_id: int, flags: Dict[str, bool], defaults: Dict[str, bool]
    ) -> NotificationPreference:
        preference = self._ensure(profile_id, defaults)
        preference.flags.update(flags)
        preference.updated_at = _now()
        return replace(preference, flags=dict(preference.flags))


class MemoryNotificationRepository(INotificationRepository):
    def __init__(self, store: MemoryStore):
        self.store = store

    async def insert(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        actor_id: int,
        payload: NotificationPayload,
    ) -> Notification:
        notification = Notification(
            id=self.store.next_id(),
            recipient_id=recipient_id,
            type=NotificationType(notification_type),
            actor_id=actor_id,
            content_id=payload.content_id,
            comment_id=payload.comment_id,
            tag_id=payload.tag_id,
            message=payload.message,
            metadata=dict(payload.metadata),
            created_at=_now(),
        )
        self.store.notifications[notification.id] = notification
        return replace(notification)

    async def find_by_id(self, notification_id: int) -> Optional[Notification]:
        notification = self.store.notifications.get(notification_id)
        return replace(notification) if notification else None

    async def list_for_recipient(
        self,
        recipient_id: int,
        before_id: Optional[int],
        limit: int,
        unread_only: bool = False,
    ) -> List[Notification]:
        rows = [
            replace(n)
            for n in self.store.notifications.values()
            if n.recipient_id == recipient_id
            and (before_id is None or n.id < before_id)
            and not (unread_only and n.read)
        ]
        rows.sort(key=lambda n: n.id, reverse=True)
        return rows[:limit]

    async def count_unread(self, recipient_id: int) -> int:
        return sum(
            1
            for n in self.store.notifications.values()
            if n.recipient_id == recipient_id and not n.read
        )

    async def mark_read(self, notification_id: int) -> Optional[Notification]:
        notification = self.store.notifications.get(notification_id)
        if not notification:
            return None
        if not notification.read:
            notification.read = True
            notification.read_at = _now()
        return replace(notification)

    async def mark_all_read(self, recipient_id: int) -> int:
        updated = 0
        for notification in self.store.notifications.values():
            if notification.recipient_id == recipient_id and not notification.read:
                notification.read = True
                notification.read_at = _now()
                updated += 1
        return updated
