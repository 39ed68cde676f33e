"""
SocialEngine - the command/query surface of the social core

Wires the repositories, cache and event bus into the components and exposes
one method per command and query.
"""
from typing import Dict, List, Optional, Tuple
import logging

from ..domain.models import (
    Content,
    ContentCounters,
    Fact,
    FollowDecision,
    FollowEdge,
    FollowStats,
    Notification,
    NotificationPreference,
    Tag,
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
from ..infrastructure.cache import RedisCache
from ..infrastructure.database import (
    Database,
    ProfileRepository,
    ContentRepository,
    FollowRepository,
    EngagementRepository,
    TagRepository,
    PreferenceRepository,
    NotificationRepository,
)
from ..infrastructure.memory import (
    MemoryStore,
    MemoryProfileRepository,
    MemoryContentRepository,
    MemoryFollowRepository,
    MemoryEngagementRepository,
    MemoryTagRepository,
    MemoryPreferenceRepository,
    MemoryNotificationRepository,
)
from .counters import EngagementCounterMaintainer, ReconcileResult
from .engagement import EngagementService
from .events import EventBus
from .notifications import (
    NotificationDispatcher,
    NotificationPage,
    NotificationRules,
    NotificationService,
)
from .preferences import PreferenceStore
from .relationships import RelationshipService
from .tags import TagRegistry
from .visibility import ContentAccess

logger = logging.getLogger(__name__)


class SocialEngine:
    """Facade over the relationship, engagement, tag and notification components"""

    def __init__(
        self,
        profiles: IProfileRepository,
        contents: IContentRepository,
        follows: IFollowRepository,
        engagement: IEngagementRepository,
        tags: ITagRepository,
        preferences: IPreferenceRepository,
        notifications: INotificationRepository,
        cache: Optional[RedisCache] = None,
        bus: Optional[EventBus] = None,
    ):
        self.cache = cache or RedisCache()
        self.bus = bus or EventBus()

        self.relationships = RelationshipService(follows, profiles, self.cache, self.bus)
        self.access = ContentAccess(contents, self.relationships, tags)
        self.counter_maintainer = EngagementCounterMaintainer(engagement)
        self.engagement = EngagementService(self.counter_maintainer, self.access, self.bus)
        self.tag_registry = TagRegistry(tags, profiles, self.access, self.bus)
        self.preferences = PreferenceStore(preferences)
        self.dispatcher = NotificationDispatcher(notifications, self.preferences, self.cache)
        self.notifications = NotificationService(notifications, self.cache)

        self.rules = NotificationRules(self.dispatcher)
        self.rules.attach(self.bus)

    # Commands

    async def request_follow(self, follower_id: int, following_id: int) -> FollowEdge:
        return await self.relationships.request_follow(follower_id, following_id)

    async def respond_follow(
        self,
        actor_id: int,
        follower_id: int,
        decision: FollowDecision,
        following_id: Optional[int] = None,
    ) -> FollowEdge:
        return await self.relationships.respond_follow(
            actor_id, follower_id, decision, following_id=following_id
        )

    async def remove_follow(self, actor_id: int, follower_id: int, following_id: int) -> FollowEdge:
        return await self.relationships.remove_follow(actor_id, follower_id, following_id)

    async def record_like(self, actor_id: int, content_id: int) -> Fact:
        return await self.engagement.record_like(actor_id, content_id)

    async def remove_like(self, actor_id: int, content_id: int) -> Fact:
        return await self.engagement.remove_like(actor_id, content_id)

    async def record_comment(self, actor_id: int, content_id: int, body: str) -> Fact:
        return await self.engagement.record_comment(actor_id, content_id, body)

    async def remove_comment(self, actor_id: int, comment_id: int) -> Fact:
        return await self.engagement.remove_comment(actor_id, comment_id)

    async def record_save(self, actor_id: int, content_id: int) -> Fact:
        return await self.engagement.record_save(actor_id, content_id)

    async def remove_save(self, actor_id: int, content_id: int) -> Fact:
        return await self.engagement.remove_save(actor_id, content_id)

    async def tag_profile(
        self, content_id: int, tagged_profile_id: int, created_by_profile_id: int
    ) -> Tag:
        return await self.tag_registry.tag_profile(
            content_id, tagged_profile_id, created_by_profile_id
        )

    async def untag_profile(self, content_id: int, tagged_profile_id: int, actor_id: int) -> Tag:
        return await self.tag_registry.untag_profile(content_id, tagged_profile_id, actor_id)

    async def set_preference(
        self, actor_id: int, profile_id: int, key: str, value: bool
    ) -> NotificationPreference:
        return await self.preferences.set(actor_id, profile_id, key, value)

    async def set_preferences(
        self, actor_id: int, profile_id: int, flags: Dict[str, bool]
    ) -> NotificationPreference:
        return await self.preferences.set_many(actor_id, profile_id, flags)

    async def mark_notification_read(self, actor_id: int, notification_id: int) -> Notification:
        return await self.notifications.mark_notification_read(actor_id, notification_id)

    async def mark_all_read(self, profile_id: int) -> int:
        return await self.notifications.mark_all_read(profile_id)

    async def reconcile(self, content_id: int) -> ReconcileResult:
        return await self.counter_maintainer.reconcile(content_id)

    async def reconcile_many(self, content_ids: List[int]) -> List[ReconcileResult]:
        return await self.counter_maintainer.reconcile_many(content_ids)

    # Queries

    async def can_view(self, viewer_id: Optional[int], content_id: int) -> bool:
        return await self.access.can_view(viewer_id, content_id)

    async def counters(self, content_id: int, viewer_id: Optional[int] = None) -> ContentCounters:
        return await self.engagement.counters_for(viewer_id, content_id)

    async def relationship(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        return await self.relationships.relationship(follower_id, following_id)

    async def pending_follow_requests(
        self, profile_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[FollowEdge], int, bool]:
        return await self.relationships.pending_follow_requests(profile_id, page, page_size)

    async def followers(
        self,
        profile_id: int,
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[FollowEdge], int, bool]:
        return await self.relationships.followers(viewer_id, profile_id, page, page_size)

    async def following(
        self,
        profile_id: int,
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[FollowEdge], int, bool]:
        return await self.relationships.following(viewer_id, profile_id, page, page_size)

    async def follow_stats(self, profile_id: int, viewer_id: Optional[int] = None) -> FollowStats:
        return await self.relationships.follow_stats(profile_id, viewer_id)

    async def unread_notification_count(self, profile_id: int) -> int:
        return await self.notifications.unread_notification_count(profile_id)

    async def list_notifications(
        self,
        profile_id: int,
        cursor: Optional[int] = None,
        limit: int = 20,
        unread_only: bool = False,
    ) -> NotificationPage:
        return await self.notifications.list_notifications(
            profile_id, cursor=cursor, limit=limit, unread_only=unread_only
        )

    async def tagged_content(
        self,
        profile_id: int,
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Content], bool]:
        return await self.tag_registry.tagged_content(profile_id, viewer_id, page, page_size)

    async def tags_for_content(self, content_id: int, viewer_id: Optional[int] = None) -> List[Tag]:
        return await self.tag_registry.tags_for_content(viewer_id, content_id)

    async def get_preferences(self, profile_id: int) -> NotificationPreference:
        return await self.preferences.get(profile_id)


def build_memory_engine(
    store: Optional[MemoryStore] = None,
    cache: Optional[RedisCache] = None,
    bus: Optional[EventBus] = None,
) -> SocialEngine:
    """Engine over the in-memory store"""
    store = store or MemoryStore()
    return SocialEngine(
        profiles=MemoryProfileRepository(store),
        contents=MemoryContentRepository(store),
        follows=MemoryFollowRepository(store),
        engagement=MemoryEngagementRepository(store),
        tags=MemoryTagRepository(store),
        preferences=MemoryPreferenceRepository(store),
        notifications=MemoryNotificationRepository(store),
        cache=cache,
        bus=bus,
    )


def build_postgres_engine(
    database: Database,
    cache: Optional[RedisCache] = None,
    bus: Optional[EventBus] = None,
) -> SocialEngine:
    """Engine over PostgreSQL"""
    return SocialEngine(
        profiles=ProfileRepository(database),
        contents=ContentRepository(database),
        follows=FollowRepository(database),
        engagement=EngagementRepository(database),
        tags=TagRepository(database),
        preferences=PreferenceRepository(database),
        notifications=NotificationRepository(database),
        cache=cache,
        bus=bus,
    )


def build_engine(
    backend: str,
    database: Optional[Database] = None,
    cache: Optional[RedisCache] = None,
    bus: Optional[EventBus] = None,
) -> SocialEngine:
    """
    Build an engine for the configured storage backend

    Args:
        backend: "postgres" or "memory"
        database: Connected database, required for postgres
        cache: Redis cache, a disconnected no-op cache when omitted
        bus: Event bus, a fresh one when omitted

    Raises:
        ValueError: On an unknown backend or a missing database
    """
    if backend == "memory":
        logger.info("Using in-memory storage backend")
        return build_memory_engine(cache=cache, bus=bus)

    if backend == "postgres":
        if database is None:
            raise ValueError("A database is required for the postgres backend")
        return build_postgres_engine(database, cache=cache, bus=bus)

    raise ValueError(f"Unknown storage backend '{backend}'")
