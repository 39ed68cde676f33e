"""
Notification dispatch, notification rules and notification queries
"""
from dataclasses import dataclass
from typing import List, Optional
import logging

from ..config import settings
from ..domain.models import (
    Notification,
    NotificationType,
    NotificationPayload,
    FactType,
    FollowStatus,
)
from ..domain.repositories import INotificationRepository
from ..errors import NotFoundError, PermissionDeniedError
from ..infrastructure.cache import RedisCache
from .events import DomainEvent, EventBus, EventName
from .preferences import PreferenceStore

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Turns a (recipient, type, actor, payload) triple into a Notification

    Knows nothing about the event that caused the dispatch; callers supply
    the triple.
    """

    def __init__(
        self,
        repository: INotificationRepository,
        preferences: PreferenceStore,
        cache: RedisCache,
    ):
        self.repo = repository
        self.preferences = preferences
        self.cache = cache

    async def dispatch(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        actor_id: int,
        payload: Optional[NotificationPayload] = None,
    ) -> Optional[Notification]:
        """
        Create a notification unless excluded

        Returns:
            The created Notification, or None when the actor is the recipient
            or the recipient disabled this category
        """
        if actor_id == recipient_id:
            return None

        notification_type = NotificationType(notification_type)
        if not await self.preferences.is_enabled(recipient_id, notification_type):
            logger.debug(
                f"Profile {recipient_id} disabled {notification_type.value} notifications"
            )
            return None

        notification = await self.repo.insert(
            recipient_id, notification_type, actor_id, payload or NotificationPayload()
        )
        await self.cache.invalidate_unread_count(recipient_id)

        logger.info(
            f"Notification {notification.id} ({notification_type.value}) "
            f"for {recipient_id} from {actor_id}"
        )
        return notification


class NotificationRules:
    """Maps social events onto dispatcher calls"""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def attach(self, bus: EventBus):
        bus.subscribe(EventName.FOLLOW_CREATED, self.on_follow_created)
        bus.subscribe(EventName.FOLLOW_ACCEPTED, self.on_follow_accepted)
        bus.subscribe(EventName.FACT_INSERTED, self.on_fact_inserted)
        bus.subscribe(EventName.TAG_CREATED, self.on_tag_created)

    async def on_follow_created(self, event: DomainEvent) -> Optional[Notification]:
        # Pending requests surface through the pending-requests query instead
        if event.data.get("status") != FollowStatus.ACCEPTED.value:
            return None
        return await self.dispatcher.dispatch(
            event.subject_id,
            NotificationType.NEW_FOLLOWER,
            event.actor_id,
            NotificationPayload(message="started following you"),
        )

    async def on_follow_accepted(self, event: DomainEvent) -> Optional[Notification]:
        # actor: the profile that accepted; subject: the original requester
        return await self.dispatcher.dispatch(
            event.subject_id,
            NotificationType.FOLLOW_ACCEPTED,
            event.actor_id,
            NotificationPayload(message="accepted your follow request"),
        )

    async def on_fact_inserted(self, event: DomainEvent) -> Optional[Notification]:
        fact_type = FactType(event.data["fact_type"])
        if fact_type == FactType.LIKE:
            return await self.dispatcher.dispatch(
                event.subject_id,
                NotificationType.LIKE,
                event.actor_id,
                NotificationPayload(
                    content_id=event.data["content_id"], message="liked your post"
                ),
            )
        if fact_type == FactType.COMMENT:
            return await self.dispatcher.dispatch(
                event.subject_id,
                NotificationType.COMMENT,
                event.actor_id,
                NotificationPayload(
                    content_id=event.data["content_id"],
                    comment_id=event.data.get("comment_id"),
                    message="commented on your post",
                ),
            )
        return None

    async def on_tag_created(self, event: DomainEvent) -> Optional[Notification]:
        return await self.dispatcher.dispatch(
            event.subject_id,
            NotificationType.TAG,
            event.actor_id,
            NotificationPayload(
                content_id=event.data["content_id"],
                tag_id=event.data["tag_id"],
                message="tagged you in a post",
            ),
        )


@dataclass
class NotificationPage:
    """One page of a recipient's notifications"""
    notifications: List[Notification]
    next_cursor: Optional[int]
    has_more: bool


class NotificationService:
    """Read side of notifications plus the read-flag mutations"""

    def __init__(self, repository: INotificationRepository, cache: RedisCache):
        self.repo = repository
        self.cache = cache

    async def list_notifications(
        self,
        profile_id: int,
        cursor: Optional[int] = None,
        limit: int = 20,
        unread_only: bool = False,
    ) -> NotificationPage:
        """
        List notifications newest first

        Args:
            profile_id: Recipient
            cursor: `next_cursor` of the previous page, None for the first page
            limit: Page size, capped at MAX_PAGE_SIZE
            unread_only: Only return unread notifications

        Returns:
            NotificationPage
        """
        limit = max(1, min(limit, settings.MAX_PAGE_SIZE))
        rows = await self.repo.list_for_recipient(
            profile_id, cursor, limit + 1, unread_only=unread_only
        )

        has_more = len(rows) > limit
        if has_more:
            rows = rows[:limit]

        return NotificationPage(
            notifications=rows,
            next_cursor=rows[-1].id if has_more else None,
            has_more=has_more,
        )

    async def unread_notification_count(self, profile_id: int) -> int:
        cached = await self.cache.get_unread_count(profile_id)
        if cached is not None:
            return cached

        count = await self.repo.count_unread(profile_id)
        await self.cache.set_unread_count(profile_id, count)
        return count

    async def mark_notification_read(self, actor_id: int, notification_id: int) -> Notification:
        """
        Mark a notification as read; already-read notifications are returned as is

        Raises:
            NotFoundError: If the notification does not exist
            PermissionDeniedError: If the actor is not the recipient
        """
        notification = await self.repo.find_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification not found")

        if notification.recipient_id != actor_id:
            raise PermissionDeniedError("You can only update your own notifications")

        if notification.read:
            return notification

        updated = await self.repo.mark_read(notification_id)
        if not updated:
            raise NotFoundError("Notification not found")

        await self.cache.invalidate_unread_count(actor_id)
        return updated

    async def mark_all_read(self, profile_id: int) -> int:
        """Mark every unread notification of a profile as read"""
        updated = await self.repo.mark_all_read(profile_id)
        await self.cache.invalidate_unread_count(profile_id)
        logger.info(f"Marked {updated} notifications read for {profile_id}")
        return updated
