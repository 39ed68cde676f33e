"""
Repository interfaces - Define contracts for data access

Every mutating method maps onto a single atomic row operation of the store.
Uniqueness-guarded creations return None instead of raising when the row
already exists, so callers decide which domain error to surface.
"""
from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Iterable

from .models import (
    Profile,
    FollowEdge,
    FollowStatus,
    Content,
    ContentCounters,
    Fact,
    FactType,
    Tag,
    NotificationPreference,
    Notification,
    NotificationType,
    NotificationPayload,
)


class IProfileRepository(ABC):
    """Read-only view of the identity provider's profiles"""

    @abstractmethod
    async def find_by_id(self, profile_id: int) -> Optional[Profile]:
        """Find profile by ID"""
        pass


class IContentRepository(ABC):
    """Read-only view of the content store (counters are written elsewhere)"""

    @abstractmethod
    async def find_by_id(self, content_id: int) -> Optional[Content]:
        """Find content by ID"""
        pass

    @abstractmethod
    async def find_many(self, content_ids: Iterable[int]) -> Dict[int, Content]:
        """Find several content rows, keyed by id; missing ids are skipped"""
        pass


class IFollowRepository(ABC):
    """Follow edge repository interface"""

    @abstractmethod
    async def create(
        self, follower_id: int, following_id: int, status: FollowStatus
    ) -> Optional[FollowEdge]:
        """Create an edge; None if one already exists for the ordered pair"""
        pass

    @abstractmethod
    async def find(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        """Find the edge of an ordered pair"""
        pass

    @abstractmethod
    async def transition(
        self,
        follower_id: int,
        following_id: int,
        from_status: FollowStatus,
        to_status: FollowStatus,
    ) -> Optional[FollowEdge]:
        """Move an edge between states; None if it is not in `from_status`"""
        pass

    @abstractmethod
    async def delete(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        """Delete an edge and return it; None if it did not exist"""
        pass

    @abstractmethod
    async def list_incoming(
        self, following_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        """Edges pointing at a profile with the given status, newest first"""
        pass

    @abstractmethod
    async def list_outgoing(
        self, follower_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        """Edges leaving a profile with the given status, newest first"""
        pass

    @abstractmethod
    async def count_incoming(self, following_id: int, status: FollowStatus) -> int:
        """Count edges pointing at a profile with the given status"""
        pass

    @abstractmethod
    async def count_outgoing(self, follower_id: int, status: FollowStatus) -> int:
        """Count edges leaving a profile with the given status"""
        pass


class IEngagementRepository(ABC):
    """Fact rows and the derived counters of content rows"""

    @abstractmethod
    async def insert_fact(
        self,
        fact_type: FactType,
        content_id: int,
        actor_id: int,
        body: Optional[str] = None,
    ) -> Optional[Fact]:
        """
        Insert a fact row; None when a unique fact already exists

        Raises:
            NotFoundError: If the content no longer exists
        """
        pass

    @abstractmethod
    async def delete_fact(
        self, fact_type: FactType, content_id: int, actor_id: int
    ) -> Optional[Fact]:
        """Delete the like/save of an actor; None if absent"""
        pass

    @abstractmethod
    async def find_comment(self, comment_id: int) -> Optional[Fact]:
        """Find a comment fact by id"""
        pass

    @abstractmethod
    async def delete_comment(self, comment_id: int) -> Optional[Fact]:
        """Delete a comment fact by id; None if absent"""
        pass

    @abstractmethod
    async def apply_counter_delta(
        self, content_id: int, fact_type: FactType, delta: int
    ) -> Optional[ContentCounters]:
        """Relative counter adjustment floored at zero; None if content is gone"""
        pass

    @abstractmethod
    async def recompute_counters(
        self, content_id: int
    ) -> Optional[Dict[str, ContentCounters]]:
        """
        Overwrite counters with the live fact counts

        Returns {"before": ..., "after": ...} or None if content is gone
        """
        pass


class ITagRepository(ABC):
    """Tag repository interface"""

    @abstractmethod
    async def activate(
        self, content_id: int, tagged_profile_id: int, created_by_profile_id: int
    ) -> Optional[Tag]:
        """
        Create or re-activate a tag; None if an active one already exists

        Raises:
            NotFoundError: If the content or a profile no longer exists
        """
        pass

    @abstractmethod
    async def find(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        """Find the tag row of a pair regardless of status"""
        pass

    @abstractmethod
    async def mark_removed(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        """Set an active tag to removed; None if no active tag exists"""
        pass

    @abstractmethod
    async def list_active_for_profile(
        self, tagged_profile_id: int, limit: int, offset: int
    ) -> List[Tag]:
        """Active tags of a profile, newest first"""
        pass

    @abstractmethod
    async def list_active_for_content(self, content_id: int) -> List[Tag]:
        """Active tags of a content item"""
        pass


class IPreferenceRepository(ABC):
    """Notification preference repository interface"""

    @abstractmethod
    async def get_or_create(
        self, profile_id: int, defaults: Dict[str, bool]
    ) -> NotificationPreference:
        """Load the row, inserting it with `defaults` when missing"""
        pass

    @abstractmethod
    async def set_flags(
        self, profile_id: int, flags: Dict[str, bool], defaults: Dict[str, bool]
    ) -> NotificationPreference:
        """Atomically merge flags into the row, creating it when missing"""
        pass


class INotificationRepository(ABC):
    """Notification repository interface"""

    @abstractmethod
    async def insert(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        actor_id: int,
        payload: NotificationPayload,
    ) -> Notification:
        """Insert a notification row"""
        pass

    @abstractmethod
    async def find_by_id(self, notification_id: int) -> Optional[Notification]:
        """Find notification by ID"""
        pass

    @abstractmethod
    async def list_for_recipient(
        self,
        recipient_id: int,
        before_id: Optional[int],
        limit: int,
        unread_only: bool = False,
    ) -> List[Notification]:
        """Notifications of a recipient with id < before_id, newest first"""
        pass

    @abstractmethod
    async def count_unread(self, recipient_id: int) -> int:
        """Count unread notifications"""
        pass

    @abstractmethod
    async def mark_read(self, notification_id: int) -> Optional[Notification]:
        """Set the read flag; returns the row (already-read rows unchanged)"""
        pass

    @abstractmethod
    async def mark_all_read(self, recipient_id: int) -> int:
        """Mark every unread notification of a recipient, returning the count"""
        pass
