"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any
from enum import Enum


class Visibility(str, Enum):
    """Profile default policy and per-content visibility flag"""
    PUBLIC = "public"
    PRIVATE = "private"


class FollowStatus(str, Enum):
    """Follow edge status"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FollowDecision(str, Enum):
    """Answer of the followed party to a pending request"""
    ACCEPT = "accept"
    REJECT = "reject"


class ContentKind(str, Enum):
    """Kind of content row owned by the content store"""
    POST = "post"
    COMMENT = "comment"


class FactType(str, Enum):
    """Countable social action recorded as a fact row"""
    LIKE = "like"
    COMMENT = "comment"
    SAVE = "save"

    @property
    def counter_field(self) -> str:
        """Name of the derived counter column fed by this fact"""
        return f"{self.value}s_count"

    @property
    def is_unique_per_actor(self) -> bool:
        """Likes and saves allow one row per (content, actor); comments do not"""
        return self is not FactType.COMMENT


class TagStatus(str, Enum):
    """Tag lifecycle status"""
    ACTIVE = "active"
    REMOVED = "removed"


class NotificationType(str, Enum):
    """Notification categories, one preference flag each"""
    FOLLOW_REQUEST = "follow_request"
    FOLLOW_ACCEPTED = "follow_accepted"
    NEW_FOLLOWER = "new_follower"
    LIKE = "like"
    COMMENT = "comment"
    TAG = "tag"
    MENTION = "mention"
    ACHIEVEMENT = "achievement"
    SYSTEM_ANNOUNCEMENT = "system_announcement"
    CLUB_UPDATE = "club_update"


class DeliveryChannel(str, Enum):
    """Delivery channel flags stored next to the category flags"""
    PUSH = "push"
    EMAIL = "email"


@dataclass
class Profile:
    """Profile as seen by the social core (owned by the identity provider)"""
    id: int
    visibility: Visibility = Visibility.PUBLIC

    @property
    def requires_approval(self) -> bool:
        """Private profiles approve each follower"""
        return self.visibility == Visibility.PRIVATE


@dataclass
class FollowEdge:
    """Directed follow relationship"""
    follower_id: int
    following_id: int
    status: FollowStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    def involves(self, profile_id: int) -> bool:
        """Check if the profile is one of the two parties"""
        return profile_id in (self.follower_id, self.following_id)

    def is_pending(self) -> bool:
        """Check if follow request is pending"""
        return self.status == FollowStatus.PENDING

    def is_accepted(self) -> bool:
        return self.status == FollowStatus.ACCEPTED


@dataclass
class FollowStats:
    """Accepted-edge counts of a profile"""
    profile_id: int
    follower_count: int = 0
    following_count: int = 0
    # Only reported to the profile itself
    pending_requests_count: Optional[int] = None


@dataclass
class ContentCounters:
    """Derived engagement counters of a content row"""
    likes_count: int = 0
    comments_count: int = 0
    saves_count: int = 0

    def get(self, fact_type: FactType) -> int:
        return getattr(self, fact_type.counter_field)


@dataclass
class Content:
    """Content row (post or comment) owned by the content store"""
    id: int
    owner_id: int
    visibility: Visibility = Visibility.PUBLIC
    kind: ContentKind = ContentKind.POST
    counters: ContentCounters = field(default_factory=ContentCounters)

    def is_owner(self, profile_id: Optional[int]) -> bool:
        return profile_id is not None and self.owner_id == profile_id


@dataclass
class Fact:
    """Fact row: like, comment or save"""
    fact_type: FactType
    content_id: int
    actor_id: int
    id: Optional[int] = None
    body: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Tag:
    """A profile tagged in a content item"""
    id: int
    content_id: int
    tagged_profile_id: int
    created_by_profile_id: int
    status: TagStatus = TagStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_active(self) -> bool:
        return self.status == TagStatus.ACTIVE


@dataclass
class NotificationPreference:
    """Per-profile opt-in flags, keyed by category or delivery channel"""
    profile_id: int
    flags: Dict[str, bool] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_enabled(self, key: str) -> bool:
        """Unknown keys fall back to the documented defaults"""
        return self.flags.get(key, DEFAULT_PREFERENCE_FLAGS.get(key, False))


@dataclass
class NotificationPayload:
    """Reference ids and display data attached to a notification"""
    content_id: Optional[int] = None
    comment_id: Optional[int] = None
    tag_id: Optional[int] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Notification:
    """Notification record; only `read` and `read_at` ever change"""
    id: int
    recipient_id: int
    type: NotificationType
    actor_id: int
    content_id: Optional[int] = None
    comment_id: Optional[int] = None
    tag_id: Optional[int] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    read: bool = False
    read_at: Optional[datetime] = None


# Every category is on by default; push is on and email is off.
DEFAULT_PREFERENCE_FLAGS: Dict[str, bool] = {
    **{category.value: True for category in NotificationType},
    DeliveryChannel.PUSH.value: True,
    DeliveryChannel.EMAIL.value: False,
}
