"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..domain.models import (
    Visibility,
    FollowStatus,
    FollowDecision,
    ContentKind,
    TagStatus,
    NotificationType,
)


class User(BaseModel):
    """Authenticated user as returned by the Auth Service"""

    id: int
    username: Optional[str] = None
    is_active: bool = True
    is_private: bool = False


# Request Schemas
class FollowRequestAction(BaseModel):
    """Accept or reject follow request"""

    action: FollowDecision = Field(..., description="Action: 'accept' or 'reject'")


class CommentCreate(BaseModel):
    """Create comment request"""

    text: str = Field(..., min_length=1, max_length=2200)


class TagCreate(BaseModel):
    """Tag a profile in content"""

    profile_id: int


class PreferencesUpdate(BaseModel):
    """Flags to change; keys not present keep their value"""

    flags: Dict[str, bool] = Field(..., min_length=1)


# Response Schemas
class MessageResponse(BaseModel):
    """Generic message response"""

    message: str


class ErrorResponse(BaseModel):
    """Error body returned for domain failures"""

    code: str
    detail: str


class FollowEdgeResponse(BaseModel):
    """Follow edge"""

    follower_id: int
    following_id: int
    status: FollowStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FollowResponse(BaseModel):
    """Response after follow action"""

    success: bool
    status: FollowStatus
    message: str


class PendingRequestsResponse(BaseModel):
    """Response with pending follow requests"""

    requests: List[FollowEdgeResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


class FollowListResponse(BaseModel):
    """Accepted follow edges of a profile"""

    edges: List[FollowEdgeResponse]
    total: int
    page: int
    page_size: int
    has_more: bool


class FollowStatsResponse(BaseModel):
    """Profile's follow statistics"""

    profile_id: int
    follower_count: int
    following_count: int
    pending_requests_count: Optional[int] = None

    class Config:
        from_attributes = True


class RelationshipResponse(BaseModel):
    """Edges in both directions between the current user and another profile"""

    profile_id: int
    outgoing: Optional[FollowStatus] = None
    incoming: Optional[FollowStatus] = None


class CountersResponse(BaseModel):
    """Engagement counters of a content item"""

    content_id: int
    likes_count: int
    comments_count: int
    saves_count: int


class CanViewResponse(BaseModel):
    content_id: int
    viewer_id: Optional[int] = None
    allowed: bool


class CommentResponse(BaseModel):
    """Comment on a content item"""

    id: int
    content_id: int
    actor_id: int
    body: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReconcileResponse(BaseModel):
    """Counters before and after recomputation"""

    content_id: int
    before: CountersResponse
    after: CountersResponse
    drifted: bool


class TagResponse(BaseModel):
    """Tag of a profile in a content item"""

    id: int
    content_id: int
    tagged_profile_id: int
    created_by_profile_id: int
    status: TagStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ContentSummary(BaseModel):
    """Content item visible to the viewer"""

    id: int
    owner_id: int
    visibility: Visibility
    kind: ContentKind


class TaggedContentResponse(BaseModel):
    """Response with content a profile is tagged in"""

    contents: List[ContentSummary]
    page: int
    page_size: int
    has_more: bool


class NotificationResponse(BaseModel):
    """Notification"""

    id: int
    recipient_id: int
    type: NotificationType
    actor_id: int
    content_id: Optional[int] = None
    comment_id: Optional[int] = None
    tag_id: Optional[int] = None
    message: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    """One page of notifications, newest first"""

    notifications: List[NotificationResponse]
    next_cursor: Optional[int] = None
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int


class PreferencesResponse(BaseModel):
    """Notification preferences of a profile"""

    profile_id: int
    flags: Dict[str, bool]
    updated_at: Optional[datetime] = None
