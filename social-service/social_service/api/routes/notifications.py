"""
Notification and notification preference routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config import settings
from ...application.engine import SocialEngine
from ...domain.models import NotificationPreference
from ..dependencies import get_current_user, get_engine
from ..schemas import (
    User,
    NotificationResponse,
    NotificationListResponse,
    UnreadCountResponse,
    MarkAllReadResponse,
    PreferencesResponse,
    PreferencesUpdate,
)


router = APIRouter(prefix="/api/v1/social/notifications", tags=["Notifications"])


def _preferences_response(preference: NotificationPreference) -> PreferencesResponse:
    return PreferencesResponse(
        profile_id=preference.profile_id,
        flags=preference.flags,
        updated_at=preference.updated_at,
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    cursor: Optional[int] = Query(None, description="next_cursor of the previous page"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Get your notifications, newest first

    Pass `next_cursor` back as `cursor` to fetch the next page.
    """
    page = await engine.list_notifications(
        current_user.id, cursor=cursor, limit=limit, unread_only=unread_only
    )

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in page.notifications],
        next_cursor=page.next_cursor,
        has_more=page.has_more,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    count = await engine.unread_notification_count(current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    updated = await engine.mark_all_read(current_user.id)
    return MarkAllReadResponse(updated=updated)


@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Get your notification preferences, created with defaults on first access"""
    preference = await engine.get_preferences(current_user.id)
    return _preferences_response(preference)


@router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    update: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Update notification preferences

    All flags are written together; if any key is unknown nothing changes.
    """
    preference = await engine.set_preferences(current_user.id, current_user.id, update.flags)
    return _preferences_response(preference)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    notification = await engine.mark_notification_read(current_user.id, notification_id)
    return NotificationResponse.model_validate(notification)
