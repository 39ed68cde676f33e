"""
Content access and counter routes
"""
from typing import Optional

from fastapi import APIRouter, Depends

from ...application.counters import ReconcileResult
from ...application.engine import SocialEngine
from ...domain.models import ContentCounters
from ...errors import PermissionDeniedError
from ..dependencies import get_current_user, get_optional_user, get_engine
from ..schemas import User, CanViewResponse, CountersResponse, ReconcileResponse


router = APIRouter(prefix="/api/v1/social/content", tags=["Content"])


def _counters_response(content_id: int, counters: ContentCounters) -> CountersResponse:
    return CountersResponse(
        content_id=content_id,
        likes_count=counters.likes_count,
        comments_count=counters.comments_count,
        saves_count=counters.saves_count,
    )


@router.get("/{content_id}/can-view", response_model=CanViewResponse)
async def can_view_content(
    content_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Whether you (or an anonymous viewer) may see a content item"""
    viewer_id = current_user.id if current_user else None
    allowed = await engine.can_view(viewer_id, content_id)
    return CanViewResponse(content_id=content_id, viewer_id=viewer_id, allowed=allowed)


@router.get("/{content_id}/counters", response_model=CountersResponse)
async def get_counters(
    content_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Like, comment and save counts of content you can see"""
    counters = await engine.counters(
        content_id, viewer_id=current_user.id if current_user else None
    )
    return _counters_response(content_id, counters)


@router.post("/{content_id}/reconcile", response_model=ReconcileResponse)
async def reconcile_counters(
    content_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Recompute the counters of your content from its likes, comments and saves
    """
    content = await engine.access.get_content(content_id)
    if not content.is_owner(current_user.id):
        raise PermissionDeniedError("You can only reconcile your own content")

    result: ReconcileResult = await engine.reconcile(content_id)
    return ReconcileResponse(
        content_id=content_id,
        before=_counters_response(content_id, result.before),
        after=_counters_response(content_id, result.after),
        drifted=result.drifted,
    )
