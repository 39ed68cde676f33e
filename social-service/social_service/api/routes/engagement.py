"""
Like, comment and save routes
"""
from fastapi import APIRouter, Depends, status

from ...application.engine import SocialEngine
from ..dependencies import get_current_user, get_engine
from ..schemas import User, CommentCreate, CommentResponse, CountersResponse, MessageResponse


router = APIRouter(prefix="/api/v1/social", tags=["Engagement"])


async def _counters(engine: SocialEngine, content_id: int, viewer_id: int) -> CountersResponse:
    counters = await engine.counters(content_id, viewer_id=viewer_id)
    return CountersResponse(
        content_id=content_id,
        likes_count=counters.likes_count,
        comments_count=counters.comments_count,
        saves_count=counters.saves_count,
    )


@router.post("/content/{content_id}/like", response_model=CountersResponse)
async def like_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Like a content item; liking twice is a conflict"""
    await engine.record_like(current_user.id, content_id)
    return await _counters(engine, content_id, current_user.id)


@router.delete("/content/{content_id}/like", response_model=MessageResponse)
async def unlike_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    await engine.remove_like(current_user.id, content_id)
    return MessageResponse(message="Like removed")


@router.post("/content/{content_id}/save", response_model=CountersResponse)
async def save_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    await engine.record_save(current_user.id, content_id)
    return await _counters(engine, content_id, current_user.id)


@router.delete("/content/{content_id}/save", response_model=MessageResponse)
async def unsave_content(
    content_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    await engine.remove_save(current_user.id, content_id)
    return MessageResponse(message="Save removed")


@router.post(
    "/content/{content_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def comment_on_content(
    content_id: int,
    comment: CommentCreate,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Comment on a content item

    Requires access to the content.
    """
    fact = await engine.record_comment(current_user.id, content_id, comment.text)
    return CommentResponse.model_validate(fact)


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Delete a comment

    Allowed for the comment author and the owner of the content.
    """
    await engine.remove_comment(current_user.id, comment_id)
    return MessageResponse(message="Comment deleted")
