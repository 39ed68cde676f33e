"""
Tag routes
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...application.engine import SocialEngine
from ..dependencies import get_current_user, get_optional_user, get_engine
from ..schemas import User, TagCreate, TagResponse, ContentSummary, TaggedContentResponse


router = APIRouter(prefix="/api/v1/social", tags=["Tags"])


@router.post(
    "/content/{content_id}/tags",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
)
async def tag_profile(
    content_id: int,
    tag: TagCreate,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Tag a profile in your content

    The tagged profile is notified unless they disabled tag notifications.
    """
    created = await engine.tag_profile(content_id, tag.profile_id, current_user.id)
    return TagResponse.model_validate(created)


@router.delete("/content/{content_id}/tags/{profile_id}", response_model=TagResponse)
async def untag_profile(
    content_id: int,
    profile_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Remove a tag; the content owner and the tagged profile may do so"""
    removed = await engine.untag_profile(content_id, profile_id, current_user.id)
    return TagResponse.model_validate(removed)


@router.get("/content/{content_id}/tags", response_model=List[TagResponse])
async def get_content_tags(
    content_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    tags = await engine.tags_for_content(
        content_id, viewer_id=current_user.id if current_user else None
    )
    return [TagResponse.model_validate(tag) for tag in tags]


@router.get("/profiles/{profile_id}/tagged", response_model=TaggedContentResponse)
async def get_tagged_content(
    profile_id: int,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
    ),
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Get content a profile is tagged in

    Only content you are allowed to see is returned.
    """
    contents, has_more = await engine.tagged_content(
        profile_id, viewer_id=current_user.id, page=page, page_size=page_size
    )

    return TaggedContentResponse(
        contents=[
            ContentSummary(
                id=content.id,
                owner_id=content.owner_id,
                visibility=content.visibility,
                kind=content.kind,
            )
            for content in contents
        ],
        page=page,
        page_size=page_size,
        has_more=has_more,
    )
