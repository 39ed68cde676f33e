"""
Follow routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...config import settings
from ...application.engine import SocialEngine
from ...domain.models import FollowDecision, FollowStatus
from ..dependencies import get_current_user, get_engine, get_optional_user
from ..schemas import (
    User,
    FollowResponse,
    FollowEdgeResponse,
    FollowRequestAction,
    FollowListResponse,
    FollowStatsResponse,
    PendingRequestsResponse,
    RelationshipResponse,
    MessageResponse,
)


router = APIRouter(prefix="/api/v1/social", tags=["Follow"])


@router.post("/follows/{profile_id}", response_model=FollowResponse)
async def follow_profile(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Follow a profile

    - Private profiles receive a pending follow request
    - Public profiles are followed immediately
    """
    edge = await engine.request_follow(current_user.id, profile_id)

    if edge.status == FollowStatus.PENDING:
        message = "Follow request sent"
    else:
        message = "Successfully followed user"

    return FollowResponse(success=True, status=edge.status, message=message)


@router.delete("/follows/{profile_id}", response_model=MessageResponse)
async def unfollow_profile(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Unfollow a profile

    Works for accepted follows, pending requests and rejected requests.
    """
    await engine.remove_follow(current_user.id, current_user.id, profile_id)
    return MessageResponse(message="Follow relationship removed")


@router.delete("/followers/{profile_id}", response_model=MessageResponse)
async def remove_follower(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Remove a follower, or clean up a request from them"""
    await engine.remove_follow(current_user.id, profile_id, current_user.id)
    return MessageResponse(message="Follower removed")


@router.get("/follows/requests/pending", response_model=PendingRequestsResponse)
async def get_pending_requests(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
    ),
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Get follow requests waiting for your answer"""
    requests, total, has_more = await engine.pending_follow_requests(
        current_user.id, page, page_size
    )

    return PendingRequestsResponse(
        requests=[FollowEdgeResponse.model_validate(edge) for edge in requests],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


@router.post("/follows/requests/{follower_id}", response_model=FollowEdgeResponse)
async def handle_follow_request(
    follower_id: int,
    action: FollowRequestAction,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Accept or reject a follow request

    - action: 'accept' or 'reject'
    """
    edge = await engine.respond_follow(current_user.id, follower_id, FollowDecision(action.action))
    return FollowEdgeResponse.model_validate(edge)


@router.get("/relationships/{profile_id}", response_model=RelationshipResponse)
async def get_relationship(
    profile_id: int,
    current_user: User = Depends(get_current_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Edge statuses between you and a profile, in both directions"""
    outgoing = await engine.relationship(current_user.id, profile_id)
    incoming = await engine.relationship(profile_id, current_user.id)

    return RelationshipResponse(
        profile_id=profile_id,
        outgoing=outgoing.status if outgoing else None,
        incoming=incoming.status if incoming else None,
    )


@router.get("/followers/{profile_id}", response_model=FollowListResponse)
async def get_followers(
    profile_id: int,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
    ),
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Get a profile's followers

    Private profiles only show their followers to themselves and accepted followers.
    """
    viewer_id = current_user.id if current_user else None
    edges, total, has_more = await engine.followers(profile_id, viewer_id, page, page_size)

    return FollowListResponse(
        edges=[FollowEdgeResponse.model_validate(edge) for edge in edges],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


@router.get("/following/{profile_id}", response_model=FollowListResponse)
async def get_following(
    profile_id: int,
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"
    ),
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    """Get the profiles a profile follows"""
    viewer_id = current_user.id if current_user else None
    edges, total, has_more = await engine.following(profile_id, viewer_id, page, page_size)

    return FollowListResponse(
        edges=[FollowEdgeResponse.model_validate(edge) for edge in edges],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


@router.get("/stats/{profile_id}", response_model=FollowStatsResponse)
async def get_follow_stats(
    profile_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    engine: SocialEngine = Depends(get_engine),
):
    """
    Get a profile's follow statistics

    Returns:
    - follower_count: Number of accepted followers
    - following_count: Number of profiles followed
    - pending_requests_count: Pending follow requests, only for your own profile
    """
    viewer_id = current_user.id if current_user else None
    stats = await engine.follow_stats(profile_id, viewer_id)
    return FollowStatsResponse.model_validate(stats)
