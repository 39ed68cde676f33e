"""
Relationship state machine - follow requests, responses and removal
"""
from typing import List, Optional, Tuple
import logging

from ..config import settings
from ..domain.models import FollowEdge, FollowStats, FollowStatus, FollowDecision, Profile
from ..domain.repositories import IFollowRepository, IProfileRepository
from ..domain.visibility import needs_relationship, resolve
from ..errors import (
    ValidationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from ..infrastructure.cache import RedisCache, NO_EDGE
from .events import DomainEvent, EventBus, EventName

logger = logging.getLogger(__name__)


class RelationshipService:
    """
    Follow edges move none -> pending -> {accepted, rejected}; accepted,
    pending and rejected edges return to none by deletion.
    """

    def __init__(
        self,
        follows: IFollowRepository,
        profiles: IProfileRepository,
        cache: RedisCache,
        bus: EventBus,
    ):
        self.follows = follows
        self.profiles = profiles
        self.cache = cache
        self.bus = bus

    async def request_follow(self, follower_id: int, following_id: int) -> FollowEdge:
        """
        Follow a profile

        Args:
            follower_id: Profile that follows
            following_id: Profile to be followed

        Returns:
            The created FollowEdge, accepted for public targets and pending
            for private ones

        Raises:
            ValidationError: On self-follow or when the following limit is reached
            NotFoundError: If the target profile does not exist
            ConflictError: If an edge already exists for the pair
        """
        # Validate: Can't follow yourself
        if follower_id == following_id:
            raise ValidationError("You cannot follow yourself")

        target = await self.profiles.find_by_id(following_id)
        if not target:
            raise NotFoundError("Profile not found")

        # Check following limit
        following_count = await self.follows.count_outgoing(follower_id, FollowStatus.ACCEPTED)
        if following_count >= settings.MAX_FOLLOWING_LIMIT:
            raise ValidationError(
                f"You cannot follow more than {settings.MAX_FOLLOWING_LIMIT} users"
            )

        follow_status = FollowStatus.PENDING if target.requires_approval else FollowStatus.ACCEPTED

        # Uniqueness on the pair decides between concurrent duplicates
        edge = await self.follows.create(follower_id, following_id, follow_status)
        if not edge:
            existing = await self.follows.find(follower_id, following_id)
            if existing and existing.is_pending():
                raise ConflictError("Follow request already pending")
            if existing and existing.is_accepted():
                raise ConflictError("You are already following this user")
            raise ConflictError("A follow relationship already exists")

        await self.cache.invalidate_relationship_cache(follower_id, following_id)

        logger.info(f"Follow {follower_id} -> {following_id} created as {follow_status.value}")

        await self.bus.publish(
            DomainEvent(
                name=EventName.FOLLOW_CREATED,
                actor_id=follower_id,
                subject_id=following_id,
                data={"status": follow_status.value},
            )
        )
        return edge

    async def respond_follow(
        self,
        actor_id: int,
        follower_id: int,
        decision: FollowDecision,
        following_id: Optional[int] = None,
    ) -> FollowEdge:
        """
        Accept or reject a pending follow request

        Args:
            actor_id: Profile answering the request
            follower_id: Profile that sent the request
            decision: accept or reject
            following_id: Followed profile, defaults to the actor

        Returns:
            The updated FollowEdge

        Raises:
            PermissionDeniedError: If the actor is not the followed party
            ValidationError: On an unknown decision
            NotFoundError: If there is no pending request for the pair
        """
        if following_id is None:
            following_id = actor_id
        if following_id != actor_id:
            raise PermissionDeniedError("Only the followed profile can respond to a follow request")

        try:
            decision = FollowDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown follow decision '{decision}'")

        target_status = (
            FollowStatus.ACCEPTED if decision == FollowDecision.ACCEPT else FollowStatus.REJECTED
        )

        edge = await self.follows.transition(
            follower_id, following_id, FollowStatus.PENDING, target_status
        )
        if not edge:
            raise NotFoundError("Follow request not found")

        await self.cache.invalidate_relationship_cache(follower_id, following_id)

        logger.info(f"Follow {follower_id} -> {following_id} {target_status.value}")

        event_name = (
            EventName.FOLLOW_ACCEPTED
            if target_status == FollowStatus.ACCEPTED
            else EventName.FOLLOW_REJECTED
        )
        await self.bus.publish(
            DomainEvent(
                name=event_name,
                actor_id=following_id,
                subject_id=follower_id,
                data={"follower_id": follower_id, "following_id": following_id},
            )
        )
        return edge

    async def remove_follow(self, actor_id: int, follower_id: int, following_id: int) -> FollowEdge:
        """
        Delete an edge: unfollow, cancel a request or clean up a rejection

        Raises:
            PermissionDeniedError: If the actor is neither party
            NotFoundError: If the edge does not exist
        """
        if actor_id not in (follower_id, following_id):
            raise PermissionDeniedError("You can only remove your own follow relationships")

        edge = await self.follows.delete(follower_id, following_id)
        if not edge:
            raise NotFoundError("Follow relationship not found")

        await self.cache.invalidate_relationship_cache(follower_id, following_id)

        logger.info(f"Follow {follower_id} -> {following_id} removed by {actor_id}")

        await self.bus.publish(
            DomainEvent(
                name=EventName.FOLLOW_REMOVED,
                actor_id=actor_id,
                subject_id=following_id if actor_id == follower_id else follower_id,
                data={
                    "follower_id": follower_id,
                    "following_id": following_id,
                    "status": FollowStatus(edge.status).value,
                },
            )
        )
        return edge

    async def relationship(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        return await self.follows.find(follower_id, following_id)

    async def follow_status(self, follower_id: int, following_id: int) -> Optional[FollowStatus]:
        """Status of the edge follower -> following, read through the cache"""
        cached = await self.cache.get_follow_status(follower_id, following_id)
        if cached is not None:
            return None if cached == NO_EDGE else FollowStatus(cached)

        # Read the generation first; a write/invalidate racing the load bumps
        # it and the stale status below is then not cached
        generation = await self.cache.get_relationship_generation(follower_id, following_id)

        edge = await self.follows.find(follower_id, following_id)
        status = edge.status if edge else None
        if generation is not None:
            await self.cache.set_follow_status(
                follower_id,
                following_id,
                FollowStatus(status).value if status else None,
                generation=generation,
            )
        return status

    async def pending_follow_requests(
        self, profile_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[FollowEdge], int, bool]:
        """
        Get pending requests addressed to a profile, newest first

        Returns:
            Tuple of (edges, total count, has_more)
        """
        # Validate pagination
        page = max(1, page)
        page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))
        offset = (page - 1) * page_size

        edges = await self.follows.list_incoming(
            profile_id, FollowStatus.PENDING, limit=page_size + 1, offset=offset
        )

        # Check if there are more results
        has_more = len(edges) > page_size
        if has_more:
            edges = edges[:page_size]

        total = await self.follows.count_incoming(profile_id, FollowStatus.PENDING)
        return edges, total, has_more

    async def require_connections_visible(
        self, viewer_id: Optional[int], profile_id: int
    ) -> Profile:
        """
        Gate a profile's follower/following lists like its private content

        Raises:
            NotFoundError: If the profile does not exist
            PermissionDeniedError: If the profile is private and the viewer is
                neither the profile nor an accepted follower
        """
        profile = await self.profiles.find_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profile not found")

        follow_status = None
        if needs_relationship(viewer_id, profile.id, profile.visibility):
            follow_status = await self.follow_status(viewer_id, profile.id)

        if not resolve(viewer_id, profile.id, profile.visibility, follow_status):
            raise PermissionDeniedError("This account is private")
        return profile

    def _page_window(self, page: int, page_size: int) -> Tuple[int, int]:
        page = max(1, page)
        page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))
        return page_size, (page - 1) * page_size

    async def followers(
        self,
        viewer_id: Optional[int],
        profile_id: int,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[FollowEdge], int, bool]:
        """
        Accepted followers of a profile, newest first

        Returns:
            Tuple of (edges, total count, has_more)
        """
        await self.require_connections_visible(viewer_id, profile_id)
        page_size, offset = self._page_window(page, page_size)

        edges = await self.follows.list_incoming(
            profile_id, FollowStatus.ACCEPTED, limit=page_size + 1, offset=offset
        )
        has_more = len(edges) > page_size
        total = await self.follows.count_incoming(profile_id, FollowStatus.ACCEPTED)
        return edges[:page_size], total, has_more

    async def following(
        self,
        viewer_id: Optional[int],
        profile_id: int,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[FollowEdge], int, bool]:
        """Profiles a profile follows with an accepted edge, newest first"""
        await self.require_connections_visible(viewer_id, profile_id)
        page_size, offset = self._page_window(page, page_size)

        edges = await self.follows.list_outgoing(
            profile_id, FollowStatus.ACCEPTED, limit=page_size + 1, offset=offset
        )
        has_more = len(edges) > page_size
        total = await self.follows.count_outgoing(profile_id, FollowStatus.ACCEPTED)
        return edges[:page_size], total, has_more

    async def follow_stats(self, profile_id: int, viewer_id: Optional[int] = None) -> FollowStats:
        """
        Accepted follower/following counts; visible for private profiles too

        The pending request count is only filled in for the profile itself.
        """
        if not await self.profiles.find_by_id(profile_id):
            raise NotFoundError("Profile not found")

        stats = FollowStats(
            profile_id=profile_id,
            follower_count=await self.follows.count_incoming(profile_id, FollowStatus.ACCEPTED),
            following_count=await self.follows.count_outgoing(profile_id, FollowStatus.ACCEPTED),
        )
        if viewer_id == profile_id:
            stats.pending_requests_count = await self.follows.count_incoming(
                profile_id, FollowStatus.PENDING
            )
        return stats
