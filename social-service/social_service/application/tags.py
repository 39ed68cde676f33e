"""
Tag registry - profiles tagged in content
"""
from typing import List, Optional, Tuple
import logging

from ..config import settings
from ..domain.models import Content, Tag
from ..domain.repositories import IProfileRepository, ITagRepository
from ..errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .events import DomainEvent, EventBus, EventName
from .visibility import ContentAccess

logger = logging.getLogger(__name__)


class TagRegistry:
    """At most one active tag per (content, profile); removal is a status change"""

    def __init__(
        self,
        tags: ITagRepository,
        profiles: IProfileRepository,
        access: ContentAccess,
        bus: EventBus,
    ):
        self.tags = tags
        self.profiles = profiles
        self.access = access
        self.bus = bus

    async def tag_profile(
        self, content_id: int, tagged_profile_id: int, created_by_profile_id: int
    ) -> Tag:
        """
        Tag a profile in a content item

        Args:
            content_id: Content to tag in
            tagged_profile_id: Profile being tagged
            created_by_profile_id: Profile applying the tag, must own the content

        Returns:
            The active Tag

        Raises:
            NotFoundError: If the content or the tagged profile does not exist
            PermissionDeniedError: If the creator does not own the content
            ValidationError: On a self-tag when self-tagging is disabled
            ConflictError: If the profile is already tagged in the content
        """
        content = await self.access.get_content(content_id)
        if not content.is_owner(created_by_profile_id):
            raise PermissionDeniedError("You can only tag profiles in your own content")

        if tagged_profile_id == created_by_profile_id and not settings.ALLOW_SELF_TAG:
            raise ValidationError("You cannot tag yourself")

        if not await self.profiles.find_by_id(tagged_profile_id):
            raise NotFoundError("Profile not found")

        tag = await self.tags.activate(content_id, tagged_profile_id, created_by_profile_id)
        if not tag:
            raise ConflictError("Profile is already tagged in this content")

        logger.info(f"Profile {tagged_profile_id} tagged in content {content_id}")

        await self.bus.publish(
            DomainEvent(
                name=EventName.TAG_CREATED,
                actor_id=created_by_profile_id,
                subject_id=tagged_profile_id,
                data={"content_id": content_id, "tag_id": tag.id},
            )
        )
        return tag

    async def untag_profile(self, content_id: int, tagged_profile_id: int, actor_id: int) -> Tag:
        """
        Remove a tag; the content owner and the tagged profile may do so

        Raises:
            NotFoundError: If the content or an active tag does not exist
            PermissionDeniedError: If the actor is neither the owner nor the tagged profile
        """
        content = await self.access.get_content(content_id)
        if actor_id != tagged_profile_id and not content.is_owner(actor_id):
            raise PermissionDeniedError("You cannot remove this tag")

        tag = await self.tags.mark_removed(content_id, tagged_profile_id)
        if not tag:
            raise NotFoundError("Tag not found")

        logger.info(f"Profile {tagged_profile_id} untagged from content {content_id} by {actor_id}")

        await self.bus.publish(
            DomainEvent(
                name=EventName.TAG_REMOVED,
                actor_id=actor_id,
                subject_id=tagged_profile_id,
                data={"content_id": content_id, "tag_id": tag.id},
            )
        )
        return tag

    async def tagged_content(
        self,
        profile_id: int,
        viewer_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Content], bool]:
        """
        Content a profile is actively tagged in, as the viewer is allowed to see it

        Args:
            profile_id: Tagged profile
            viewer_id: Viewing profile, defaults to the tagged profile itself
            page: Page number (1-indexed)
            page_size: Items per page

        Returns:
            Tuple of (content list, has_more)

        Pages count visible items only, so tags are read in batches until the
        page and one look-ahead item are filled or the tags run out.
        """
        if viewer_id is None:
            viewer_id = profile_id

        # Validate pagination
        page = max(1, page)
        page_size = max(1, min(page_size, settings.MAX_PAGE_SIZE))
        skip = (page - 1) * page_size
        batch_size = page_size + 1

        visible: List[Content] = []
        offset = 0
        while len(visible) <= skip + page_size:
            tags = await self.tags.list_active_for_profile(
                profile_id, limit=batch_size, offset=offset
            )
            offset += len(tags)
            visible.extend(
                await self.access.filter_visible(viewer_id, [tag.content_id for tag in tags])
            )
            if len(tags) < batch_size:
                break

        has_more = len(visible) > skip + page_size
        return visible[skip:skip + page_size], has_more

    async def tags_for_content(self, viewer_id: Optional[int], content_id: int) -> List[Tag]:
        await self.access.require_visible(viewer_id, content_id)
        return await self.tags.list_active_for_content(content_id)
