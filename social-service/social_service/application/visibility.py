"""
Read-path access checks built on the visibility resolver
"""
from typing import Dict, Iterable, List, Optional
import logging

from ..domain.models import Content
from ..domain.repositories import IContentRepository, ITagRepository
from ..domain.visibility import VisibilityDecision, needs_relationship, resolve
from ..errors import NotFoundError, PermissionDeniedError
from .relationships import RelationshipService

logger = logging.getLogger(__name__)


class ContentAccess:
    """Loads the state the resolver needs, only as far as the rules require"""

    def __init__(
        self,
        contents: IContentRepository,
        relationships: RelationshipService,
        tags: ITagRepository,
    ):
        self.contents = contents
        self.relationships = relationships
        self.tags = tags

    async def get_content(self, content_id: int) -> Content:
        content = await self.contents.find_by_id(content_id)
        if not content:
            raise NotFoundError("Content not found")
        return content

    async def decide(self, viewer_id: Optional[int], content: Content) -> VisibilityDecision:
        if not needs_relationship(viewer_id, content.owner_id, content.visibility):
            return resolve(viewer_id, content.owner_id, content.visibility)

        follow_status = await self.relationships.follow_status(viewer_id, content.owner_id)
        decision = resolve(viewer_id, content.owner_id, content.visibility, follow_status)
        if decision.allowed:
            return decision

        tag = await self.tags.find(content.id, viewer_id)
        return resolve(
            viewer_id,
            content.owner_id,
            content.visibility,
            follow_status,
            viewer_is_tagged=bool(tag and tag.is_active()),
        )

    async def can_view(self, viewer_id: Optional[int], content_id: int) -> bool:
        """
        Check whether a viewer may see a content item

        Raises:
            NotFoundError: If the content does not exist
        """
        content = await self.get_content(content_id)
        return (await self.decide(viewer_id, content)).allowed

    async def require_visible(self, viewer_id: Optional[int], content_id: int) -> Content:
        """Load content the viewer may see, PermissionDeniedError otherwise"""
        content = await self.get_content(content_id)
        decision = await self.decide(viewer_id, content)
        if not decision.allowed:
            logger.debug(f"Profile {viewer_id} denied access to content {content_id}")
            raise PermissionDeniedError("You do not have access to this content")
        return content

    async def filter_visible(
        self, viewer_id: Optional[int], content_ids: Iterable[int]
    ) -> List[Content]:
        """Keep the existing content items the viewer may see, in input order"""
        content_ids = list(content_ids)
        found: Dict[int, Content] = await self.contents.find_many(content_ids)

        visible = []
        for content_id in content_ids:
            content = found.get(content_id)
            if content and (await self.decide(viewer_id, content)).allowed:
                visible.append(content)
        return visible
