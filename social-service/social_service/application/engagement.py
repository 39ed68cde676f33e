"""
Engagement commands - likes, comments and saves
"""
from typing import Optional
import logging

from ..domain.models import Content, ContentCounters, Fact, FactType
from ..errors import NotFoundError, PermissionDeniedError, ValidationError
from .counters import EngagementCounterMaintainer
from .events import DomainEvent, EventBus, EventName
from .visibility import ContentAccess

logger = logging.getLogger(__name__)


class EngagementService:
    """Records and removes facts, then announces them on the event bus"""

    def __init__(
        self,
        counters: EngagementCounterMaintainer,
        access: ContentAccess,
        bus: EventBus,
    ):
        self.counters = counters
        self.access = access
        self.bus = bus

    async def _publish(self, name: str, actor_id: int, content: Content, fact: Fact):
        await self.bus.publish(
            DomainEvent(
                name=name,
                actor_id=actor_id,
                subject_id=content.owner_id,
                data={
                    "fact_type": fact.fact_type.value,
                    "content_id": content.id,
                    "comment_id": fact.id if fact.fact_type == FactType.COMMENT else None,
                },
            )
        )

    async def record(
        self,
        fact_type: FactType,
        actor_id: int,
        content_id: int,
        body: Optional[str] = None,
    ) -> Fact:
        """
        Record a like, comment or save on content the actor can see

        Raises:
            NotFoundError: If the content does not exist
            PermissionDeniedError: If the actor cannot view the content
            ConflictError: On a repeated like or save
        """
        content = await self.access.require_visible(actor_id, content_id)
        fact = await self.counters.on_fact_inserted(fact_type, content_id, actor_id, body=body)
        await self._publish(EventName.FACT_INSERTED, actor_id, content, fact)
        return fact

    async def record_like(self, actor_id: int, content_id: int) -> Fact:
        return await self.record(FactType.LIKE, actor_id, content_id)

    async def record_save(self, actor_id: int, content_id: int) -> Fact:
        return await self.record(FactType.SAVE, actor_id, content_id)

    async def record_comment(self, actor_id: int, content_id: int, body: str) -> Fact:
        if not body or not body.strip():
            raise ValidationError("Comment text cannot be empty")
        return await self.record(FactType.COMMENT, actor_id, content_id, body=body.strip())

    async def remove(self, fact_type: FactType, actor_id: int, content_id: int) -> Fact:
        """Retract the actor's own like or save; allowed after access was revoked"""
        content = await self.access.get_content(content_id)
        fact = await self.counters.on_fact_deleted(fact_type, content_id, actor_id=actor_id)
        await self._publish(EventName.FACT_DELETED, actor_id, content, fact)
        return fact

    async def remove_like(self, actor_id: int, content_id: int) -> Fact:
        return await self.remove(FactType.LIKE, actor_id, content_id)

    async def remove_save(self, actor_id: int, content_id: int) -> Fact:
        return await self.remove(FactType.SAVE, actor_id, content_id)

    async def remove_comment(self, actor_id: int, comment_id: int) -> Fact:
        """
        Delete a comment

        Raises:
            NotFoundError: If the comment does not exist
            PermissionDeniedError: If the actor is neither the author nor the content owner
        """
        comment = await self.counters.repo.find_comment(comment_id)
        if not comment:
            raise NotFoundError("Comment not found")

        content = await self.access.get_content(comment.content_id)
        if actor_id != comment.actor_id and not content.is_owner(actor_id):
            raise PermissionDeniedError("You can only delete your own comments or comments on your content")

        fact = await self.counters.on_fact_deleted(
            FactType.COMMENT, comment.content_id, comment_id=comment_id
        )
        await self._publish(EventName.FACT_DELETED, actor_id, content, fact)
        return fact

    async def counters_for(self, viewer_id: Optional[int], content_id: int) -> ContentCounters:
        """Counters of content the viewer can see"""
        content = await self.access.require_visible(viewer_id, content_id)
        return content.counters
