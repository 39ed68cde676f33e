"""
Engagement counter maintainer

Fact rows are the source of truth. Counters move by relative deltas on the
hot path and are only recomputed from the fact tables by `reconcile`.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional
import logging

from ..domain.models import ContentCounters, Fact, FactType
from ..domain.repositories import IEngagementRepository
from ..errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    content_id: int
    before: ContentCounters
    after: ContentCounters

    @property
    def drifted(self) -> bool:
        return self.before != self.after


class EngagementCounterMaintainer:
    """Keeps likes_count, comments_count and saves_count equal to their fact rows"""

    def __init__(self, repository: IEngagementRepository):
        self.repo = repository

    async def on_fact_inserted(
        self,
        fact_type: FactType,
        content_id: int,
        actor_id: int,
        body: Optional[str] = None,
    ) -> Fact:
        """
        Insert a fact row and bump its counter by one

        Args:
            fact_type: like, comment or save
            content_id: Content the fact refers to
            actor_id: Acting profile
            body: Comment text

        Returns:
            The inserted Fact

        Raises:
            ConflictError: If the actor already liked/saved the content
            NotFoundError: If the content was deleted before the insert
        """
        fact_type = FactType(fact_type)
        fact = await self.repo.insert_fact(fact_type, content_id, actor_id, body=body)
        if not fact:
            raise ConflictError(f"You already {fact_type.value}d this content")

        counters = await self.repo.apply_counter_delta(content_id, fact_type, 1)
        if counters is None:
            # Content vanished between the insert and the delta; reconcile repairs it
            logger.warning(f"Counter row for content {content_id} missing after {fact_type.value}")

        logger.info(f"{fact_type.value} on content {content_id} by {actor_id}")
        return fact

    async def on_fact_deleted(
        self,
        fact_type: FactType,
        content_id: int,
        actor_id: Optional[int] = None,
        comment_id: Optional[int] = None,
    ) -> Fact:
        """
        Delete a fact row and decrement its counter, never below zero

        Likes and saves are addressed by (content, actor), comments by id.

        Raises:
            ValidationError: If the fact cannot be addressed
            NotFoundError: If the fact row does not exist
        """
        fact_type = FactType(fact_type)
        if fact_type == FactType.COMMENT:
            if comment_id is None:
                raise ValidationError("comment_id is required to delete a comment")
            fact = await self.repo.delete_comment(comment_id)
        else:
            if actor_id is None:
                raise ValidationError(f"actor_id is required to delete a {fact_type.value}")
            fact = await self.repo.delete_fact(fact_type, content_id, actor_id)

        if not fact:
            raise NotFoundError(f"{fact_type.value.capitalize()} not found")

        await self.repo.apply_counter_delta(fact.content_id, fact_type, -1)

        logger.info(f"{fact_type.value} removed from content {fact.content_id}")
        return fact

    async def reconcile(self, content_id: int) -> ReconcileResult:
        """
        Recompute all three counters from the live fact rows

        Drift is logged, never raised. Running it twice changes nothing.

        Raises:
            NotFoundError: If the content does not exist
        """
        result = await self.repo.recompute_counters(content_id)
        if result is None:
            raise NotFoundError("Content not found")

        reconciled = ReconcileResult(
            content_id=content_id, before=result["before"], after=result["after"]
        )
        if reconciled.drifted:
            logger.warning(
                f"Counter drift on content {content_id}: "
                f"{reconciled.before} -> {reconciled.after}"
            )
        return reconciled

    async def reconcile_many(self, content_ids: Iterable[int]) -> List[ReconcileResult]:
        results = []
        for content_id in content_ids:
            try:
                results.append(await self.reconcile(content_id))
            except NotFoundError:
                logger.info(f"Skipping reconcile of missing content {content_id}")
        return results
