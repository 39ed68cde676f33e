"""
Visibility resolver - the single content access predicate

Pure functions, no storage access. Every read path (single fetch, counters,
tagged content listing) must decide access through `resolve`/`can_view`.
"""
from dataclasses import dataclass
from typing import Optional
from enum import Enum

from .models import Visibility, FollowStatus


class VisibilityReason(str, Enum):
    """Rule that decided an access check"""
    OWN_CONTENT = "own_content"
    PUBLIC = "public"
    FOLLOWING = "following"
    TAGGED = "tagged"
    NOT_FOLLOWING = "not_following"


@dataclass(frozen=True)
class VisibilityDecision:
    """Outcome of an access check"""
    allowed: bool
    reason: VisibilityReason

    def __bool__(self) -> bool:
        return self.allowed


def resolve(
    viewer_id: Optional[int],
    owner_id: int,
    visibility: Visibility,
    follow_status: Optional[FollowStatus] = None,
    viewer_is_tagged: bool = False,
) -> VisibilityDecision:
    """
    Decide whether a viewer may see content

    Rules are evaluated in a fixed order:
        1. the owner always sees their content
        2. public content is visible to everyone, anonymous viewers included
        3. an accepted follow edge viewer -> owner grants access
        4. a profile with an active tag on the content may see it
        5. everything else is denied

    Args:
        viewer_id: Viewing profile, None for anonymous viewers
        owner_id: Owner of the content
        visibility: Content visibility flag
        follow_status: Status of the edge viewer -> owner, None when absent
        viewer_is_tagged: Whether the viewer has an active tag on the content

    Returns:
        VisibilityDecision with the deciding rule
    """
    if viewer_id is not None and viewer_id == owner_id:
        return VisibilityDecision(True, VisibilityReason.OWN_CONTENT)

    if Visibility(visibility) == Visibility.PUBLIC:
        return VisibilityDecision(True, VisibilityReason.PUBLIC)

    if viewer_id is None:
        return VisibilityDecision(False, VisibilityReason.NOT_FOLLOWING)

    if follow_status is not None and FollowStatus(follow_status) == FollowStatus.ACCEPTED:
        return VisibilityDecision(True, VisibilityReason.FOLLOWING)

    if viewer_is_tagged:
        return VisibilityDecision(True, VisibilityReason.TAGGED)

    return VisibilityDecision(False, VisibilityReason.NOT_FOLLOWING)


def can_view(
    viewer_id: Optional[int],
    owner_id: int,
    visibility: Visibility,
    follow_status: Optional[FollowStatus] = None,
    viewer_is_tagged: bool = False,
) -> bool:
    """Boolean form of `resolve`"""
    return resolve(
        viewer_id, owner_id, visibility, follow_status, viewer_is_tagged
    ).allowed


def needs_relationship(viewer_id: Optional[int], owner_id: int, visibility: Visibility) -> bool:
    """True when rules 1-2 cannot decide and the follow/tag state must be loaded"""
    if viewer_id is None or viewer_id == owner_id:
        return False
    return Visibility(visibility) != Visibility.PUBLIC
