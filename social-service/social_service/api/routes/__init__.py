from .follows import router as follows_router
from .engagement import router as engagement_router
from .tags import router as tags_router
from .notifications import router as notifications_router
from .content import router as content_router


__all__ = [
    # follows.py
    "follows_router",
    # engagement.py
    "engagement_router",
    # tags.py
    "tags_router",
    # notifications.py
    "notifications_router",
    # content.py
    "content_router",
]
