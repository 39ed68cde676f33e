from .connection import Database, db, get_db
from .repositories import (
    ProfileRepository,
    ContentRepository,
    FollowRepository,
    EngagementRepository,
    TagRepository,
    PreferenceRepository,
    NotificationRepository,
)


__all__ = [
    # connection.py
    "Database",
    "db",
    "get_db",
    # repositories.py
    "ProfileRepository",
    "ContentRepository",
    "FollowRepository",
    "EngagementRepository",
    "TagRepository",
    "PreferenceRepository",
    "NotificationRepository",
]
