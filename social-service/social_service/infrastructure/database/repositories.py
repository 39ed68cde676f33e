"""
Repository implementations - PostgreSQL data access layer
"""
from typing import Optional, List, Dict, Any, Iterable
import json

import asyncpg

from ...domain.models import (
    Profile,
    Visibility,
    FollowEdge,
    FollowStatus,
    Content,
    ContentKind,
    ContentCounters,
    Fact,
    FactType,
    Tag,
    TagStatus,
    NotificationPreference,
    Notification,
    NotificationType,
    NotificationPayload,
)
from ...domain.repositories import (
    IProfileRepository,
    IContentRepository,
    IFollowRepository,
    IEngagementRepository,
    ITagRepository,
    IPreferenceRepository,
    INotificationRepository,
)
from ...errors import NotFoundError
from .connection import Database

FACT_TABLES = {
    FactType.LIKE: "content_likes",
    FactType.COMMENT: "content_comments",
    FactType.SAVE: "content_saves",
}

COUNTER_COLUMNS = "likes_count, comments_count, saves_count"


def _json(value: Any) -> Dict[str, Any]:
    """asyncpg hands JSONB back as text unless a codec is registered"""
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _counters(row: Dict[str, Any], prefix: str = "") -> ContentCounters:
    return ContentCounters(
        likes_count=row[f"{prefix}likes_count"],
        comments_count=row[f"{prefix}comments_count"],
        saves_count=row[f"{prefix}saves_count"],
    )


class ProfileRepository(IProfileRepository):
    """Profile lookups against the shared profiles table"""

    def __init__(self, db: Database):
        self.db = db

    async def find_by_id(self, profile_id: int) -> Optional[Profile]:
        row = await self.db.fetch_one(
            "SELECT id, visibility FROM profiles WHERE id = $1", profile_id
        )
        if not row:
            return None
        return Profile(id=row["id"], visibility=Visibility(row["visibility"]))


class ContentRepository(IContentRepository):
    """Content lookups against the shared contents table"""

    def __init__(self, db: Database):
        self.db = db

    def _row_to_content(self, row: Dict[str, Any]) -> Content:
        return Content(
            id=row["id"],
            owner_id=row["owner_id"],
            visibility=Visibility(row["visibility"]),
            kind=ContentKind(row["kind"]),
            counters=_counters(row),
        )

    async def find_by_id(self, content_id: int) -> Optional[Content]:
        row = await self.db.fetch_one(
            f"""
            SELECT id, owner_id, kind, visibility, {COUNTER_COLUMNS}
            FROM contents
            WHERE id = $1
            """,
            content_id,
        )
        return self._row_to_content(row) if row else None

    async def find_many(self, content_ids: Iterable[int]) -> Dict[int, Content]:
        ids = list(content_ids)
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            f"""
            SELECT id, owner_id, kind, visibility, {COUNTER_COLUMNS}
            FROM contents
            WHERE id = ANY($1::bigint[])
            """,
            ids,
        )
        return {row["id"]: self._row_to_content(row) for row in rows}


class FollowRepository(IFollowRepository):
    """Follow edge repository implementation using PostgreSQL"""

    def __init__(self, db: Database):
        self.db = db

    def _row_to_edge(self, row: Optional[Dict[str, Any]]) -> Optional[FollowEdge]:
        """Convert database row to FollowEdge model"""
        if not row:
            return None
        return FollowEdge(
            follower_id=row["follower_id"],
            following_id=row["following_id"],
            status=FollowStatus(row["status"]),
            created_at=row["created_at"],
            responded_at=row["responded_at"],
        )

    async def create(
        self, follower_id: int, following_id: int, status: FollowStatus
    ) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            """
            INSERT INTO follows (follower_id, following_id, status)
            VALUES ($1, $2, $3)
            ON CONFLICT (follower_id, following_id) DO NOTHING
            RETURNING follower_id, following_id, status, created_at, responded_at
            """,
            follower_id,
            following_id,
            FollowStatus(status).value,
        )
        return self._row_to_edge(row)

    async def find(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            """
            SELECT follower_id, following_id, status, created_at, responded_at
            FROM follows
            WHERE follower_id = $1 AND following_id = $2
            """,
            follower_id,
            following_id,
        )
        return self._row_to_edge(row)

    async def transition(
        self,
        follower_id: int,
        following_id: int,
        from_status: FollowStatus,
        to_status: FollowStatus,
    ) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            """
            UPDATE follows
            SET status = $4, responded_at = now()
            WHERE follower_id = $1 AND following_id = $2 AND status = $3
            RETURNING follower_id, following_id, status, created_at, responded_at
            """,
            follower_id,
            following_id,
            FollowStatus(from_status).value,
            FollowStatus(to_status).value,
        )
        return self._row_to_edge(row)

    async def delete(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            """
            DELETE FROM follows
            WHERE follower_id = $1 AND following_id = $2
            RETURNING follower_id, following_id, status, created_at, responded_at
            """,
            follower_id,
            following_id,
        )
        return self._row_to_edge(row)

    async def list_incoming(
        self, following_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        rows = await self.db.fetch_all(
            """
            SELECT follower_id, following_id, status, created_at, responded_at
            FROM follows
            WHERE following_id = $1 AND status = $2
            ORDER BY created_at DESC
            LIMIT $3 OFFSET $4
            """,
            following_id,
            FollowStatus(status).value,
            limit,
            offset,
        )
        return [self._row_to_edge(row) for row in rows]

    async def list_outgoing(
        self, follower_id: int, status: FollowStatus, limit: int, offset: int
    ) -> List[FollowEdge]:
        rows = await self.db.fetch_all(
            """
            SELECT follower_id, following_id, status, created_at, responded_at
            FROM follows
            WHERE follower_id = $1 AND status = $2
            ORDER BY created_at DESC
            LIMIT $3 OFFSET $4
            """,
            follower_id,
            FollowStatus(status).value,
            limit,
            offset,
        )
        return [self._row_to_edge(row) for row in rows]

    async def count_incoming(self, following_id: int, status: FollowStatus) -> int:
        return await self.db.fetch_value(
            "SELECT COUNT(*) FROM follows WHERE following_id = $1 AND status = $2",
            following_id,
            FollowStatus(status).value,
        )

    async def count_outgoing(self, follower_id: int, status: FollowStatus) -> int:
        return await self.db.fetch_value(
            "SELECT COUNT(*) FROM follows WHERE follower_id = $1 AND status = $2",
            follower_id,
            FollowStatus(status).value,
        )


class EngagementRepository(IEngagementRepository):
    """
    Fact rows and derived counters

    Counter writes are relative (`x = x + delta`) so concurrent likes on the
    same row compose inside the database instead of racing in Python.
    """

    def __init__(self, db: Database):
        self.db = db

    def _row_to_fact(self, fact_type: FactType, row: Optional[Dict[str, Any]]) -> Optional[Fact]:
        if not row:
            return None
        return Fact(
            fact_type=fact_type,
            content_id=row["content_id"],
            actor_id=row["actor_id"],
            id=row.get("id"),
            body=row.get("body"),
            created_at=row.get("created_at"),
        )

    async def insert_fact(
        self,
        fact_type: FactType,
        content_id: int,
        actor_id: int,
        body: Optional[str] = None,
    ) -> Optional[Fact]:
        try:
            if fact_type == FactType.COMMENT:
                row = await self.db.fetch_one(
                    """
                    INSERT INTO content_comments (content_id, actor_id, body)
                    VALUES ($1, $2, $3)
                    RETURNING id, content_id, actor_id, body, created_at
                    """,
                    content_id,
                    actor_id,
                    body,
                )
            else:
                row = await self.db.fetch_one(
                    f"""
                    INSERT INTO {FACT_TABLES[fact_type]} (content_id, actor_id)
                    VALUES ($1, $2)
                    ON CONFLICT (content_id, actor_id) DO NOTHING
                    RETURNING content_id, actor_id, created_at
                    """,
                    content_id,
                    actor_id,
                )
        except asyncpg.ForeignKeyViolationError:
            # Content (or actor) deleted after the caller loaded it
            raise NotFoundError("Content not found")
        return self._row_to_fact(fact_type, row)

    async def delete_fact(
        self, fact_type: FactType, content_id: int, actor_id: int
    ) -> Optional[Fact]:
        row = await self.db.fetch_one(
            f"""
            DELETE FROM {FACT_TABLES[fact_type]}
            WHERE content_id = $1 AND actor_id = $2
            RETURNING content_id, actor_id, created_at
            """,
            content_id,
            actor_id,
        )
        return self._row_to_fact(fact_type, row)

    async def find_comment(self, comment_id: int) -> Optional[Fact]:
        row = await self.db.fetch_one(
            """
            SELECT id, content_id, actor_id, body, created_at
            FROM content_comments
            WHERE id = $1
            """,
            comment_id,
        )
        return self._row_to_fact(FactType.COMMENT, row)

    async def delete_comment(self, comment_id: int) -> Optional[Fact]:
        row = await self.db.fetch_one(
            """
            DELETE FROM content_comments
            WHERE id = $1
            RETURNING id, content_id, actor_id, body, created_at
            """,
            comment_id,
        )
        return self._row_to_fact(FactType.COMMENT, row)

    async def apply_counter_delta(
        self, content_id: int, fact_type: FactType, delta: int
    ) -> Optional[ContentCounters]:
        column = fact_type.counter_field
        row = await self.db.fetch_one(
            f"""
            UPDATE contents
            SET {column} = GREATEST({column} + $2, 0)
            WHERE id = $1
            RETURNING {COUNTER_COLUMNS}
            """,
            content_id,
            delta,
        )
        return _counters(row) if row else None

    async def recompute_counters(
        self, content_id: int
    ) -> Optional[Dict[str, ContentCounters]]:
        row = await self.db.fetch_one(
            """
            UPDATE contents AS c
            SET likes_count = (SELECT COUNT(*) FROM content_likes WHERE content_id = c.id),
                comments_count = (SELECT COUNT(*) FROM content_comments WHERE content_id = c.id),
                saves_count = (SELECT COUNT(*) FROM content_saves WHERE content_id = c.id)
            FROM (
                SELECT id, likes_count, comments_count, saves_count
                FROM contents
                WHERE id = $1
                FOR UPDATE
            ) AS old
            WHERE c.id = old.id
            RETURNING old.likes_count AS old_likes_count,
                      old.comments_count AS old_comments_count,
                      old.saves_count AS old_saves_count,
                      c.likes_count, c.comments_count, c.saves_count
            """,
            content_id,
        )
        if not row:
            return None
        return {"before": _counters(row, prefix="old_"), "after": _counters(row)}


class TagRepository(ITagRepository):
    """Tag repository implementation using PostgreSQL"""

    COLUMNS = (
        "id, content_id, tagged_profile_id, created_by_profile_id, "
        "status, created_at, updated_at"
    )

    def __init__(self, db: Database):
        self.db = db

    def _row_to_tag(self, row: Optional[Dict[str, Any]]) -> Optional[Tag]:
        if not row:
            return None
        return Tag(
            id=row["id"],
            content_id=row["content_id"],
            tagged_profile_id=row["tagged_profile_id"],
            created_by_profile_id=row["created_by_profile_id"],
            status=TagStatus(row["status"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def activate(
        self, content_id: int, tagged_profile_id: int, created_by_profile_id: int
    ) -> Optional[Tag]:
        try:
            row = await self.db.fetch_one(
                f"""
                INSERT INTO content_tags (content_id, tagged_profile_id, created_by_profile_id, status)
                VALUES ($1, $2, $3, 'active')
                ON CONFLICT (content_id, tagged_profile_id) DO UPDATE
                SET status = 'active',
                    created_by_profile_id = EXCLUDED.created_by_profile_id,
                    updated_at = now()
                WHERE content_tags.status = 'removed'
                RETURNING {self.COLUMNS}
                """,
                content_id,
                tagged_profile_id,
                created_by_profile_id,
            )
        except asyncpg.ForeignKeyViolationError:
            raise NotFoundError("Content or profile not found")
        return self._row_to_tag(row)

    async def find(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        row = await self.db.fetch_one(
            f"""
            SELECT {self.COLUMNS}
            FROM content_tags
            WHERE content_id = $1 AND tagged_profile_id = $2
            """,
            content_id,
            tagged_profile_id,
        )
        return self._row_to_tag(row)

    async def mark_removed(self, content_id: int, tagged_profile_id: int) -> Optional[Tag]:
        row = await self.db.fetch_one(
            f"""
            UPDATE content_tags
            SET status = 'removed', updated_at = now()
            WHERE content_id = $1 AND tagged_profile_id = $2 AND status = 'active'
            RETURNING {self.COLUMNS}
            """,
            content_id,
            tagged_profile_id,
        )
        return self._row_to_tag(row)

    async def list_active_for_profile(
        self, tagged_profile_id: int, limit: int, offset: int
    ) -> List[Tag]:
        rows = await self.db.fetch_all(
            f"""
            SELECT {self.COLUMNS}
            FROM content_tags
            WHERE tagged_profile_id = $1 AND status = 'active'
            ORDER BY updated_at DESC, id DESC
            LIMIT $2 OFFSET $3
            """,
            tagged_profile_id,
            limit,
            offset,
        )
        return [self._row_to_tag(row) for row in rows]

    async def list_active_for_content(self, content_id: int) -> List[Tag]:
        rows = await self.db.fetch_all(
            f"""
            SELECT {self.COLUMNS}
            FROM content_tags
            WHERE content_id = $1 AND status = 'active'
            ORDER BY id
            """,
            content_id,
        )
        return [self._row_to_tag(row) for row in rows]


class PreferenceRepository(IPreferenceRepository):
    """Notification preference repository implementation using PostgreSQL"""

    def __init__(self, db: Database):
        self.db = db

    def _row_to_preference(self, row: Dict[str, Any]) -> NotificationPreference:
        return NotificationPreference(
            profile_id=row["profile_id"],
            flags=_json(row["flags"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get_or_create(
        self, profile_id: int, defaults: Dict[str, bool]
    ) -> NotificationPreference:
        async with self.db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO notification_preferences (profile_id, flags)
                VALUES ($1, $2::jsonb)
                ON CONFLICT (profile_id) DO NOTHING
                """,
                profile_id,
                json.dumps(defaults),
            )
            row = await conn.fetchrow(
                """
                SELECT profile_id, flags, created_at, updated_at
                FROM notification_preferences
                WHERE profile_id = $1
                """,
                profile_id,
            )
        return self._row_to_preference(dict(row))

    async def set_flags(
        self, profile_id: int, flags: Dict[str, bool], defaults: Dict[str, bool]
    ) -> NotificationPreference:
        row = await self.db.fetch_one(
            """
            INSERT INTO notification_preferences (profile_id, flags)
            VALUES ($1, $2::jsonb || $3::jsonb)
            ON CONFLICT (profile_id) DO UPDATE
            SET flags = notification_preferences.flags || $3::jsonb,
                updated_at = now()
            RETURNING profile_id, flags, created_at, updated_at
            """,
            profile_id,
            json.dumps(defaults),
            json.dumps(flags),
        )
        return self._row_to_preference(row)


class NotificationRepository(INotificationRepository):
    """Notification repository implementation using PostgreSQL"""

    COLUMNS = (
        "id, recipient_id, type, actor_id, content_id, comment_id, tag_id, "
        "message, metadata, created_at, read, read_at"
    )

    def __init__(self, db: Database):
        self.db = db

    def _row_to_notification(self, row: Optional[Dict[str, Any]]) -> Optional[Notification]:
        if not row:
            return None
        return Notification(
            id=row["id"],
            recipient_id=row["recipient_id"],
            type=NotificationType(row["type"]),
            actor_id=row["actor_id"],
            content_id=row["content_id"],
            comment_id=row["comment_id"],
            tag_id=row["tag_id"],
            message=row["message"],
            metadata=_json(row["metadata"]),
            created_at=row["created_at"],
            read=row["read"],
            read_at=row["read_at"],
        )

    async def insert(
        self,
        recipient_id: int,
        notification_type: NotificationType,
        actor_id: int,
        payload: NotificationPayload,
    ) -> Notification:
        row = await self.db.fetch_one(
            f"""
            INSERT INTO notifications (
                recipient_id, type, actor_id, content_id, comment_id, tag_id, message, metadata
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb)
            RETURNING {self.COLUMNS}
            """,
            recipient_id,
            NotificationType(notification_type).value,
            actor_id,
            payload.content_id,
            payload.comment_id,
            payload.tag_id,
            payload.message,
            json.dumps(payload.metadata),
        )
        return self._row_to_notification(row)

    async def find_by_id(self, notification_id: int) -> Optional[Notification]:
        row = await self.db.fetch_one(
            f"SELECT {self.COLUMNS} FROM notifications WHERE id = $1", notification_id
        )
        return self._row_to_notification(row)

    async def list_for_recipient(
        self,
        recipient_id: int,
        before_id: Optional[int],
        limit: int,
        unread_only: bool = False,
    ) -> List[Notification]:
        rows = await self.db.fetch_all(
            f"""
            SELECT {self.COLUMNS}
            FROM notifications
            WHERE recipient_id = $1
              AND ($2::bigint IS NULL OR id < $2)
              AND (NOT $4::boolean OR read = false)
            ORDER BY id DESC
            LIMIT $3
            """,
            recipient_id,
            before_id,
            limit,
            unread_only,
        )
        return [self._row_to_notification(row) for row in rows]

    async def count_unread(self, recipient_id: int) -> int:
        return await self.db.fetch_value(
            "SELECT COUNT(*) FROM notifications WHERE recipient_id = $1 AND read = false",
            recipient_id,
        )

    async def mark_read(self, notification_id: int) -> Optional[Notification]:
        row = await self.db.fetch_one(
            f"""
            UPDATE notifications
            SET read = true, read_at = COALESCE(read_at, now())
            WHERE id = $1
            RETURNING {self.COLUMNS}
            """,
            notification_id,
        )
        return self._row_to_notification(row)

    async def mark_all_read(self, recipient_id: int) -> int:
        status = await self.db.execute(
            """
            UPDATE notifications
            SET read = true, read_at = now()
            WHERE recipient_id = $1 AND read = false
            """,
            recipient_id,
        )
        # asyncpg returns the command tag, e.g. "UPDATE 3"
        return int(status.split()[-1])
