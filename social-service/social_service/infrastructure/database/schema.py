"""
DDL for the tables owned by the social core

`profiles` and `contents` belong to external services; only the counter
columns of `contents` are written here, so they are created if missing to keep
local setups self-contained.
"""

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id BIGINT PRIMARY KEY,
        visibility TEXT NOT NULL DEFAULT 'public'
            CHECK (visibility IN ('public', 'private'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS contents (
        id BIGINT PRIMARY KEY,
        owner_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        kind TEXT NOT NULL DEFAULT 'post' CHECK (kind IN ('post', 'comment')),
        visibility TEXT NOT NULL DEFAULT 'public'
            CHECK (visibility IN ('public', 'private')),
        likes_count INTEGER NOT NULL DEFAULT 0 CHECK (likes_count >= 0),
        comments_count INTEGER NOT NULL DEFAULT 0 CHECK (comments_count >= 0),
        saves_count INTEGER NOT NULL DEFAULT 0 CHECK (saves_count >= 0)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS follows (
        follower_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        following_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        status TEXT NOT NULL CHECK (status IN ('pending', 'accepted', 'rejected')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        responded_at TIMESTAMPTZ,
        PRIMARY KEY (follower_id, following_id),
        CONSTRAINT follows_no_self_edge CHECK (follower_id <> following_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_follows_following_status ON follows(following_id, status)",
    """
    CREATE TABLE IF NOT EXISTS content_likes (
        content_id BIGINT NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
        actor_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (content_id, actor_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_saves (
        content_id BIGINT NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
        actor_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (content_id, actor_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_comments (
        id BIGSERIAL PRIMARY KEY,
        content_id BIGINT NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
        actor_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        body TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_content_comments_content ON content_comments(content_id)",
    """
    CREATE TABLE IF NOT EXISTS content_tags (
        id BIGSERIAL PRIMARY KEY,
        content_id BIGINT NOT NULL REFERENCES contents(id) ON DELETE CASCADE,
        tagged_profile_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        created_by_profile_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'removed')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT content_tags_unique_pair UNIQUE (content_id, tagged_profile_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_content_tags_profile_active
        ON content_tags(tagged_profile_id) WHERE status = 'active'
    """,
    """
    CREATE TABLE IF NOT EXISTS notification_preferences (
        profile_id BIGINT PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
        flags JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id BIGSERIAL PRIMARY KEY,
        recipient_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        actor_id BIGINT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
        content_id BIGINT,
        comment_id BIGINT,
        tag_id BIGINT,
        message TEXT,
        metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
        read BOOLEAN NOT NULL DEFAULT false,
        read_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CONSTRAINT notifications_no_self CHECK (actor_id <> recipient_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_notifications_recipient_unread
        ON notifications(recipient_id, id) WHERE read = false
    """,
    "CREATE INDEX IF NOT EXISTS idx_notifications_recipient ON notifications(recipient_id, id DESC)",
]
