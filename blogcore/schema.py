"""PostgreSQL schema for posts, tags, post-tag links and comments"""

import asyncpg

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id BIGSERIAL PRIMARY KEY,
    slug VARCHAR(255) NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    summary TEXT,
    state VARCHAR(16) NOT NULL CHECK (state IN ('draft', 'published')),
    locale VARCHAR(8) NOT NULL DEFAULT 'ko',
    original_post_id BIGINT REFERENCES posts(id) ON DELETE CASCADE,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL,
    views BIGINT NOT NULL DEFAULT 0 CHECK (views >= 0),
    CONSTRAINT posts_slug_locale_key UNIQUE (slug, locale),
    CONSTRAINT posts_translation_locale_key UNIQUE (original_post_id, locale)
);

CREATE INDEX IF NOT EXISTS idx_posts_locale ON posts(locale);
CREATE INDEX IF NOT EXISTS idx_posts_original_post_id ON posts(original_post_id);
CREATE INDEX IF NOT EXISTS idx_posts_locale_state ON posts(locale, state);

CREATE TABLE IF NOT EXISTS tags (
    id BIGSERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL,
    post_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS post_tags (
    post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    tag_id BIGINT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (post_id, tag_id)
);

CREATE TABLE IF NOT EXISTS comments (
    id UUID PRIMARY KEY,
    seq BIGSERIAL NOT NULL,
    content TEXT NOT NULL,
    author_name VARCHAR(50) NOT NULL,
    created_at TIMESTAMPTZ NOT NULL,
    post_id BIGINT NOT NULL REFERENCES posts(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_comments_post_id ON comments(post_id, created_at, seq);
"""

TRUNCATE_SQL = "TRUNCATE TABLE comments, post_tags, tags, posts RESTART IDENTITY CASCADE"


async def apply_schema(conn: asyncpg.Connection) -> None:
    """Create every table and index that does not exist yet"""
    await conn.execute(SCHEMA_SQL)


async def truncate_all(conn: asyncpg.Connection) -> None:
    """Remove all rows (used by tests and local resets)"""
    await conn.execute(TRUNCATE_SQL)
