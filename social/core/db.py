from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg
from asyncpg import Connection, Pool

from social.config_secrets import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE

logger = logging.getLogger(__name__)

# Database connection pool
pool: Optional[Pool] = None
_pool_lock = asyncio.Lock()

# posts.user_id carries no foreign key: deleting an account leaves its posts in place
SCHEMA = """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT UNIQUE NOT NULL,
        salt TEXT NOT NULL,
        hashed_password TEXT NOT NULL,
        about TEXT,
        photo BYTEA,
        photo_content_type TEXT,
        following UUID[] NOT NULL DEFAULT '{}',
        followers UUID[] NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ,
        CONSTRAINT users_no_self_follow CHECK (NOT (id = ANY(following)) AND NOT (id = ANY(followers)))
    );
    CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);

    CREATE TABLE IF NOT EXISTS posts (
        id UUID PRIMARY KEY,
        user_id UUID NOT NULL,
        text TEXT NOT NULL,
        photo BYTEA,
        photo_content_type TEXT,
        likes UUID[] NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_posts_user_id ON posts(user_id);
    CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at DESC);

    CREATE TABLE IF NOT EXISTS comments (
        id UUID PRIMARY KEY,
        post_id UUID NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
        user_id UUID NOT NULL,
        text TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_comments_post_id ON comments(post_id);
"""


async def init_db(database_url: str | None = None) -> Pool:
    """Initialize database connection pool"""
    global pool
    pool = await asyncpg.create_pool(
        database_url or DATABASE_URL,
        min_size=DB_POOL_MIN_SIZE,
        max_size=DB_POOL_MAX_SIZE,
    )
    logger.info("Database pool initialized")

    # Initialize database schema
    await _create_tables()
    return pool


async def close_db():
    """Close database connection pool"""
    global pool
    if pool:
        await pool.close()
        pool = None


@asynccontextmanager
async def get_connection() -> AsyncIterator[Connection]:
    """Borrow a connection from the pool, initializing the pool on first use."""
    if pool is None:
        async with _pool_lock:
            if pool is None:
                await init_db()
    assert pool is not None
    async with pool.acquire() as connection:
        yield connection


async def _create_tables():
    """Create database tables if they don't exist"""
    async with get_connection() as connection:
        await connection.execute(SCHEMA)
