import logging
from datetime import UTC, datetime
from typing import Optional
from uuid import UUID, uuid4

from asyncpg import Connection, Record

from social.core.auth import require_owner
from social.core.db import get_connection
from social.core.errors import Forbidden, NotFound, ValidationError
from social.models.models import AuthContext, Comment, Photo, Post

logger = logging.getLogger(__name__)

POST_QUERY = """
    SELECT
        p.id, p.user_id, u.name AS user_name, p.text, p.photo IS NOT NULL AS has_photo,
        p.likes, p.created_at
    FROM posts p
    LEFT JOIN users u ON u.id = p.user_id
"""


async def create_post(user_id: UUID, text: Optional[str], photo: Optional[Photo] = None) -> Post:
    """Create a new post with empty likes and comments"""
    text = (text or "").strip()
    if not text:
        raise ValidationError("Text is required")

    post_id = uuid4()
    now = datetime.now(UTC)

    async with get_connection() as conn:
        owner_exists = await conn.fetchval("SELECT 1 FROM users WHERE id = $1", user_id)
        if not owner_exists:
            raise NotFound("User not found")

        await conn.execute(
            """
            INSERT INTO posts (id, user_id, text, photo, photo_content_type, created_at)
            VALUES ($1, $2, $3, $4, $5, $6)
        """,
            post_id,
            user_id,
            text,
            photo.data if photo else None,
            photo.content_type if photo else None,
            now,
        )
        posts = await fetch_posts(conn, "p.id = $1", post_id)

    logger.info(f"User {user_id} created post {post_id}")
    return posts[0]


async def get_post(post_id: UUID) -> Optional[Post]:
    """Get a post by ID with its comments"""
    async with get_connection() as conn:
        posts = await fetch_posts(conn, "p.id = $1", post_id)
    return posts[0] if posts else None


async def delete_post(identity: AuthContext, post_id: UUID) -> Post:
    """Delete a post owned by the caller; its comments go with it"""
    post = await get_post(post_id)
    if post is None:
        raise NotFound("Post not found")
    require_owner(identity, post.user_id)

    async with get_connection() as conn:
        await conn.execute("DELETE FROM posts WHERE id = $1", post_id)

    logger.info(f"User {identity.user_id} deleted post {post_id}")
    return post


async def like_post(user_id: UUID, post_id: UUID) -> list[UUID]:
    """Add a like; liking twice is a no-op"""
    async with get_connection() as conn:
        likes = await conn.fetchval(
            """
            UPDATE posts SET likes = CASE
                WHEN $2 = ANY(likes) THEN likes ELSE array_append(likes, $2)
            END
            WHERE id = $1
            RETURNING likes
        """,
            post_id,
            user_id,
        )
    if likes is None:
        raise NotFound("Post not found")
    return list(likes)


async def unlike_post(user_id: UUID, post_id: UUID) -> list[UUID]:
    """Remove a like"""
    async with get_connection() as conn:
        likes = await conn.fetchval(
            "UPDATE posts SET likes = array_remove(likes, $2) WHERE id = $1 RETURNING likes",
            post_id,
            user_id,
        )
    if likes is None:
        raise NotFound("Post not found")
    return list(likes)


async def create_comment(user_id: UUID, post_id: UUID, text: str) -> list[Comment]:
    """Append a comment to a post and return the post's comments"""
    text = text.strip()
    if not text:
        raise ValidationError("Text is required")

    async with get_connection() as conn, conn.transaction():
        post_exists = await conn.fetchval("SELECT 1 FROM posts WHERE id = $1 FOR SHARE", post_id)
        if not post_exists:
            raise NotFound("Post not found")

        await conn.execute(
            """
            INSERT INTO comments (id, post_id, user_id, text, created_at)
            VALUES ($1, $2, $3, $4, $5)
        """,
            uuid4(),
            post_id,
            user_id,
            text,
            datetime.now(UTC),
        )
        comments = await fetch_comments(conn, [post_id])

    return comments.get(post_id, [])


async def delete_comment(user_id: UUID, post_id: UUID, comment_id: UUID) -> list[Comment]:
    """Remove one comment, identified by its id, written by the caller"""
    async with get_connection() as conn, conn.transaction():
        author_id = await conn.fetchval(
            "SELECT user_id FROM comments WHERE id = $1 AND post_id = $2 FOR UPDATE",
            comment_id,
            post_id,
        )
        if author_id is None:
            raise NotFound("Comment not found")
        if author_id != user_id:
            raise Forbidden("User is not authorized")

        await conn.execute("DELETE FROM comments WHERE id = $1", comment_id)
        comments = await fetch_comments(conn, [post_id])

    return comments.get(post_id, [])


async def get_post_photo(post_id: UUID) -> Photo:
    async with get_connection() as conn:
        row = await conn.fetchrow("SELECT photo, photo_content_type FROM posts WHERE id = $1", post_id)
    if row is None:
        raise NotFound("Post not found")
    if row["photo"] is None:
        raise NotFound("Post has no photo")
    return Photo(data=row["photo"], content_type=row["photo_content_type"] or "application/octet-stream")


async def fetch_posts(conn: Connection, condition: str, *args) -> list[Post]:
    """
    Load posts matching ``condition`` newest first, with their comments.

    ``condition`` is a trusted SQL fragment over the ``p`` (posts) alias.
    """
    rows = await conn.fetch(
        f"""
        {POST_QUERY}
        WHERE {condition}
        ORDER BY p.created_at DESC, p.id DESC
    """,
        *args,
    )
    comments = await fetch_comments(conn, [row["id"] for row in rows])
    return [_post_from_record(row, comments.get(row["id"], [])) for row in rows]


async def fetch_comments(conn: Connection, post_ids: list[UUID]) -> dict[UUID, list[Comment]]:
    """Comments of the given posts in insertion order, grouped by post id"""
    if not post_ids:
        return {}
    rows = await conn.fetch(
        """
        SELECT c.id, c.post_id, c.user_id, u.name AS user_name, c.text, c.created_at
        FROM comments c
        LEFT JOIN users u ON u.id = c.user_id
        WHERE c.post_id = ANY($1::uuid[])
        ORDER BY c.created_at, c.id
    """,
        post_ids,
    )
    grouped: dict[UUID, list[Comment]] = {}
    for row in rows:
        grouped.setdefault(row["post_id"], []).append(
            Comment(
                id=row["id"],
                post_id=row["post_id"],
                user_id=row["user_id"],
                user_name=row["user_name"],
                text=row["text"],
                created_at=row["created_at"],
            )
        )
    return grouped


def _post_from_record(row: Record, comments: list[Comment]) -> Post:
    return Post(
        id=row["id"],
        user_id=row["user_id"],
        user_name=row["user_name"],
        text=row["text"],
        has_photo=row["has_photo"],
        likes=list(row["likes"] or []),
        comments=comments,
        created_at=row["created_at"],
    )
