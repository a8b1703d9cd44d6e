from uuid import UUID

from social.core.db import get_connection
from social.models.models import Post
from social.services.post_service import fetch_posts
from social.services.user_service import require_user


async def get_news_feed(user_id: UUID) -> list[Post]:
    """
    Get the newsfeed for a user

    Returns the posts of every user that ``user_id`` follows, newest first.
    The user's own posts are not part of the feed since a user cannot follow
    themselves.
    """
    user = await require_user(user_id)
    if not user.following:
        return []

    async with get_connection() as conn:
        return await fetch_posts(conn, "p.user_id = ANY($1::uuid[])", user.following)


async def list_posts_by_user(user_id: UUID) -> list[Post]:
    """Get all posts created by one user, newest first"""
    await require_user(user_id)
    async with get_connection() as conn:
        return await fetch_posts(conn, "p.user_id = $1", user_id)
