from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import asyncpg
from asyncpg import Connection, Record

from social.core.auth import authenticate, hash_new_password, validate_password
from social.core.db import get_connection
from social.core.errors import IntegrityFault, InvalidCredential, NotFound, ValidationError
from social.models.models import Photo, User

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, name, email, salt, hashed_password, about, photo IS NOT NULL AS has_photo,
    following, followers, created_at, updated_at
"""

# Columns a profile update may touch, besides the password and photo
UPDATABLE_FIELDS = ("name", "email", "about")

FollowGraph = dict[UUID, tuple[list[UUID], list[UUID]]]


async def create_user(name: str, email: str, password: str | None, about: str | None = None) -> User:
    """Create a new user, storing only the salted hash of the password."""
    validate_password(password, required=True)
    assert password is not None
    salt, hashed_password = hash_new_password(password)
    user_id = uuid4()
    now = datetime.now(UTC)

    try:
        async with get_connection() as connection:
            row = await connection.fetchrow(
                f"""
                INSERT INTO users (id, name, email, salt, hashed_password, about, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING {USER_COLUMNS}
                """,
                user_id,
                name,
                email,
                salt,
                hashed_password,
                about,
                now,
            )
    except asyncpg.UniqueViolationError as exc:
        raise ValidationError("Email already exists") from exc

    logger.info(f"Created user {user_id}")
    return _user_from_record(row)


async def get_user_by_id(user_id: UUID) -> User | None:
    """Load user by id."""
    async with get_connection() as connection:
        row = await connection.fetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)
    if row is None:
        return None
    return _user_from_record(row)


async def get_user_by_email(email: str) -> User | None:
    """Load user by email."""
    async with get_connection() as connection:
        row = await connection.fetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE email = $1", email.strip())
    if row is None:
        return None
    return _user_from_record(row)


async def require_user(user_id: UUID) -> User:
    user = await get_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def authenticate_user(email: str, password: str) -> User:
    """Check an email/password pair against the stored credentials."""
    user = await get_user_by_email(email)
    if user is None:
        raise NotFound("User not found")
    if not authenticate(password, user.salt, user.hashed_password):
        logger.warning(f"Failed signin for user {user.id}")
        raise InvalidCredential("Email and password don't match.")
    return user


async def list_users() -> list[dict[str, Any]]:
    """List every user with public fields only."""
    async with get_connection() as connection:
        rows = await connection.fetch(
            "SELECT id, name, email, created_at, updated_at FROM users ORDER BY created_at"
        )
    return [dict(row) for row in rows]


async def get_user_names(user_ids: list[UUID]) -> dict[UUID, str]:
    """Map user ids to names; ids of deleted users are left out."""
    if not user_ids:
        return {}
    async with get_connection() as connection:
        rows = await connection.fetch("SELECT id, name FROM users WHERE id = ANY($1::uuid[])", user_ids)
    return {row["id"]: row["name"] for row in rows}


async def update_user(user_id: UUID, update_data: dict[str, Any], photo: Photo | None = None) -> User:
    """Apply a profile update; a new password is re-salted and re-hashed."""
    assignments: dict[str, Any] = {k: v for k, v in update_data.items() if k in UPDATABLE_FIELDS and v is not None}

    password = update_data.get("password")
    if password:
        validate_password(password, required=False)
        assignments["salt"], assignments["hashed_password"] = hash_new_password(password)

    if photo is not None:
        assignments["photo"] = photo.data
        assignments["photo_content_type"] = photo.content_type

    assignments["updated_at"] = datetime.now(UTC)

    columns = list(assignments)
    set_clause = ", ".join(f"{column} = ${index}" for index, column in enumerate(columns, start=2))

    try:
        async with get_connection() as connection:
            row = await connection.fetchrow(
                f"UPDATE users SET {set_clause} WHERE id = $1 RETURNING {USER_COLUMNS}",
                user_id,
                *(assignments[column] for column in columns),
            )
    except asyncpg.UniqueViolationError as exc:
        raise ValidationError("Email already exists") from exc

    if row is None:
        raise NotFound("User not found")
    logger.info(f"Updated user {user_id} ({', '.join(c for c in columns if c != 'updated_at')})")
    return _user_from_record(row)


async def delete_user(user_id: UUID) -> User:
    """Delete a user and drop their id from everyone's follow lists.

    The user's posts are kept.
    """
    try:
        async with get_connection() as connection, connection.transaction():
            # Lock every affected row in id order, as follow_user does
            await connection.execute(
                """
                SELECT id FROM users
                WHERE id = $1 OR $1 = ANY(following) OR $1 = ANY(followers)
                ORDER BY id FOR UPDATE
                """,
                user_id,
            )
            row = await connection.fetchrow(
                f"DELETE FROM users WHERE id = $1 RETURNING {USER_COLUMNS}",
                user_id,
            )
            if row is None:
                raise NotFound("User not found")
            await connection.execute(
                """
                UPDATE users
                SET following = array_remove(following, $1), followers = array_remove(followers, $1)
                WHERE $1 = ANY(following) OR $1 = ANY(followers)
                """,
                user_id,
            )
    except asyncpg.PostgresError as exc:
        logger.exception(f"Deleting user {user_id} rolled back")
        raise IntegrityFault("User could not be deleted") from exc

    logger.info(f"Deleted user {user_id}")
    return _user_from_record(row)


async def get_user_photo(user_id: UUID) -> Photo | None:
    """Return the stored profile photo, or None when the user has none."""
    async with get_connection() as connection:
        row = await connection.fetchrow("SELECT photo, photo_content_type FROM users WHERE id = $1", user_id)
    if row is None:
        raise NotFound("User not found")
    if row["photo"] is None:
        return None
    return Photo(data=row["photo"], content_type=row["photo_content_type"] or "application/octet-stream")


# Social graph
async def follow_user(follower_id: UUID, followee_id: UUID) -> User:
    """Record ``follower_id -> followee_id`` on both users; returns the followee."""
    if follower_id == followee_id:
        raise ValidationError("Cannot follow yourself")

    try:
        async with get_connection() as connection, connection.transaction():
            await _lock_users(connection, follower_id, followee_id)
            await connection.execute(
                """
                UPDATE users SET following = array_append(following, $2)
                WHERE id = $1 AND NOT ($2 = ANY(following))
                """,
                follower_id,
                followee_id,
            )
            row = await connection.fetchrow(
                f"""
                UPDATE users SET followers = CASE
                    WHEN $1 = ANY(followers) THEN followers ELSE array_append(followers, $1)
                END
                WHERE id = $2
                RETURNING {USER_COLUMNS}
                """,
                follower_id,
                followee_id,
            )
    except asyncpg.PostgresError as exc:
        logger.exception(f"Follow {follower_id} -> {followee_id} rolled back")
        raise IntegrityFault("Follow could not be recorded") from exc

    logger.info(f"User {follower_id} follows {followee_id}")
    return _user_from_record(row)


async def unfollow_user(follower_id: UUID, followee_id: UUID) -> User:
    """Remove ``follower_id -> followee_id`` from both users; returns the followee."""
    if follower_id == followee_id:
        raise ValidationError("Cannot unfollow yourself")

    try:
        async with get_connection() as connection, connection.transaction():
            await _lock_users(connection, follower_id, followee_id)
            await connection.execute(
                "UPDATE users SET following = array_remove(following, $2) WHERE id = $1",
                follower_id,
                followee_id,
            )
            row = await connection.fetchrow(
                f"""
                UPDATE users SET followers = array_remove(followers, $1)
                WHERE id = $2
                RETURNING {USER_COLUMNS}
                """,
                follower_id,
                followee_id,
            )
    except asyncpg.PostgresError as exc:
        logger.exception(f"Unfollow {follower_id} -> {followee_id} rolled back")
        raise IntegrityFault("Unfollow could not be recorded") from exc

    logger.info(f"User {follower_id} unfollowed {followee_id}")
    return _user_from_record(row)


async def find_people(user_id: UUID) -> list[dict[str, Any]]:
    """Users that ``user_id`` does not follow yet, excluding themselves."""
    user = await require_user(user_id)
    async with get_connection() as connection:
        rows = await connection.fetch(
            """
            SELECT id, name FROM users
            WHERE id <> $1 AND NOT (id = ANY($2::uuid[]))
            ORDER BY name, id
            """,
            user_id,
            user.following,
        )
    return [dict(row) for row in rows]


async def reconcile_follow_graph() -> int:
    """
    Repair the follow graph so that ``following`` and ``followers`` are inverses.

    Every edge recorded on either side is restored on both sides, and
    references to deleted users or duplicates are dropped. Returns the number
    of users rewritten.
    """
    async with get_connection() as connection, connection.transaction():
        rows = await connection.fetch("SELECT id, following, followers FROM users ORDER BY id FOR UPDATE")
        graph = {row["id"]: (list(row["following"]), list(row["followers"])) for row in rows}
        repairs = plan_follow_graph_repairs(graph)
        for user_id, (following, followers) in repairs.items():
            await connection.execute(
                "UPDATE users SET following = $2::uuid[], followers = $3::uuid[] WHERE id = $1",
                user_id,
                following,
                followers,
            )

    if repairs:
        logger.warning(f"Reconciled follow lists of {len(repairs)} users")
    return len(repairs)


def plan_follow_graph_repairs(graph: FollowGraph) -> FollowGraph:
    """Return the corrected ``(following, followers)`` of every user that needs a rewrite."""
    following: dict[UUID, list[UUID]] = {}
    followers: dict[UUID, list[UUID]] = {}
    for user_id, (user_following, user_followers) in graph.items():
        following[user_id] = _clean_refs(user_id, user_following, graph)
        followers[user_id] = _clean_refs(user_id, user_followers, graph)

    for user_id in graph:
        for followee_id in following[user_id]:
            if user_id not in followers[followee_id]:
                followers[followee_id].append(user_id)
        for follower_id in followers[user_id]:
            if user_id not in following[follower_id]:
                following[follower_id].append(user_id)

    return {
        user_id: (following[user_id], followers[user_id])
        for user_id, current in graph.items()
        if (following[user_id], followers[user_id]) != (list(current[0]), list(current[1]))
    }


def _clean_refs(user_id: UUID, refs: list[UUID], graph: FollowGraph) -> list[UUID]:
    cleaned: list[UUID] = []
    for ref in refs:
        if ref != user_id and ref in graph and ref not in cleaned:
            cleaned.append(ref)
    return cleaned


async def _lock_users(connection: Connection, *user_ids: UUID) -> None:
    """Row-lock the given users in id order, failing if any is missing."""
    rows = await connection.fetch(
        "SELECT id FROM users WHERE id = ANY($1::uuid[]) ORDER BY id FOR UPDATE",
        list(user_ids),
    )
    if len(rows) != len(set(user_ids)):
        raise NotFound("User not found")


def _user_from_record(row: Record) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        salt=row["salt"],
        hashed_password=row["hashed_password"],
        about=row["about"],
        has_photo=row["has_photo"],
        following=list(row["following"] or []),
        followers=list(row["followers"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
