from __future__ import annotations

from typing import Any

from fastapi import UploadFile

from social.core.errors import ValidationError
from social.models.models import Comment, Photo, Post, User
from social.schemas.schemas import (
    CommentResponse,
    PostResponse,
    UserListItem,
    UserProfileResponse,
    UserRef,
    UserSummary,
)
from social.services.user_service import get_user_names


def user_to_summary(user: User) -> UserSummary:
    return UserSummary(id=user.id, name=user.name, email=user.email)


def user_to_list_item(row: dict[str, Any]) -> UserListItem:
    return UserListItem(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def user_to_profile_response(user: User) -> UserProfileResponse:
    """Public profile with follow lists expanded to ``{id, name}``; salt and hash are never copied."""
    names = await get_user_names(list(dict.fromkeys(user.following + user.followers)))
    return UserProfileResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        about=user.about,
        has_photo=user.has_photo,
        following=[UserRef(id=ref, name=names[ref]) for ref in user.following if ref in names],
        followers=[UserRef(id=ref, name=names[ref]) for ref in user.followers if ref in names],
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def comment_to_response(comment: Comment) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        text=comment.text,
        posted_by=UserRef(id=comment.user_id, name=comment.user_name),
        created_at=comment.created_at,
    )


def post_to_response(post: Post) -> PostResponse:
    return PostResponse(
        id=post.id,
        text=post.text,
        has_photo=post.has_photo,
        posted_by=UserRef(id=post.user_id, name=post.user_name),
        likes=post.likes,
        comments=[comment_to_response(comment) for comment in post.comments],
        created_at=post.created_at,
    )


async def upload_to_photo(upload: UploadFile | None) -> Photo | None:
    """Read an uploaded image; an empty file field counts as no photo."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    if not data:
        return None
    content_type = upload.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Photo must be an image")
    return Photo(data=data, content_type=content_type)
