from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


# Database models
class User(BaseModel):
    id: UUID
    name: str
    email: str
    salt: str
    hashed_password: str
    about: str | None = None
    has_photo: bool = False
    following: list[UUID] = Field(default_factory=list)
    followers: list[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None


class Comment(BaseModel):
    id: UUID
    post_id: UUID
    user_id: UUID
    user_name: str | None = None  # None once the author's account is deleted
    text: str
    created_at: datetime


class Post(BaseModel):
    id: UUID
    user_id: UUID
    user_name: str | None = None
    text: str
    has_photo: bool = False
    likes: list[UUID] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    created_at: datetime


class Photo(BaseModel):
    data: bytes
    content_type: str


class AuthContext(BaseModel):
    """Verified identity of the caller, scoped to one request."""

    user_id: UUID
