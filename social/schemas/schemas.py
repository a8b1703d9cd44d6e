from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Passwords are plain ``str`` everywhere: they are hashed exactly as sent
Trimmed = Annotated[str, BeforeValidator(_strip)]
TrimmedEmail = Annotated[EmailStr, BeforeValidator(_strip)]


def accepts(*names: str):
    """Accept both the snake_case and camelCase spelling of a body field."""
    return Field(validation_alias=AliasChoices(*names))


class RequestModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Auth Schemas
class SigninRequest(RequestModel):
    # Normalized like UserCreate.email so signin finds the stored address
    email: TrimmedEmail
    password: str


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: str


class SigninResponse(BaseModel):
    token: str
    user: UserSummary


class MessageResponse(BaseModel):
    message: str


# User Schemas
class UserCreate(RequestModel):
    name: Trimmed
    email: TrimmedEmail
    password: Optional[str] = None
    about: Optional[Trimmed] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Name is required")
        return v


class UserListItem(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserRef(BaseModel):
    id: UUID
    name: Optional[str] = None


class UserProfileResponse(BaseModel):
    id: UUID
    name: str
    email: str
    about: Optional[str] = None
    has_photo: bool = False
    following: list[UserRef] = []
    followers: list[UserRef] = []
    created_at: datetime
    updated_at: Optional[datetime] = None


class UserUpdate(RequestModel):
    name: Optional[Trimmed] = None
    email: Optional[TrimmedEmail] = None
    password: Optional[str] = None
    about: Optional[Trimmed] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v:
            raise ValueError("Name is required")
        return v


class FollowRequest(RequestModel):
    follow_id: UUID = accepts("follow_id", "followId")


class UnfollowRequest(RequestModel):
    unfollow_id: UUID = accepts("unfollow_id", "unfollowId")


# Post Schemas
class CommentBody(RequestModel):
    text: Trimmed

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v:
            raise ValueError("Text is required")
        return v


class PostRef(RequestModel):
    post_id: UUID = accepts("post_id", "postId")


class CommentRequest(RequestModel):
    post_id: UUID = accepts("post_id", "postId")
    comment: CommentBody


class UncommentRequest(RequestModel):
    post_id: UUID = accepts("post_id", "postId")
    comment_id: UUID = accepts("comment_id", "commentId")


class CommentResponse(BaseModel):
    id: UUID
    text: str
    posted_by: UserRef
    created_at: datetime


class PostResponse(BaseModel):
    id: UUID
    text: str
    has_photo: bool = False
    posted_by: UserRef
    likes: list[UUID] = []
    comments: list[CommentResponse] = []
    created_at: datetime


class LikesResponse(BaseModel):
    id: UUID
    likes: list[UUID]


class CommentsResponse(BaseModel):
    id: UUID
    comments: list[CommentResponse]
