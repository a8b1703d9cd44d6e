from pathlib import Path
from typing import Annotated, Optional
from uuid import UUID

import pydantic
from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import FileResponse

from social.api.serializers import upload_to_photo, user_to_list_item, user_to_profile_response
from social.core.auth import get_auth_context, require_owner
from social.core.errors import ValidationError
from social.models.models import AuthContext
from social.schemas.schemas import (
    FollowRequest,
    MessageResponse,
    UnfollowRequest,
    UserCreate,
    UserListItem,
    UserProfileResponse,
    UserRef,
    UserUpdate,
)
from social.services.user_service import (
    create_user,
    delete_user,
    find_people,
    follow_user,
    get_user_photo,
    list_users,
    require_user,
    unfollow_user,
    update_user,
)

router = APIRouter(prefix="/api/users", tags=["users"])

DEFAULT_PHOTO = Path(__file__).resolve().parent.parent / "static" / "profile-pic.svg"


@router.post("", status_code=status.HTTP_200_OK)
async def signup(user_data: UserCreate) -> MessageResponse:
    """
    Register a new user.

    Parameters:
    - **user_data**: name, email, password and optional about text

    Returns:
    - **MessageResponse**: confirmation message

    Raises:
    - **400 Bad Request**: If the email is taken or the password is missing or too short
    """
    await create_user(
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
        about=user_data.about,
    )
    return MessageResponse(message="Successfully signed up!")


@router.get("", status_code=status.HTTP_200_OK)
async def get_users() -> list[UserListItem]:
    """List all users with name, email and timestamps only."""
    return [user_to_list_item(row) for row in await list_users()]


@router.get("/defaultphoto", status_code=status.HTTP_200_OK)
async def default_photo() -> FileResponse:
    return FileResponse(DEFAULT_PHOTO, media_type="image/svg+xml")


@router.get("/photo/{user_id}", status_code=status.HTTP_200_OK)
async def photo(user_id: UUID) -> Response:
    """Stream the user's stored photo, or the default photo when there is none."""
    stored = await get_user_photo(user_id)
    if stored is None:
        return FileResponse(DEFAULT_PHOTO, media_type="image/svg+xml")
    return Response(content=stored.data, media_type=stored.content_type)


@router.put("/follow", status_code=status.HTTP_200_OK)
async def follow(
    payload: FollowRequest,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserProfileResponse:
    """
    Follow another user.

    Parameters:
    - **payload**: id of the user to follow
    - **identity**: caller resolved from the token

    Returns:
    - **UserProfileResponse**: the followed user's updated profile

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If either user does not exist
    - **400 Bad Request**: If attempting to follow yourself
    """
    followee = await follow_user(identity.user_id, payload.follow_id)
    return await user_to_profile_response(followee)


@router.put("/unfollow", status_code=status.HTTP_200_OK)
async def unfollow(
    payload: UnfollowRequest,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserProfileResponse:
    """
    Unfollow a user.

    Parameters:
    - **payload**: id of the user to unfollow
    - **identity**: caller resolved from the token

    Returns:
    - **UserProfileResponse**: the unfollowed user's updated profile

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If either user does not exist
    """
    followee = await unfollow_user(identity.user_id, payload.unfollow_id)
    return await user_to_profile_response(followee)


@router.get("/findpeople/{user_id}", status_code=status.HTTP_200_OK)
async def people_to_follow(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> list[UserRef]:
    """Users that ``user_id`` does not follow yet."""
    return [UserRef(id=row["id"], name=row["name"]) for row in await find_people(user_id)]


@router.get("/{user_id}", status_code=status.HTTP_200_OK)
async def get_user(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserProfileResponse:
    """
    Get a user's profile by their ID.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If user does not exist
    """
    user = await require_user(user_id)
    return await user_to_profile_response(user)


@router.put("/{user_id}", status_code=status.HTTP_200_OK)
async def update_profile(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
    name: Annotated[Optional[str], Form()] = None,
    email: Annotated[Optional[str], Form()] = None,
    password: Annotated[Optional[str], Form()] = None,
    about: Annotated[Optional[str], Form()] = None,
    photo: Annotated[Optional[UploadFile], File()] = None,
) -> UserProfileResponse:
    """
    Update the caller's own profile from a multipart form.

    Parameters:
    - **name**, **email**, **password**, **about**: optional form fields
    - **photo**: optional image file

    Returns:
    - **UserProfileResponse**: Updated user profile information

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If ``user_id`` is not the caller
    - **400 Bad Request**: If a field is invalid or the email is taken
    """
    require_owner(identity, user_id)
    try:
        update_data = UserUpdate(name=name, email=email, password=password, about=about)
    except pydantic.ValidationError as exc:
        raise ValidationError(exc.errors()[0]["msg"]) from exc

    updated = await update_user(
        user_id,
        update_data.model_dump(exclude_none=True),
        photo=await upload_to_photo(photo),
    )
    return await user_to_profile_response(updated)


@router.delete("/{user_id}", status_code=status.HTTP_200_OK)
async def remove_account(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserProfileResponse:
    """
    Delete the caller's own account.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If ``user_id`` is not the caller
    - **404 Not Found**: If user does not exist
    """
    require_owner(identity, user_id)
    deleted = await delete_user(user_id)
    return await user_to_profile_response(deleted)
