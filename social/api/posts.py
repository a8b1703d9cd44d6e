from typing import Annotated, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from social.api.serializers import comment_to_response, post_to_response, upload_to_photo
from social.core.auth import get_auth_context, require_owner
from social.models.models import AuthContext
from social.schemas.schemas import (
    CommentRequest,
    CommentsResponse,
    LikesResponse,
    PostRef,
    PostResponse,
    UncommentRequest,
)
from social.services.feed_service import get_news_feed, list_posts_by_user
from social.services.post_service import (
    create_comment,
    create_post,
    delete_comment,
    delete_post,
    get_post_photo,
    like_post,
    unlike_post,
)

router = APIRouter(prefix="/api/posts", tags=["posts"])


@router.get("/feed/{user_id}", status_code=status.HTTP_200_OK)
async def news_feed(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> List[PostResponse]:
    """
    Get the newsfeed of a user.

    Parameters:
    - **user_id**: UUID of the user whose feed to build

    Returns:
    - **List[PostResponse]**: posts by followed users, newest first

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If user does not exist
    """
    return [post_to_response(post) for post in await get_news_feed(user_id)]


@router.get("/by/{user_id}", status_code=status.HTTP_200_OK)
async def posts_by_user(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> List[PostResponse]:
    """Get posts created by a specific user, newest first."""
    return [post_to_response(post) for post in await list_posts_by_user(user_id)]


@router.post("/new/{user_id}", status_code=status.HTTP_200_OK)
async def new_post(
    user_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
    text: Annotated[Optional[str], Form()] = None,
    photo: Annotated[Optional[UploadFile], File()] = None,
) -> PostResponse:
    """
    Create a post from a multipart form.

    Parameters:
    - **user_id**: the posting user, must be the caller
    - **text**: post body
    - **photo**: optional image file

    Returns:
    - **PostResponse**: The created post

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If ``user_id`` is not the caller
    - **400 Bad Request**: If the text is missing
    """
    require_owner(identity, user_id)
    post = await create_post(user_id, text, photo=await upload_to_photo(photo))
    return post_to_response(post)


@router.get("/photo/{post_id}", status_code=status.HTTP_200_OK)
async def post_photo(post_id: UUID) -> Response:
    stored = await get_post_photo(post_id)
    return Response(content=stored.data, media_type=stored.content_type)


@router.put("/like", status_code=status.HTTP_200_OK)
async def like(
    payload: PostRef,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> LikesResponse:
    """Like a post. Liking an already liked post changes nothing."""
    likes = await like_post(identity.user_id, payload.post_id)
    return LikesResponse(id=payload.post_id, likes=likes)


@router.put("/unlike", status_code=status.HTTP_200_OK)
async def unlike(
    payload: PostRef,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> LikesResponse:
    likes = await unlike_post(identity.user_id, payload.post_id)
    return LikesResponse(id=payload.post_id, likes=likes)


@router.put("/comment", status_code=status.HTTP_200_OK)
async def comment(
    payload: CommentRequest,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> CommentsResponse:
    """
    Comment on a post.

    Returns:
    - **CommentsResponse**: all comments of the post, oldest first

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **404 Not Found**: If the post does not exist
    """
    comments = await create_comment(identity.user_id, payload.post_id, payload.comment.text)
    return CommentsResponse(id=payload.post_id, comments=[comment_to_response(c) for c in comments])


@router.put("/uncomment", status_code=status.HTTP_200_OK)
async def uncomment(
    payload: UncommentRequest,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> CommentsResponse:
    """
    Remove one of the caller's comments by its id.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the comment was written by someone else
    - **404 Not Found**: If the comment does not exist on this post
    """
    comments = await delete_comment(identity.user_id, payload.post_id, payload.comment_id)
    return CommentsResponse(id=payload.post_id, comments=[comment_to_response(c) for c in comments])


@router.delete("/{post_id}", status_code=status.HTTP_200_OK)
async def remove_post(
    post_id: UUID,
    identity: Annotated[AuthContext, Depends(get_auth_context)],
) -> PostResponse:
    """
    Delete a post. Only the post's owner may delete it.

    Raises:
    - **401 Unauthorized**: If not authenticated
    - **403 Forbidden**: If the caller does not own the post
    - **404 Not Found**: If post does not exist
    """
    deleted = await delete_post(identity, post_id)
    return post_to_response(deleted)
