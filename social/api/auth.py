from fastapi import APIRouter, Response, status

from social.api.serializers import user_to_summary
from social.config_secrets import TOKEN_COOKIE_NAME
from social.core.auth import create_access_token
from social.schemas.schemas import MessageResponse, SigninRequest, SigninResponse
from social.services.user_service import authenticate_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signin", status_code=status.HTTP_200_OK)
async def signin(payload: SigninRequest, response: Response) -> SigninResponse:
    """
    Authenticate a user and return a signed token.

    Parameters:
    - **payload**: email and password

    Returns:
    - **SigninResponse**: the token and the user's id, name and email

    Raises:
    - **404 Not Found**: If no user has this email
    - **401 Unauthorized**: If the password does not match

    Notes:
    - The token is also set in the ``t`` cookie
    """
    user = await authenticate_user(payload.email, payload.password)
    token = create_access_token(user.id)
    response.set_cookie(TOKEN_COOKIE_NAME, token, httponly=True, samesite="lax")
    return SigninResponse(token=token, user=user_to_summary(user))


@router.get("/signout", status_code=status.HTTP_200_OK)
async def signout(response: Response) -> MessageResponse:
    """Clear the token cookie. Issued tokens stay valid until they expire."""
    response.delete_cookie(TOKEN_COOKIE_NAME)
    return MessageResponse(message="signed out")
