from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any, cast
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from social.config_secrets import (
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    PASSWORD_MIN_LENGTH,
    TOKEN_COOKIE_NAME,
)
from social.core.errors import Forbidden, Unauthorized, ValidationError
from social.models.models import AuthContext

SECRET_KEY = JWT_SECRET_KEY
ALGORITHM = JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = JWT_ACCESS_TOKEN_EXPIRE_MINUTES

bearer_scheme = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


# Credential store
def make_salt() -> str:
    """Generate a random per-user salt."""
    return secrets.token_hex(16)


def encrypt_password(password: str, salt: str) -> str:
    """HMAC-SHA1 of the password keyed with the user's salt, as hex."""
    if not password:
        return ""
    return hmac.new(salt.encode("utf-8"), password.encode("utf-8"), hashlib.sha1).hexdigest()


def validate_password(password: str | None, *, required: bool) -> None:
    """Check a password supplied on signup or on a password change."""
    if not password:
        if required:
            raise ValidationError("Password is required")
        return
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters.")


def hash_new_password(password: str) -> tuple[str, str]:
    """Return a fresh ``(salt, hashed_password)`` pair for a plaintext password."""
    salt = make_salt()
    return salt, encrypt_password(password, salt)


def authenticate(plain_password: str, salt: str, hashed_password: str) -> bool:
    """Recompute the salted hash and compare it to the stored one."""
    candidate = encrypt_password(plain_password, salt)
    if not candidate:
        return False
    return hmac.compare_digest(candidate, hashed_password)


# Tokens
def create_access_token(user_id: UUID, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT binding one user id."""
    to_encode: dict[str, Any] = {"_id": str(user_id), "sub": str(user_id)}
    if expires_delta is None and ACCESS_TOKEN_EXPIRE_MINUTES:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    if expires_delta is not None:
        to_encode["exp"] = datetime.now(UTC) + expires_delta
    return cast(str, jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM))


def verify_token(token: str | None) -> AuthContext:
    """Validate a token signature and return the identity it carries."""
    if not token:
        raise Unauthorized("No authorization token was found")

    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise Unauthorized("Invalid token") from exc

    subject = payload.get("_id") or payload.get("sub")
    if not isinstance(subject, str):
        raise Unauthorized("Invalid token")

    try:
        return AuthContext(user_id=UUID(subject))
    except ValueError as exc:
        raise Unauthorized("Invalid token subject") from exc


async def get_auth_context(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> AuthContext:
    """Resolve the caller's identity from the bearer header or the ``t`` cookie."""
    token = credentials.credentials if credentials else request.cookies.get(TOKEN_COOKIE_NAME)
    try:
        return verify_token(token)
    except Unauthorized:
        logger.warning(f"Rejected unauthenticated request to {request.url.path}")
        raise


# Authorization guard
def require_owner(identity: AuthContext, owner_id: UUID) -> None:
    """Allow the operation only when the caller owns the resource."""
    if identity.user_id != owner_id:
        raise Forbidden("User is not authorized")
