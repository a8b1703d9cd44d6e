from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SocialError(Exception):
    """Base domain exception rendered as ``{"error": message}``."""

    status_code = status.HTTP_400_BAD_REQUEST
    headers: dict[str, str] | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SocialError):
    """Raised for malformed input or a violated schema constraint."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(SocialError):
    """Raised when a lookup by id or email finds nothing."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidCredential(SocialError):
    """Raised when a signin password does not match."""

    status_code = status.HTTP_401_UNAUTHORIZED


class Unauthorized(SocialError):
    """Raised for a missing, malformed or invalid token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(SocialError):
    """Raised when the authenticated user does not own the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class IntegrityFault(SocialError):
    """Raised when a multi-row mutation could not be committed as a whole."""

    status_code = status.HTTP_409_CONFLICT


async def social_error_handler(request: Request, exc: SocialError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR or isinstance(exc, IntegrityFault):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Render domain and request-validation failures as ``{"error": message}``."""
    app.add_exception_handler(SocialError, social_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
