"""
authcore.errors

Error taxonomy surfaced by the authentication core.

Responsibilities:
- Define the externally visible error kinds (conflict, unauthorized, ...).
- Carry the HTTP status each kind maps to, so the API layer stays a thin translator.

Internal distinctions (why a refresh token or access token was rejected) live on
`authcore.auth.refresh.RefreshTokenError` and `authcore.auth.jwt.TokenVerificationError`;
they are logged but never returned to callers.
"""

from __future__ import annotations

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class AuthError(Exception):
    status_code: int = HTTP_400_BAD_REQUEST
    public_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)


class ConflictError(AuthError):
    status_code = HTTP_409_CONFLICT
    public_message = "User already exists"


class UnauthorizedError(AuthError):
    status_code = HTTP_401_UNAUTHORIZED
    public_message = "Unauthorized"


class ForbiddenError(AuthError):
    status_code = HTTP_403_FORBIDDEN
    public_message = "Forbidden"


class NotFoundError(AuthError):
    status_code = HTTP_404_NOT_FOUND
    public_message = "Not found"


class MalformedError(AuthError):
    status_code = HTTP_400_BAD_REQUEST
    public_message = "Malformed request"


class ServiceUnavailableError(AuthError):
    status_code = HTTP_503_SERVICE_UNAVAILABLE
    public_message = "Service unavailable"


# --- Module Notes -----------------------------------------------------------
# `str(exc)` may hold an internal detail for logs; responses always use
# `public_message` so credential and token failures look identical to callers.
