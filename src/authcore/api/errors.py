"""
authcore.api.errors

Exception handlers translating core errors into HTTP responses.

Responsibilities:
- Map `authcore.errors.AuthError` subclasses onto their status codes with a generic body.
- Report unparseable requests as 400 "Malformed request".
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import HTTP_401_UNAUTHORIZED

from authcore.errors import AuthError, MalformedError, ServiceUnavailableError
from authcore.observability.logging import get_logger

log = get_logger(__name__)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if isinstance(exc, ServiceUnavailableError):
        log.error("dependency_unavailable", error=str(exc))
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.public_message},
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.info("request_malformed", errors=len(exc.errors()))
    return JSONResponse(
        status_code=MalformedError.status_code,
        content={"detail": MalformedError.public_message},
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]


# --- Module Notes -----------------------------------------------------------
# Validation details are counted, not echoed: request bodies may contain passwords.
