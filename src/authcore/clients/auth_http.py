"""
authcore.clients.auth_http

Async HTTP client for services that talk to authcore over the network.

Responsibilities:
- Call the `/api/auth/*` endpoints with a caller-supplied `httpx.AsyncClient`.
- Parse every response body into a strict pydantic model; a body that does not
  fit raises `MalformedError` instead of being read field-by-field.
- Map HTTP failures back onto `authcore.errors` kinds.
"""

from __future__ import annotations

import uuid
from typing import TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from authcore.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    MalformedError,
    NotFoundError,
    ServiceUnavailableError,
    UnauthorizedError,
)

_STATUS_ERRORS: dict[int, type[AuthError]] = {
    400: MalformedError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
}

M = TypeVar("M", bound=BaseModel)


class RegisteredUserBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    username: str = Field(min_length=1)


class TokenPairBody(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    token: str = Field(min_length=1)
    refresh_token: str = Field(alias="refreshToken", min_length=1)


class MeBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: uuid.UUID
    username: str
    roles: list[str]


class AuthApiClient:
    def __init__(self, *, http: httpx.AsyncClient, prefix: str = "/api/auth") -> None:
        self._http = http
        self._prefix = prefix.rstrip("/")

    async def register(self, *, username: str, email: str, password: str) -> RegisteredUserBody:
        r = await self._post(
            "/register", json={"username": username, "email": email, "password": password}
        )
        return _parse(RegisteredUserBody, r)

    async def login(self, *, username: str, password: str) -> TokenPairBody:
        r = await self._post("/login", json={"username": username, "password": password})
        return _parse(TokenPairBody, r)

    async def refresh(self, *, refresh_token: str) -> TokenPairBody:
        r = await self._post("/refresh", json={"refreshToken": refresh_token})
        return _parse(TokenPairBody, r)

    async def logout(self, *, refresh_token: str) -> None:
        await self._post("/logout", json={"refreshToken": refresh_token})

    async def assign_role(self, *, access_token: str, username: str, role: str) -> None:
        await self._post(
            "/assign-role",
            json={"username": username, "role": role},
            headers={"Authorization": f"Bearer {access_token}"},
        )

    async def me(self, *, access_token: str) -> MeBody:
        r = await self._send(
            "GET", "/me", headers={"Authorization": f"Bearer {access_token}"}
        )
        return _parse(MeBody, r)

    async def _post(
        self, path: str, *, json: dict[str, str], headers: dict[str, str] | None = None
    ) -> httpx.Response:
        return await self._send("POST", path, json=json, headers=headers)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            r = await self._http.request(method, self._prefix + path, json=json, headers=headers)
        except httpx.TransportError as e:
            raise ServiceUnavailableError(f"auth service unreachable: {e}") from e

        if r.status_code >= 500:
            raise ServiceUnavailableError(f"auth service returned {r.status_code}")
        error_type = _STATUS_ERRORS.get(r.status_code)
        if error_type is not None:
            raise error_type()
        r.raise_for_status()
        return r


def _parse(model: type[M], response: httpx.Response) -> M:
    try:
        return model.model_validate_json(response.content)
    except ValidationError as e:
        raise MalformedError(f"unexpected {model.__name__} response") from e


# --- Module Notes -----------------------------------------------------------
# Collaborators that only need to check bearer tokens should use
# `authcore.auth.jwt.TokenVerifier` locally instead of a network round-trip.
