"""
authcore.api.routers.auth

Public authentication endpoints.

Responsibilities:
- Register, login, refresh, logout.
- Admin role assignment (AdminOnly, enforced by the service).
- Caller introspection (`/me`) for any authenticated User or Admin.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from starlette.status import HTTP_204_NO_CONTENT

from authcore.api.deps import auth_service_dep
from authcore.auth.deps import get_claims, require_policy
from authcore.auth.models import AccessClaims, TokenPair
from authcore.auth.policy import USER_OR_ADMIN
from authcore.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=1024)


class RegisterResponse(BaseModel):
    id: uuid.UUID
    username: str


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=1024)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(alias="refreshToken", min_length=1, max_length=512)


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    refresh_token: str = Field(alias="refreshToken")

    @classmethod
    def from_pair(cls, pair: TokenPair) -> TokenResponse:
        return cls(token=pair.access_token, refresh_token=pair.refresh_token)


class AssignRoleRequest(BaseModel):
    username: str = Field(min_length=1, max_length=256)
    role: str = Field(min_length=1, max_length=64)


class MeResponse(BaseModel):
    id: uuid.UUID
    username: str
    roles: list[str]


@router.post("/register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    service: AuthService = Depends(auth_service_dep),
) -> RegisterResponse:
    user = await service.register(
        username=body.username, email=body.email, password=body.password
    )
    return RegisterResponse(id=user.id, username=user.username)


@router.post("/login", response_model=TokenResponse, response_model_by_alias=True)
async def login(
    body: LoginRequest,
    service: AuthService = Depends(auth_service_dep),
) -> TokenResponse:
    pair = await service.login(username=body.username, password=body.password)
    return TokenResponse.from_pair(pair)


@router.post("/refresh", response_model=TokenResponse, response_model_by_alias=True)
async def refresh(
    body: RefreshRequest,
    service: AuthService = Depends(auth_service_dep),
) -> TokenResponse:
    pair = await service.refresh(body.refresh_token)
    return TokenResponse.from_pair(pair)


@router.post("/logout", status_code=HTTP_204_NO_CONTENT)
async def logout(
    body: RefreshRequest,
    service: AuthService = Depends(auth_service_dep),
) -> Response:
    await service.logout(body.refresh_token)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.post("/assign-role")
async def assign_role(
    body: AssignRoleRequest,
    claims: AccessClaims = Depends(get_claims),
    service: AuthService = Depends(auth_service_dep),
) -> dict[str, str]:
    # AuthZ (AdminOnly) is decided inside the service so non-HTTP callers get it too.
    await service.assign_role(actor=claims, target_username=body.username, role=body.role)
    return {"status": "ok"}


@router.get("/me", response_model=MeResponse)
async def me(claims: AccessClaims = Depends(require_policy(USER_OR_ADMIN))) -> MeResponse:
    # Reflects the token snapshot, not the store.
    return MeResponse(id=claims.user_id, username=claims.subject, roles=sorted(claims.roles))
