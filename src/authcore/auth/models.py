"""
authcore.auth.models

Auth domain models.

Responsibilities:
- Define the verified access-token claim set (`AccessClaims`) injected into endpoints
  and handed to collaborators.
- Define the token pair returned by login/refresh.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class AccessClaims(BaseModel):
    """
    Point-in-time snapshot of a caller's identity and roles.

    Parsed strictly from a verified token payload; a payload that does not fit this
    shape is rejected rather than read field-by-field.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    sub: str = Field(min_length=1)
    jti: str = Field(min_length=1)
    uid: uuid.UUID
    roles: frozenset[str] = frozenset()
    iat: int
    exp: int
    iss: str | None = None
    aud: str | None = None

    @property
    def subject(self) -> str:
        return self.sub

    @property
    def user_id(self) -> uuid.UUID:
        return self.uid

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=UTC)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, tz=UTC)


@dataclass(frozen=True, slots=True)
class TokenPair:
    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime


@dataclass(frozen=True, slots=True)
class RegisteredUser:
    id: uuid.UUID
    username: str


# --- Module Notes -----------------------------------------------------------
# Keep `AccessClaims` minimal; it crosses the boundary into collaborator services.
