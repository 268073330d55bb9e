"""
authcore.store.base

Credential store capability interface and record types.

Responsibilities:
- Define immutable records for users and refresh tokens as seen by the core.
- Define the `CredentialStore` protocol both backends (memory, SQL) implement.
- Define the store-level failures the core reacts to.

Refresh tokens are keyed by the SHA-256 digest of their value; raw values never
reach a backend.
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from authcore.errors import ServiceUnavailableError


def token_digest(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class UserRecord:
    id: uuid.UUID
    username: str
    email: str
    password_hash: str = field(repr=False)
    roles: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    token_hash: str
    user_id: uuid.UUID
    issued_at: datetime
    expires_at: datetime
    revoked: bool = False
    # Digest of the successor when the token was rotated; None otherwise.
    replaced_by: str | None = None

    def usable(self, now: datetime) -> bool:
        return not self.revoked and now < self.expires_at


class StoreError(Exception):
    pass


class UsernameTakenError(StoreError):
    pass


class StoreUnavailableError(StoreError, ServiceUnavailableError):
    pass


@runtime_checkable
class CredentialStore(Protocol):
    """
    Every method is a single all-or-nothing unit of work.
    """

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        roles: frozenset[str],
    ) -> UserRecord: ...

    async def get_user(self, user_id: uuid.UUID) -> UserRecord | None: ...

    async def get_user_by_username(self, username: str) -> UserRecord | None: ...

    async def add_role(self, user_id: uuid.UUID, role: str) -> bool: ...

    async def set_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None: ...

    async def add_refresh_token(self, record: RefreshTokenRecord) -> None: ...

    async def get_refresh_token(self, token_hash: str) -> RefreshTokenRecord | None: ...

    async def rotate_refresh_token(
        self,
        *,
        old_hash: str,
        successor: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        """
        Compare-and-swap: revoke `old_hash` and insert `successor` together, only if
        the old token is still usable at `now`. Returns False when another caller won
        (or the token is unusable) and nothing was written.
        """
        ...

    async def revoke_refresh_token(self, token_hash: str) -> bool: ...

    async def revoke_all_refresh_tokens(self, user_id: uuid.UUID) -> int: ...

    async def ping(self) -> None: ...


# --- Module Notes -----------------------------------------------------------
# There is no in-process cache in front of this interface; revocation state is
# always read from the backend.
