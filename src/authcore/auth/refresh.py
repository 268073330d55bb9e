"""
authcore.auth.refresh

Refresh token lifecycle: issue, rotate, revoke.

Responsibilities:
- Issue opaque refresh tokens bound to a user and persist them (by digest).
- Rotate on use: the presented token is revoked and exactly one successor is
  created, atomically, through the store's compare-and-swap.
- Classify every rejection (unknown, replayed, expired) for internal logging.

State per token:

    ACTIVE --rotate--> ROTATED
    ACTIVE --time----> EXPIRED
    ACTIVE --revoke--> REVOKED

All three are terminal. Presenting a ROTATED or REVOKED token is a replay.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime

from authcore.auth.jwt import TokenIssuer
from authcore.observability.logging import get_logger
from authcore.store.base import CredentialStore, RefreshTokenRecord, token_digest

log = get_logger(__name__)


class RefreshTokenState(enum.StrEnum):
    active = "ACTIVE"
    rotated = "ROTATED"
    expired = "EXPIRED"
    revoked = "REVOKED"


class RefreshFailure(enum.StrEnum):
    not_found = "NOT_FOUND"
    replay_detected = "REPLAY_DETECTED"
    expired = "EXPIRED"


class RefreshTokenError(Exception):
    def __init__(
        self,
        reason: RefreshFailure,
        *,
        user_id: uuid.UUID | None = None,
        state: RefreshTokenState | None = None,
    ) -> None:
        super().__init__(str(reason))
        self.reason = reason
        self.user_id = user_id
        # Lifecycle state of the stored record when it was rejected; None if unknown.
        self.state = state


@dataclass(frozen=True, slots=True)
class IssuedRefreshToken:
    value: str
    user_id: uuid.UUID
    expires_at: datetime


def state_of(record: RefreshTokenRecord, now: datetime) -> RefreshTokenState:
    if record.revoked:
        if record.replaced_by is not None:
            return RefreshTokenState.rotated
        return RefreshTokenState.revoked
    if now >= record.expires_at:
        return RefreshTokenState.expired
    return RefreshTokenState.active


def _classify(record: RefreshTokenRecord | None, now: datetime) -> RefreshTokenError:
    # Order matters: a revoked token is a replay even if it has also expired.
    if record is None:
        return RefreshTokenError(RefreshFailure.not_found)
    state = state_of(record, now)
    if record.revoked:
        return RefreshTokenError(
            RefreshFailure.replay_detected, user_id=record.user_id, state=state
        )
    if now >= record.expires_at:
        return RefreshTokenError(RefreshFailure.expired, user_id=record.user_id, state=state)
    # Still usable on re-read: another writer touched the row between our CAS and
    # this read. Treat it as contention on the same value.
    return RefreshTokenError(RefreshFailure.replay_detected, user_id=record.user_id, state=state)


class RefreshTokenManager:
    def __init__(self, *, store: CredentialStore, issuer: TokenIssuer) -> None:
        self._store = store
        self._issuer = issuer

    async def issue(self, *, user_id: uuid.UUID, now: datetime) -> IssuedRefreshToken:
        value, expires_at = self._issuer.mint_refresh_token(now)
        await self._store.add_refresh_token(
            RefreshTokenRecord(
                token_hash=token_digest(value),
                user_id=user_id,
                issued_at=now,
                expires_at=expires_at,
            )
        )
        return IssuedRefreshToken(value=value, user_id=user_id, expires_at=expires_at)

    async def validate(self, value: str, now: datetime) -> RefreshTokenRecord:
        record = await self._store.get_refresh_token(token_digest(value))
        if record is None or not record.usable(now):
            raise _classify(record, now)
        return record

    async def rotate(self, value: str, now: datetime) -> IssuedRefreshToken:
        """
        Exchange `value` for its single successor.

        Raises `RefreshTokenError` with NOT_FOUND, REPLAY_DETECTED or EXPIRED. Of any
        number of concurrent calls with the same value, at most one succeeds.
        """

        old_hash = token_digest(value)
        record = await self.validate(value, now)

        new_value, expires_at = self._issuer.mint_refresh_token(now)
        successor = RefreshTokenRecord(
            token_hash=token_digest(new_value),
            user_id=record.user_id,
            issued_at=now,
            expires_at=expires_at,
        )
        if not await self._store.rotate_refresh_token(
            old_hash=old_hash, successor=successor, now=now
        ):
            # Lost the race (or the token changed underneath us): re-read to classify.
            raise _classify(await self._store.get_refresh_token(old_hash), now)

        log.info("refresh_token_rotated", user_id=str(record.user_id))
        return IssuedRefreshToken(value=new_value, user_id=record.user_id, expires_at=expires_at)

    async def revoke(self, value: str) -> bool:
        return await self._store.revoke_refresh_token(token_digest(value))

    async def revoke_all(self, user_id: uuid.UUID) -> int:
        return await self._store.revoke_all_refresh_tokens(user_id)


# --- Module Notes -----------------------------------------------------------
# Rotation pre-checks with a plain read so the common failure paths avoid a write;
# correctness under concurrency rests on the store's conditional update alone.
