"""
authcore.db.repositories.refresh_tokens

Repository for `RefreshToken` records.

Responsibilities:
- Insert and fetch refresh token records by digest.
- Conditional revocation (compare-and-swap on `revoked`) used by rotation.
- Bulk revocation per user.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.db.models import RefreshToken


def to_db_time(value: datetime) -> datetime:
    # Columns hold naive UTC.
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def from_db_time(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


class RefreshTokenRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        token_hash: str,
        user_id: uuid.UUID,
        issued_at: datetime,
        expires_at: datetime,
    ) -> RefreshToken:
        row = RefreshToken(
            token_hash=token_hash,
            user_id=user_id,
            issued_at=to_db_time(issued_at),
            expires_at=to_db_time(expires_at),
            revoked=False,
            replaced_by=None,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, token_hash: str) -> RefreshToken | None:
        return await self._session.get(RefreshToken, token_hash)

    async def revoke_if_usable(
        self, *, token_hash: str, replaced_by: str, now: datetime
    ) -> bool:
        # Single conditional UPDATE: exactly one concurrent caller can match the row.
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.revoked.is_(False),
                RefreshToken.expires_at > to_db_time(now),
            )
            .values(revoked=True, replaced_by=replaced_by, revoked_at=to_db_time(now))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def revoke(self, token_hash: str) -> bool:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount


# --- Module Notes -----------------------------------------------------------
# `revoke_if_usable` plus the successor insert run in one transaction owned by
# `authcore.store.sql.SqlCredentialStore.rotate_refresh_token`.
