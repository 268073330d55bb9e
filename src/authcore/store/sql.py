"""
authcore.store.sql

SQLAlchemy-backed `CredentialStore`.

Responsibilities:
- Run every store operation in its own session and transaction (all-or-nothing).
- Translate backend failures: unique(username) violations become
  `UsernameTakenError`, anything else from the driver becomes `StoreUnavailableError`.
- Map ORM rows onto the immutable records the core works with.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authcore.db.models import RefreshToken, User
from authcore.db.repositories.refresh_tokens import RefreshTokenRepo, from_db_time
from authcore.db.repositories.users import UserRepo
from authcore.store.base import (
    RefreshTokenRecord,
    StoreUnavailableError,
    UserRecord,
    UsernameTakenError,
)


def _user_record(user: User) -> UserRecord:
    return UserRecord(
        id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        roles=frozenset(r.role for r in user.roles),
    )


def _token_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        token_hash=row.token_hash,
        user_id=row.user_id,
        issued_at=from_db_time(row.issued_at),
        expires_at=from_db_time(row.expires_at),
        revoked=row.revoked,
        replaced_by=row.replaced_by,
    )


class SqlCredentialStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session, session.begin():
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e)) from e

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        roles: frozenset[str],
    ) -> UserRecord:
        try:
            async with self._transaction() as session:
                user = await UserRepo(session).create(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    roles=roles,
                )
                return _user_record(user)
        except IntegrityError as e:
            raise UsernameTakenError(username) from e

    async def get_user(self, user_id: uuid.UUID) -> UserRecord | None:
        async with self._transaction() as session:
            user = await UserRepo(session).get(user_id)
            return _user_record(user) if user is not None else None

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        async with self._transaction() as session:
            user = await UserRepo(session).get_by_username(username)
            return _user_record(user) if user is not None else None

    async def add_role(self, user_id: uuid.UUID, role: str) -> bool:
        try:
            async with self._transaction() as session:
                return await UserRepo(session).add_role(user_id, role)
        except IntegrityError:
            # A concurrent request inserted the same (user, role) row first.
            return False

    async def set_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None:
        async with self._transaction() as session:
            await UserRepo(session).set_password_hash(user_id, password_hash)

    async def add_refresh_token(self, record: RefreshTokenRecord) -> None:
        async with self._transaction() as session:
            await RefreshTokenRepo(session).add(
                token_hash=record.token_hash,
                user_id=record.user_id,
                issued_at=record.issued_at,
                expires_at=record.expires_at,
            )

    async def get_refresh_token(self, token_hash: str) -> RefreshTokenRecord | None:
        async with self._transaction() as session:
            row = await RefreshTokenRepo(session).get(token_hash)
            return _token_record(row) if row is not None else None

    async def rotate_refresh_token(
        self,
        *,
        old_hash: str,
        successor: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        async with self._transaction() as session:
            repo = RefreshTokenRepo(session)
            if not await repo.revoke_if_usable(
                token_hash=old_hash, replaced_by=successor.token_hash, now=now
            ):
                return False
            # Same transaction as the revoke: both land or neither does.
            await repo.add(
                token_hash=successor.token_hash,
                user_id=successor.user_id,
                issued_at=successor.issued_at,
                expires_at=successor.expires_at,
            )
            return True

    async def revoke_refresh_token(self, token_hash: str) -> bool:
        async with self._transaction() as session:
            return await RefreshTokenRepo(session).revoke(token_hash)

    async def revoke_all_refresh_tokens(self, user_id: uuid.UUID) -> int:
        async with self._transaction() as session:
            return await RefreshTokenRepo(session).revoke_all_for_user(user_id)

    async def ping(self) -> None:
        async with self._transaction() as session:
            await session.execute(text("SELECT 1"))


# --- Module Notes -----------------------------------------------------------
# Sessions are never shared between operations, so no connection or lock is held
# across requests.
