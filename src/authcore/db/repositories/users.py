"""
authcore.db.repositories.users

Repository for `User` entities and their role assignments.

Responsibilities:
- Create users and look them up by id or username.
- Add roles and replace password hashes under a row lock.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from authcore.db.models import User, UserRole


class UserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        roles: frozenset[str],
    ) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            roles=[UserRole(role=r) for r in sorted(roles)],
        )
        self._session.add(user)
        # Flush surfaces the unique(username) violation inside the caller's transaction.
        await self._session.flush()
        return user

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add_role(self, user_id: uuid.UUID, role: str) -> bool:
        user = await self._session.get(User, user_id, with_for_update=True)
        if user is None or any(r.role == role for r in user.roles):
            return False
        user.roles.append(UserRole(role=role))
        user.updated_at = datetime.utcnow()
        await self._session.flush()
        return True

    async def set_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None:
        user = await self._session.get(User, user_id, with_for_update=True)
        if user is None:
            return
        user.password_hash = password_hash
        user.updated_at = datetime.utcnow()


# --- Module Notes -----------------------------------------------------------
# Callers own the transaction; see `authcore.store.sql.SqlCredentialStore`.
