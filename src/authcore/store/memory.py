"""
authcore.store.memory

In-memory `CredentialStore` for tests and local development.

Each method runs to completion without awaiting, so under a single event loop
every check-and-mutate (notably refresh rotation) is atomic.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime

from authcore.store.base import RefreshTokenRecord, UserRecord, UsernameTakenError


class InMemoryCredentialStore:
    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserRecord] = {}
        self._by_username: dict[str, uuid.UUID] = {}
        self._tokens: dict[str, RefreshTokenRecord] = {}

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password_hash: str,
        roles: frozenset[str],
    ) -> UserRecord:
        if username in self._by_username:
            raise UsernameTakenError(username)
        user = UserRecord(
            id=uuid.uuid4(),
            username=username,
            email=email,
            password_hash=password_hash,
            roles=frozenset(roles),
        )
        self._users[user.id] = user
        self._by_username[username] = user.id
        return user

    async def get_user(self, user_id: uuid.UUID) -> UserRecord | None:
        return self._users.get(user_id)

    async def get_user_by_username(self, username: str) -> UserRecord | None:
        user_id = self._by_username.get(username)
        return self._users.get(user_id) if user_id is not None else None

    async def add_role(self, user_id: uuid.UUID, role: str) -> bool:
        user = self._users.get(user_id)
        if user is None or role in user.roles:
            return False
        self._users[user_id] = dataclasses.replace(user, roles=user.roles | {role})
        return True

    async def set_password_hash(self, user_id: uuid.UUID, password_hash: str) -> None:
        user = self._users.get(user_id)
        if user is not None:
            self._users[user_id] = dataclasses.replace(user, password_hash=password_hash)

    async def add_refresh_token(self, record: RefreshTokenRecord) -> None:
        self._tokens[record.token_hash] = record

    async def get_refresh_token(self, token_hash: str) -> RefreshTokenRecord | None:
        return self._tokens.get(token_hash)

    async def rotate_refresh_token(
        self,
        *,
        old_hash: str,
        successor: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        old = self._tokens.get(old_hash)
        if old is None or not old.usable(now):
            return False
        self._tokens[old_hash] = dataclasses.replace(
            old, revoked=True, replaced_by=successor.token_hash
        )
        self._tokens[successor.token_hash] = successor
        return True

    async def revoke_refresh_token(self, token_hash: str) -> bool:
        record = self._tokens.get(token_hash)
        if record is None or record.revoked:
            return False
        self._tokens[token_hash] = dataclasses.replace(record, revoked=True)
        return True

    async def revoke_all_refresh_tokens(self, user_id: uuid.UUID) -> int:
        count = 0
        for token_hash, record in list(self._tokens.items()):
            if record.user_id == user_id and not record.revoked:
                self._tokens[token_hash] = dataclasses.replace(record, revoked=True)
                count += 1
        return count

    async def ping(self) -> None:
        return None
