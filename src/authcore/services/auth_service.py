"""
authcore.services.auth_service

Authentication orchestration service.

Responsibilities:
- Compose the password hasher, token issuer, refresh token manager, policy
  evaluator and credential store into register / login / refresh / assign-role /
  logout.
- Collapse internal failure reasons into the generic external error kinds
  (`authcore.errors`) and log the internal reason.
- Apply the replay containment policy (revoke every session of a user whose
  rotated refresh token is presented again).
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta

from authcore.auth.jwt import Clock, JwtConfig, TokenIssuer, utcnow
from authcore.auth.models import AccessClaims, RegisteredUser, TokenPair
from authcore.auth.passwords import PasswordHasher, PasswordVerification
from authcore.auth.policy import ADMIN_ONLY, ROLE_USER, AuthorizationEvaluator
from authcore.auth.refresh import RefreshFailure, RefreshTokenError, RefreshTokenManager
from authcore.errors import (
    ConflictError,
    ForbiddenError,
    MalformedError,
    NotFoundError,
    UnauthorizedError,
)
from authcore.observability.logging import get_logger
from authcore.settings import Settings
from authcore.store.base import CredentialStore, UserRecord, UsernameTakenError

log = get_logger(__name__)

DEFAULT_ROLES = frozenset({ROLE_USER})


def jwt_config(settings: Settings) -> JwtConfig:
    return JwtConfig(
        alg=settings.jwt_alg,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        secret=settings.jwt_secret,
        access_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_ttl_days),
    )


class AuthService:
    def __init__(
        self,
        *,
        store: CredentialStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        evaluator: AuthorizationEvaluator | None = None,
        clock: Clock = utcnow,
        revoke_sessions_on_replay: bool = True,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._issuer = issuer
        self._evaluator = evaluator or AuthorizationEvaluator()
        self._clock = clock
        self._revoke_sessions_on_replay = revoke_sessions_on_replay
        self._refresh = RefreshTokenManager(store=store, issuer=issuer)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: CredentialStore,
        clock: Clock = utcnow,
    ) -> AuthService:
        return cls(
            store=store,
            hasher=PasswordHasher(
                time_cost=settings.argon2_time_cost,
                memory_cost=settings.argon2_memory_cost,
                parallelism=settings.argon2_parallelism,
            ),
            issuer=TokenIssuer(jwt_config(settings), clock=clock),
            clock=clock,
            revoke_sessions_on_replay=settings.revoke_sessions_on_replay,
        )

    @property
    def issuer(self) -> TokenIssuer:
        return self._issuer

    @property
    def evaluator(self) -> AuthorizationEvaluator:
        return self._evaluator

    @property
    def store(self) -> CredentialStore:
        return self._store

    async def register(self, *, username: str, email: str, password: str) -> RegisteredUser:
        if not username or not password:
            raise MalformedError("username and password are required")
        # Cheap pre-check avoids hashing for obvious duplicates; the store's unique
        # constraint still decides concurrent registrations.
        if await self._store.get_user_by_username(username) is not None:
            raise ConflictError()

        try:
            user = await self._store.create_user(
                username=username,
                email=email,
                password_hash=await self._hash(password),
                roles=DEFAULT_ROLES,
            )
        except UsernameTakenError as e:
            raise ConflictError() from e

        log.info("user_registered", user_id=str(user.id), username=username)
        return RegisteredUser(id=user.id, username=user.username)

    async def login(self, *, username: str, password: str) -> TokenPair:
        user = await self._store.get_user_by_username(username)
        if user is None:
            # Same hashing work as a wrong password, same error.
            await asyncio.to_thread(self._hasher.verify_dummy, password)
            log.info("login_failed", username=username)
            raise UnauthorizedError()

        result = await asyncio.to_thread(self._hasher.verify, password, user.password_hash)
        if not result.ok:
            log.info("login_failed", username=username)
            raise UnauthorizedError()
        if result is PasswordVerification.success_rehash_needed:
            await self._store.set_password_hash(user.id, await self._hash(password))
            log.info("password_rehashed", user_id=str(user.id))

        pair = await self._issue_pair(user)
        log.info("login_succeeded", user_id=str(user.id))
        return pair

    async def refresh(self, refresh_token: str) -> TokenPair:
        now = self._clock()
        try:
            successor = await self._refresh.rotate(refresh_token, now)
        except RefreshTokenError as e:
            await self._on_refresh_failure(e)
            raise UnauthorizedError() from e

        # Roles are re-read so the new access token reflects current assignments.
        user = await self._store.get_user(successor.user_id)
        if user is None:
            await self._refresh.revoke(successor.value)
            log.warning("refresh_owner_missing", user_id=str(successor.user_id))
            raise UnauthorizedError()

        access_token, access_expires_at = self._issuer.mint_access_token(
            subject=user.username, user_id=user.id, roles=user.roles, now=now
        )
        return TokenPair(
            access_token=access_token,
            access_expires_at=access_expires_at,
            refresh_token=successor.value,
            refresh_expires_at=successor.expires_at,
        )

    async def assign_role(
        self, *, actor: AccessClaims, target_username: str, role: str
    ) -> None:
        if not self._evaluator.permits(actor.roles, ADMIN_ONLY):
            log.info("assign_role_forbidden", actor=actor.subject)
            raise ForbiddenError()
        if not role:
            raise MalformedError("role is required")

        user = await self._store.get_user_by_username(target_username)
        if user is None:
            raise NotFoundError()

        added = await self._store.add_role(user.id, role)
        log.info(
            "role_assigned",
            actor=actor.subject,
            user_id=str(user.id),
            role=role,
            changed=added,
        )

    async def logout(self, refresh_token: str) -> None:
        # Unknown and already-revoked values are ignored: the caller learns nothing.
        if await self._refresh.revoke(refresh_token):
            log.info("refresh_token_revoked")

    async def ensure_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        roles: frozenset[str],
    ) -> uuid.UUID | None:
        """
        Create `username` with `roles` unless it already exists.

        Returns the new user id, or None when the user was already present.
        """

        if await self._store.get_user_by_username(username) is not None:
            return None
        try:
            user = await self._store.create_user(
                username=username,
                email=email,
                password_hash=await self._hash(password),
                roles=roles,
            )
        except UsernameTakenError:
            return None
        log.info("user_seeded", user_id=str(user.id), username=username, roles=sorted(roles))
        return user.id

    async def _hash(self, password: str) -> str:
        # argon2 is CPU and memory heavy; keep it off the event loop.
        return await asyncio.to_thread(self._hasher.hash, password)

    async def _issue_pair(self, user: UserRecord) -> TokenPair:
        now = self._clock()
        access_token, access_expires_at = self._issuer.mint_access_token(
            subject=user.username, user_id=user.id, roles=user.roles, now=now
        )
        refresh = await self._refresh.issue(user_id=user.id, now=now)
        return TokenPair(
            access_token=access_token,
            access_expires_at=access_expires_at,
            refresh_token=refresh.value,
            refresh_expires_at=refresh.expires_at,
        )

    async def _on_refresh_failure(self, error: RefreshTokenError) -> None:
        user_id = str(error.user_id) if error.user_id else None
        state = str(error.state) if error.state else None
        if error.reason is not RefreshFailure.replay_detected:
            log.info(
                "refresh_rejected", reason=str(error.reason), state=state, user_id=user_id
            )
            return

        log.warning("refresh_replay_detected", state=state, user_id=user_id)
        if self._revoke_sessions_on_replay and error.user_id is not None:
            revoked = await self._refresh.revoke_all(error.user_id)
            log.warning("refresh_sessions_revoked", user_id=user_id, count=revoked)


# --- Module Notes -----------------------------------------------------------
# The service owns no state beyond its collaborators; one instance is shared by
# all request handlers.
