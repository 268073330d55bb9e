"""
tests.test_auth_service

AuthService flows against the in-memory store.

Responsibilities:
- Cover register / login / refresh / assign-role / logout end to end.
- Check replay containment and the generic external error kinds.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from structlog.testing import CapturingLogger

from authcore.auth.jwt import TokenVerificationError
from authcore.auth.models import AccessClaims
from authcore.errors import (
    ConflictError,
    ForbiddenError,
    MalformedError,
    NotFoundError,
    UnauthorizedError,
)
from authcore.services.auth_service import AuthService
from tests.conftest import make_settings


async def _admin_claims(service: AuthService) -> AccessClaims:
    await service.ensure_user(
        username="root", email="root@x", password="Root@123", roles=frozenset({"Admin"})
    )
    pair = await service.login(username="root", password="Root@123")
    return service.issuer.verify(pair.access_token)


@pytest.mark.asyncio
async def test_register_then_login(service: AuthService) -> None:
    user = await service.register(username="alice", email="a@x", password="Pw1!")
    assert user.username == "alice"

    pair = await service.login(username="alice", password="Pw1!")
    assert pair.access_token
    assert pair.refresh_token

    claims = service.issuer.verify(pair.access_token)
    assert claims.subject == "alice"
    assert claims.user_id == user.id
    assert claims.roles == frozenset({"User"})


@pytest.mark.asyncio
async def test_register_stores_only_a_hash(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    record = await service.store.get_user_by_username("alice")

    assert record.password_hash.startswith("$argon2id$")
    assert "Pw1!" not in record.password_hash
    assert "Pw1!" not in repr(record)


@pytest.mark.asyncio
async def test_duplicate_username_conflicts(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    with pytest.raises(ConflictError):
        await service.register(username="alice", email="other@x", password="Other1!")


@pytest.mark.asyncio
async def test_concurrent_registration_has_one_winner(service: AuthService) -> None:
    results = await asyncio.gather(
        *(service.register(username="bob", email="b@x", password=f"Pw{i}") for i in range(3)),
        return_exceptions=True,
    )
    assert sum(not isinstance(r, BaseException) for r in results) == 1
    assert all(isinstance(r, ConflictError) for r in results if isinstance(r, BaseException))


@pytest.mark.asyncio
async def test_register_requires_credentials(service: AuthService) -> None:
    with pytest.raises(MalformedError):
        await service.register(username="", email="a@x", password="Pw1!")


@pytest.mark.asyncio
async def test_bad_credentials_are_indistinguishable(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")

    with pytest.raises(UnauthorizedError) as wrong_password:
        await service.login(username="alice", password="wrong")
    with pytest.raises(UnauthorizedError) as unknown_user:
        await service.login(username="mallory", password="wrong")

    assert type(wrong_password.value) is type(unknown_user.value)
    assert str(wrong_password.value) == str(unknown_user.value)


@pytest.mark.asyncio
async def test_refresh_rotates_once(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")

    renewed = await service.refresh(pair.refresh_token)
    assert renewed.refresh_token != pair.refresh_token
    assert service.issuer.verify(renewed.access_token).subject == "alice"

    with pytest.raises(UnauthorizedError):
        await service.refresh(pair.refresh_token)


@pytest.mark.asyncio
async def test_replay_revokes_every_session_of_the_user(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    laptop = await service.login(username="alice", password="Pw1!")
    phone = await service.login(username="alice", password="Pw1!")

    stolen = laptop.refresh_token
    rotated = await service.refresh(stolen)
    with pytest.raises(UnauthorizedError):
        await service.refresh(stolen)

    for survivor in (rotated.refresh_token, phone.refresh_token):
        with pytest.raises(UnauthorizedError):
            await service.refresh(survivor)


@pytest.mark.asyncio
async def test_replay_containment_can_be_disabled(memory_store, clock) -> None:
    service = AuthService.from_settings(
        make_settings(revoke_sessions_on_replay=False), store=memory_store, clock=clock
    )
    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")
    rotated = await service.refresh(pair.refresh_token)

    with pytest.raises(UnauthorizedError):
        await service.refresh(pair.refresh_token)
    assert (await service.refresh(rotated.refresh_token)).refresh_token


@pytest.mark.asyncio
async def test_refresh_failures_log_the_token_state(service: AuthService, clock, monkeypatch) -> None:
    captured = CapturingLogger()
    monkeypatch.setattr("authcore.services.auth_service.log", captured)

    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")
    rotated = await service.refresh(pair.refresh_token)
    with pytest.raises(UnauthorizedError):
        await service.refresh(pair.refresh_token)

    clock.advance(timedelta(days=8))
    fresh = await service.login(username="alice", password="Pw1!")
    clock.advance(timedelta(days=8))
    with pytest.raises(UnauthorizedError):
        await service.refresh(fresh.refresh_token)

    events = {call.args[0]: call.kwargs for call in captured.calls if call.args}
    assert events["refresh_replay_detected"]["state"] == "ROTATED"
    assert events["refresh_rejected"]["state"] == "EXPIRED"
    assert events["refresh_rejected"]["reason"] == "EXPIRED"
    assert rotated.refresh_token not in str(captured.calls)


@pytest.mark.asyncio
async def test_expired_refresh_token_is_unauthorized(service: AuthService, clock) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")

    clock.advance(timedelta(days=7))
    with pytest.raises(UnauthorizedError):
        await service.refresh(pair.refresh_token)


@pytest.mark.asyncio
async def test_unknown_refresh_token_is_unauthorized(service: AuthService) -> None:
    with pytest.raises(UnauthorizedError):
        await service.refresh("made-up")


@pytest.mark.asyncio
async def test_access_token_expires_but_refresh_still_works(service: AuthService, clock) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")

    clock.advance(timedelta(minutes=61))
    with pytest.raises(TokenVerificationError):
        service.issuer.verify(pair.access_token)
    renewed = await service.refresh(pair.refresh_token)
    assert service.issuer.verify(renewed.access_token).subject == "alice"


@pytest.mark.asyncio
async def test_role_changes_apply_on_next_refresh_only(service: AuthService) -> None:
    admin = await _admin_claims(service)
    await service.register(username="alice", email="a@x", password="Pw1!")
    before = await service.login(username="alice", password="Pw1!")

    await service.assign_role(actor=admin, target_username="alice", role="Admin")

    # Already-issued access tokens keep their snapshot.
    assert service.issuer.verify(before.access_token).roles == frozenset({"User"})

    after = await service.refresh(before.refresh_token)
    assert service.issuer.verify(after.access_token).roles == frozenset({"User", "Admin"})


@pytest.mark.asyncio
async def test_assign_role_requires_admin(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    await service.register(username="bob", email="b@x", password="Pw2!")
    pair = await service.login(username="alice", password="Pw1!")
    alice = service.issuer.verify(pair.access_token)

    with pytest.raises(ForbiddenError):
        await service.assign_role(actor=alice, target_username="bob", role="Admin")
    bob = await service.store.get_user_by_username("bob")
    assert bob.roles == frozenset({"User"})


@pytest.mark.asyncio
async def test_assign_role_unknown_target(service: AuthService) -> None:
    admin = await _admin_claims(service)
    with pytest.raises(NotFoundError):
        await service.assign_role(actor=admin, target_username="ghost", role="Admin")


@pytest.mark.asyncio
async def test_assign_role_is_idempotent(service: AuthService) -> None:
    admin = await _admin_claims(service)
    await service.register(username="alice", email="a@x", password="Pw1!")

    await service.assign_role(actor=admin, target_username="alice", role="Editor")
    await service.assign_role(actor=admin, target_username="alice", role="Editor")
    await service.assign_role(actor=admin, target_username="alice", role="User")

    alice = await service.store.get_user_by_username("alice")
    assert alice.roles == frozenset({"User", "Editor"})


@pytest.mark.asyncio
async def test_logout_revokes_the_refresh_token(service: AuthService) -> None:
    await service.register(username="alice", email="a@x", password="Pw1!")
    pair = await service.login(username="alice", password="Pw1!")

    await service.logout(pair.refresh_token)
    await service.logout(pair.refresh_token)
    await service.logout("made-up")

    with pytest.raises(UnauthorizedError):
        await service.refresh(pair.refresh_token)


@pytest.mark.asyncio
async def test_login_upgrades_outdated_hashes(memory_store, clock) -> None:
    weak = AuthService.from_settings(make_settings(), store=memory_store, clock=clock)
    await weak.register(username="alice", email="a@x", password="Pw1!")
    old_hash = (await memory_store.get_user_by_username("alice")).password_hash

    strong = AuthService.from_settings(
        make_settings(argon2_time_cost=2), store=memory_store, clock=clock
    )
    await strong.login(username="alice", password="Pw1!")

    new_hash = (await memory_store.get_user_by_username("alice")).password_hash
    assert new_hash != old_hash
    assert "t=2" in new_hash
    await strong.login(username="alice", password="Pw1!")


@pytest.mark.asyncio
async def test_ensure_user_is_idempotent(service: AuthService) -> None:
    first = await service.ensure_user(
        username="admin", email="admin@local", password="Admin@123", roles=frozenset({"Admin"})
    )
    second = await service.ensure_user(
        username="admin", email="admin@local", password="other", roles=frozenset({"Admin"})
    )
    assert first is not None
    assert second is None
    await service.login(username="admin", password="Admin@123")
