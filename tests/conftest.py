"""
tests.conftest

Shared fixtures.

Responsibilities:
- Provide test settings with a strong signing key and cheap argon2 parameters.
- Provide a controllable clock, credential stores (memory + SQL) and a wired AuthService.
- Provide an in-process HTTP client bound to the FastAPI app.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from authcore.api.app import create_app
from authcore.db.init_db import init_db
from authcore.db.session import create_sessionmaker
from authcore.services.auth_service import AuthService
from authcore.settings import Settings
from authcore.store.memory import InMemoryCredentialStore
from authcore.store.sql import SqlCredentialStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
TEST_SECRET = "test-signing-key-0123456789abcdef-0123456789"
ADMIN_PASSWORD = "Admin@123"


class FixedClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_settings(**overrides) -> Settings:
    values = {
        "env": "test",
        "store_backend": "memory",
        "jwt_secret": TEST_SECRET,
        "argon2_time_cost": 1,
        "argon2_memory_cost": 1024,
        "argon2_parallelism": 1,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def memory_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest_asyncio.fixture
async def sql_store(tmp_path) -> AsyncIterator[SqlCredentialStore]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await init_db(engine)
    try:
        yield SqlCredentialStore(create_sessionmaker(engine))
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    if request.param == "memory":
        yield InMemoryCredentialStore()
        return
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}")
    await init_db(engine)
    try:
        yield SqlCredentialStore(create_sessionmaker(engine))
    finally:
        await engine.dispose()


@pytest.fixture
def service(settings: Settings, memory_store: InMemoryCredentialStore, clock: FixedClock) -> AuthService:
    return AuthService.from_settings(settings, store=memory_store, clock=clock)


@pytest_asyncio.fixture
async def client(clock: FixedClock) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(
        settings=make_settings(bootstrap_admin_password=ADMIN_PASSWORD),
        store=InMemoryCredentialStore(),
        clock=clock,
    )
    # httpx ASGITransport does not manage lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
