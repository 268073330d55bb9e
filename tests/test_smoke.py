"""
tests.test_smoke

Smoke test that the service boots with the SQL backend and serves core endpoints.
"""

from __future__ import annotations

import httpx
import pytest

from authcore.api.app import create_app
from tests.conftest import make_settings


@pytest.mark.asyncio
async def test_sql_backed_app_serves_auth_flow(tmp_path) -> None:
    app = create_app(
        settings=make_settings(
            store_backend="sql",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'authcore.db'}",
        )
    )

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/healthz")
            assert r.status_code == 200
            assert r.json()["status"] == "ok"

            r = await client.get("/readyz")
            assert r.status_code == 200
            assert r.json()["status"] == "ready"

            r = await client.post(
                "/api/auth/register",
                json={"username": "alice", "email": "a@x", "password": "Pw1!"},
            )
            assert r.status_code == 200

            r = await client.post(
                "/api/auth/login", json={"username": "alice", "password": "Pw1!"}
            )
            assert r.status_code == 200
            refresh_token = r.json()["refreshToken"]

            r = await client.post("/api/auth/refresh", json={"refreshToken": refresh_token})
            assert r.status_code == 200


@pytest.mark.asyncio
async def test_readyz_reports_an_unreachable_store(tmp_path) -> None:
    app = create_app(
        settings=make_settings(
            env="prod",
            store_backend="sql",
            jwt_secret="p" * 48,
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'authcore.db'}",
        )
    )

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get("/readyz")
            assert r.status_code == 503
            assert r.json() == {"detail": "Service unavailable"}

            r = await client.post("/api/auth/login", json={"username": "a", "password": "b"})
            assert r.status_code == 503
