"""
authcore.api.app

FastAPI app factory for the authentication core.

Responsibilities:
- Build the FastAPI application and register routers, middleware and error handlers.
- Initialize and dispose shared infrastructure (credential store, DB engine).
- Build the single `AuthService` and expose its verifier/policies on app.state.
- Seed the bootstrap admin account when configured.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from authcore import __version__
from authcore.api.errors import install_error_handlers
from authcore.api.routers.auth import router as auth_router
from authcore.api.routers.health import router as health_router
from authcore.auth.jwt import Clock, TokenVerifier, utcnow
from authcore.auth.policy import ROLE_ADMIN
from authcore.db.init_db import init_db
from authcore.db.session import create_engine, create_sessionmaker
from authcore.observability.logging import configure_logging, get_logger
from authcore.observability.middleware import RequestContextMiddleware
from authcore.services.auth_service import AuthService, jwt_config
from authcore.settings import Settings
from authcore.store.base import CredentialStore
from authcore.store.memory import InMemoryCredentialStore
from authcore.store.sql import SqlCredentialStore

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    store: CredentialStore | None = None,
    clock: Clock = utcnow,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, store_backend=settings.store_backend)
        engine = None
        credential_store = store
        if credential_store is None and settings.store_backend == "sql":
            engine = create_engine(settings)
            if settings.env in ("dev", "test"):
                # Dev/test convenience: create tables automatically.
                await init_db(engine)
            credential_store = SqlCredentialStore(create_sessionmaker(engine))
        elif credential_store is None:
            credential_store = InMemoryCredentialStore()

        service = AuthService.from_settings(settings, store=credential_store, clock=clock)
        app.state.auth_service = service
        # Read by `authcore.auth.deps`. Verify-only: request handlers never mint tokens.
        app.state.token_verifier = TokenVerifier(jwt_config(settings), clock=clock)
        app.state.authz = service.evaluator

        if settings.bootstrap_admin_password is not None:
            await service.ensure_user(
                username=settings.bootstrap_admin_username,
                email=settings.bootstrap_admin_email,
                password=settings.bootstrap_admin_password.get_secret_value(),
                roles=frozenset({ROLE_ADMIN}),
            )

        try:
            yield
        finally:
            if engine is not None:
                # Dispose the engine to close pools/FDs gracefully.
                await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="authcore",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    install_error_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)

    return app


# --- Module Notes -----------------------------------------------------------
# This file is intentionally small: app composition stays here; auth logic stays
# in `authcore.services` and `authcore.auth`.
