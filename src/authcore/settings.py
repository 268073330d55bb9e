"""
authcore.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, bootstrap admin password).
- Refuse to start in prod with a weak or default signing key.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me-dev-secret-change-me"
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """
    Strict env-driven configuration; defaults are safe for local dev only.
    """

    model_config = SettingsConfigDict(env_prefix="AUTHCORE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "authcore"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Access tokens
    jwt_alg: str = "HS256"
    jwt_issuer: str = "authcore"
    jwt_audience: str = "authcore-clients"
    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, repr=False)
    access_token_ttl_minutes: int = Field(default=60, ge=1)

    # Refresh tokens
    refresh_token_ttl_days: int = Field(default=7, ge=1)
    # Replay of a rotated token revokes every refresh token of that user.
    revoke_sessions_on_replay: bool = True

    # Password hashing (argon2id cost parameters)
    argon2_time_cost: int = Field(default=3, ge=1)
    argon2_memory_cost: int = Field(default=65536, ge=8)
    argon2_parallelism: int = Field(default=4, ge=1)

    # Persistence
    store_backend: Literal["sql", "memory"] = "sql"
    database_url: str = "sqlite+aiosqlite:///./authcore.db"

    # Optional admin account created at startup; disabled while the password is unset.
    bootstrap_admin_username: str = "admin"
    bootstrap_admin_email: str = "admin@local"
    bootstrap_admin_password: SecretStr | None = None

    @model_validator(mode="after")
    def _check_signing_key(self) -> Settings:
        if not self.jwt_secret:
            raise ValueError("jwt_secret must be set")
        if self.env == "prod":
            if self.jwt_secret == DEFAULT_JWT_SECRET:
                raise ValueError("jwt_secret must be overridden in prod")
            if len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
                raise ValueError(
                    f"jwt_secret must be at least {MIN_JWT_SECRET_LENGTH} characters"
                )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# The signing key is read once here and treated as read-only for the life of the
# process; every request handler shares it without locking.
