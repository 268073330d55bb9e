"""
authcore.store

Credential store package.

Responsibilities:
- Define the `CredentialStore` capability interface.
- Provide interchangeable backends: in-memory (tests/dev) and SQL (SQLAlchemy async).
"""

from authcore.store.base import (
    CredentialStore,
    RefreshTokenRecord,
    StoreError,
    StoreUnavailableError,
    UserRecord,
    UsernameTakenError,
    token_digest,
)

__all__ = [
    "CredentialStore",
    "RefreshTokenRecord",
    "StoreError",
    "StoreUnavailableError",
    "UserRecord",
    "UsernameTakenError",
    "token_digest",
]


# --- Module Notes -----------------------------------------------------------
# Backends are imported from their submodules so the memory store never pulls in
# SQLAlchemy.
