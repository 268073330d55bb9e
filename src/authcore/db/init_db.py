"""
authcore.db.init_db

DB initialization helper (dev/test convenience).

Responsibilities:
- Create tables for local development and tests.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from authcore.db import models  # noqa: F401  # ensure models are registered on Base.metadata
from authcore.db.base import Base


async def init_db(engine: AsyncEngine) -> None:
    """
    Dev/test bootstrap: create tables if they don't exist.
    """

    # Use a transactional DDL block when supported by the backend.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# --- Module Notes -----------------------------------------------------------
# Schema migrations for long-lived databases are managed outside this service.
