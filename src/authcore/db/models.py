"""
authcore.db.models

Persistence schema for credentials.

Responsibilities:
- Define ORM models:
  - User: identity + password hash
  - UserRole: (user, role) join rows; a user's role set
  - RefreshToken: digest-keyed refresh token records
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authcore.db.base import Base


def _utcnow() -> datetime:
    # Persist naive UTC timestamps; repositories convert at the boundary.
    return datetime.utcnow()


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    username: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    # One-way: roles are owned by the user; nothing navigates back from a role or token.
    roles: Mapped[list[UserRole]] = relationship(
        cascade="all, delete-orphan", lazy="selectin"
    )


class UserRole(Base):
    __tablename__ = "user_roles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), primary_key=True
    )
    # Case-sensitive tag from an open set ("User", "Admin", ...).
    role: Mapped[str] = mapped_column(String(64), primary_key=True)


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    # SHA-256 hex digest of the opaque value.
    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )

    issued_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    replaced_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (Index("ix_refresh_tokens_user_revoked", "user_id", "revoked"),)


# --- Module Notes -----------------------------------------------------------
# `revoked` only ever moves false -> true; no code path clears it.
