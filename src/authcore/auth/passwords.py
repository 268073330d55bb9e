"""
authcore.auth.passwords

Password hashing and verification (argon2id).

Responsibilities:
- Hash plaintext passwords into self-describing PHC strings
  (`$argon2id$v=19$m=...,t=...,p=...$<salt>$<digest>`), fresh random salt per hash.
- Verify plaintext against a stored record, reporting when the record should be
  re-hashed with the current cost parameters.
- Equalize verification cost for unknown users.

The plaintext is never logged, stored, or returned.
"""

from __future__ import annotations

import enum

import argon2
from argon2.exceptions import InvalidHashError, VerificationError

from authcore.observability.logging import get_logger

log = get_logger(__name__)


class PasswordVerification(enum.StrEnum):
    success = "SUCCESS"
    success_rehash_needed = "SUCCESS_REHASH_NEEDED"
    failed = "FAILED"

    @property
    def ok(self) -> bool:
        return self is not PasswordVerification.failed


class PasswordHasher:
    def __init__(
        self,
        *,
        time_cost: int = argon2.DEFAULT_TIME_COST,
        memory_cost: int = argon2.DEFAULT_MEMORY_COST,
        parallelism: int = argon2.DEFAULT_PARALLELISM,
    ) -> None:
        self._ph = argon2.PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            type=argon2.Type.ID,
        )
        # Computed once so the first unknown-user login costs the same as later ones.
        self._dummy_hash = self._ph.hash("authcore-timing-dummy")

    def hash(self, plaintext: str) -> str:
        return self._ph.hash(plaintext)

    def verify(self, plaintext: str, hash_record: str) -> PasswordVerification:
        try:
            # argon2 compares digests in constant time.
            self._ph.verify(hash_record, plaintext)
        except InvalidHashError:
            log.warning("password_hash_unreadable")
            return PasswordVerification.failed
        except VerificationError:
            return PasswordVerification.failed

        if self._ph.check_needs_rehash(hash_record):
            return PasswordVerification.success_rehash_needed
        return PasswordVerification.success

    def verify_dummy(self, plaintext: str) -> None:
        """
        Run a full verification against a fixed hash and discard the result.

        Called when the username does not exist, so response time does not reveal it.
        """

        self.verify(plaintext, self._dummy_hash)


# --- Module Notes -----------------------------------------------------------
# Cost parameters come from settings (`argon2_*`); tests use low values for speed.
