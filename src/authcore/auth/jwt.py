"""
authcore.auth.jwt

Access token issuing and verification, plus opaque refresh token minting.

Responsibilities:
- Mint short-lived JWT access tokens carrying a point-in-time claim snapshot
  (sub, jti, uid, roles, iat, exp, iss, aud).
- Verify access tokens against an explicit `now`, mapping every failure onto a
  small set of reason codes.
- Mint opaque refresh token values that carry no claims at all.

Note:
- HS256 with a process-wide shared key by default; the algorithm is pinned on
  decode so a token cannot choose its own.
"""

from __future__ import annotations

import enum
import secrets
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import (
    InvalidAlgorithmError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
)
from pydantic import ValidationError

from authcore.auth.models import AccessClaims

Clock = Callable[[], datetime]

_REQUIRED_CLAIMS = ["sub", "jti", "uid", "roles", "iat", "exp", "iss", "aud"]
REFRESH_TOKEN_BYTES = 32


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class JwtConfig:
    # Algorithm/issuer/audience are enforced during decoding.
    alg: str
    issuer: str
    audience: str
    secret: str
    access_ttl: timedelta = timedelta(minutes=60)
    refresh_ttl: timedelta = timedelta(days=7)


class InvalidReason(enum.StrEnum):
    bad_signature = "BAD_SIGNATURE"
    expired = "EXPIRED"
    malformed_claims = "MALFORMED_CLAIMS"
    issuer_mismatch = "ISSUER_MISMATCH"


class TokenVerificationError(Exception):
    def __init__(self, reason: InvalidReason, detail: str = "") -> None:
        super().__init__(f"{reason}: {detail}" if detail else str(reason))
        self.reason = reason


class TokenVerifier:
    """
    Verify-only capability handed to collaborator services.

    Collaborators hold this (never a `TokenIssuer`) and call `verify`; they do not
    re-implement any of the checks below.
    """

    def __init__(self, cfg: JwtConfig, *, clock: Clock = utcnow) -> None:
        self._cfg = cfg
        self._clock = clock

    def verify(self, token: str) -> AccessClaims:
        return self.verify_access_token(token, self._clock())

    def verify_access_token(self, token: str, now: datetime) -> AccessClaims:
        try:
            # Signature, issuer and audience are checked by PyJWT; time-based checks
            # are done below against the caller's `now`.
            payload: dict[str, Any] = jwt.decode(
                token,
                self._cfg.secret,
                algorithms=[self._cfg.alg],
                issuer=self._cfg.issuer,
                audience=self._cfg.audience,
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except (InvalidSignatureError, InvalidAlgorithmError) as e:
            raise TokenVerificationError(InvalidReason.bad_signature, str(e)) from e
        except (InvalidIssuerError, InvalidAudienceError) as e:
            raise TokenVerificationError(InvalidReason.issuer_mismatch, str(e)) from e
        except InvalidTokenError as e:
            raise TokenVerificationError(InvalidReason.malformed_claims, str(e)) from e

        try:
            claims = AccessClaims.model_validate(payload)
        except ValidationError as e:
            raise TokenVerificationError(InvalidReason.malformed_claims, "claims shape") from e

        if int(now.timestamp()) >= claims.exp:
            raise TokenVerificationError(InvalidReason.expired)
        return claims


class TokenIssuer(TokenVerifier):
    """
    Stateless minting: a pure function of (claims, key, clock).
    """

    def mint_access_token(
        self,
        *,
        subject: str,
        user_id: uuid.UUID,
        roles: Iterable[str],
        now: datetime,
    ) -> tuple[str, datetime]:
        issued_at = int(now.timestamp())
        expires_at = issued_at + int(self._cfg.access_ttl.total_seconds())
        # Keep payload minimal and stable; collaborators parse it with `AccessClaims`.
        payload: dict[str, Any] = {
            "iss": self._cfg.issuer,
            "aud": self._cfg.audience,
            "sub": subject,
            "jti": uuid.uuid4().hex,
            "uid": str(user_id),
            "roles": sorted(set(roles)),
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._cfg.secret, algorithm=self._cfg.alg)
        return token, datetime.fromtimestamp(expires_at, tz=UTC)

    def mint_refresh_token(self, now: datetime) -> tuple[str, datetime]:
        # 256 bits of entropy; resolved only through a store lookup.
        return secrets.token_urlsafe(REFRESH_TOKEN_BYTES), now + self._cfg.refresh_ttl


# --- Module Notes -----------------------------------------------------------
# Token issuing is used by:
# - `services/auth_service.py` (login / refresh)
# - `auth/refresh.py` (refresh token values)
# Verification is used by `auth/deps.py` and by collaborators via `TokenVerifier`.
