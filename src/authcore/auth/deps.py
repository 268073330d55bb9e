"""
authcore.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into verified `AccessClaims`.
- Enforce named role policies via reusable dependency factories.

Any FastAPI app (this service or a collaborator) can use these by placing a
`TokenVerifier` on `app.state.token_verifier` and, optionally, an
`AuthorizationEvaluator` on `app.state.authz`.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authcore.auth.jwt import TokenVerificationError, TokenVerifier
from authcore.auth.models import AccessClaims
from authcore.auth.policy import AuthorizationEvaluator
from authcore.errors import ForbiddenError, UnauthorizedError
from authcore.observability.logging import get_logger

log = get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier  # type: ignore[attr-defined]


def get_evaluator(request: Request) -> AuthorizationEvaluator:
    return getattr(request.app.state, "authz", None) or AuthorizationEvaluator()


def get_claims(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AccessClaims:
    if creds is None or not creds.credentials:
        raise UnauthorizedError("missing bearer token")

    try:
        return verifier.verify(creds.credentials)
    except TokenVerificationError as e:
        # The reason stays in the logs; the caller only sees 401.
        log.info("access_token_rejected", reason=str(e.reason))
        raise UnauthorizedError(str(e.reason)) from e


def require_policy(policy: str):
    def _dep(
        claims: AccessClaims = Depends(get_claims),
        evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    ) -> AccessClaims:
        if not evaluator.permits(claims.roles, policy):
            log.info("policy_denied", policy=policy, subject=claims.subject)
            raise ForbiddenError()
        return claims

    return _dep


# --- Module Notes -----------------------------------------------------------
# Errors are raised as `authcore.errors` types; the app's exception handlers
# (see `authcore.api.errors`) turn them into 401/403 responses.
