"""
authcore.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide the dependency function for the shared `AuthService`.
- Encapsulate app.state access patterns.
"""

from __future__ import annotations

from fastapi import Request

from authcore.services.auth_service import AuthService


def auth_service_dep(request: Request) -> AuthService:
    # Built once on app startup in `authcore.api.app.create_app`.
    return request.app.state.auth_service  # type: ignore[attr-defined]
