"""
authcore.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with credential store connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from authcore.api.deps import auth_service_dep
from authcore.services.auth_service import AuthService

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    # Liveness: process is up and serving HTTP.
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(service: AuthService = Depends(auth_service_dep)) -> dict[str, str]:
    # Readiness: an unreachable store raises StoreUnavailableError -> 503.
    await service.store.ping()
    return {"status": "ready"}
