"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Depends
from starlette.responses import JSONResponse

from src.federation.api.http.deps import get_federation_provider
from src.federation.core.services import FederationProvider

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health() -> dict[str, str]:
    """Liveness probe; does not touch the remote API."""
    return {"status": "healthy", "service": "federation-bridge"}


@router.get("/ready", response_model=None)
def readiness(
    provider: FederationProvider = Depends(get_federation_provider),
) -> dict[str, Any] | JSONResponse:
    """Readiness probe: 200 while an admin token is held or can be obtained."""
    if provider.test_connection(force_login=False):
        return {"status": "ready", "checks": {"remote_directory": "healthy"}}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "checks": {"remote_directory": "unhealthy"}},
    )
