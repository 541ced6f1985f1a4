"""FastAPI dependency implementations."""

from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, Request

from src.federation.api.http.app_data import ApplicationDependencies
from src.federation.core.services import FederationProvider
from src.federation.runtime.settings import BridgeSettings

FEDERATION_KEY_HEADER = "X-Federation-Key"


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    """Get the application dependency container."""
    return request.app.state.app_dependencies


def get_settings_dep(
    deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> BridgeSettings:
    """Get the bridge settings."""
    return deps.settings


def get_federation_provider(
    deps: ApplicationDependencies = Depends(get_app_dependencies),
) -> FederationProvider:
    """Get the federation provider instance."""
    return deps.provider


def require_federation_key(
    request: Request, settings: BridgeSettings = Depends(get_settings_dep)
) -> None:
    """Reject callers without the shared federation key, when one is configured."""
    expected = settings.federation_api_key
    if expected is None:
        return
    presented = request.headers.get(FEDERATION_KEY_HEADER, "")
    if not secrets.compare_digest(
        presented.encode("utf-8"), expected.get_secret_value().encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Missing or invalid federation key")
