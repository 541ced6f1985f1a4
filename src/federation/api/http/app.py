"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.responses import JSONResponse

from src.federation.api.http.app_data import ApplicationDependencies
from src.federation.api.http.routers.federation import router as federation_router
from src.federation.api.http.routers.health import router as health_router
from src.federation.api.utils.app_startup import configure_logging
from src.federation.core.errors import (
    AuthUnavailable,
    DirectoryInterrupted,
    DirectoryUnavailable,
    FederationError,
    InvalidCredentials,
    NotFound,
    RemoteProtocolError,
)
from src.federation.core.services import FederationProviderFactory
from src.federation.runtime.settings import BridgeSettings, get_settings

# Most specific first; the first matching class decides the status
ERROR_STATUS: tuple[tuple[type[FederationError], int, str], ...] = (
    (NotFound, 404, "User not found"),
    (InvalidCredentials, 401, "Invalid username or password"),
    (DirectoryInterrupted, 504, "Remote directory did not answer in time"),
    (AuthUnavailable, 503, "Directory temporarily unavailable"),
    (DirectoryUnavailable, 503, "Directory temporarily unavailable"),
    (RemoteProtocolError, 502, "Remote directory returned an invalid response"),
)


def error_status(exc: FederationError) -> tuple[int, str]:
    for error_type, status_code, detail in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code, detail
    return 500, "Internal Server Error"


def build_dependencies(
    settings: BridgeSettings, factory: FederationProviderFactory | None = None
) -> ApplicationDependencies:
    factory = factory or FederationProviderFactory(settings)
    return ApplicationDependencies(
        settings=settings, provider_factory=factory, provider=factory.create()
    )


def create_app(
    settings: BridgeSettings | None = None,
    dependencies: ApplicationDependencies | None = None,
) -> FastAPI:
    """Build the federation API.

    Without injected dependencies the lifespan loads settings (failing fast on
    a configuration error) and creates the provider factory before the first
    request is served.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "app_dependencies", None) is None:
            app_settings = settings or get_settings()
            configure_logging(app_settings)
            owned = build_dependencies(app_settings)
            app.state.app_dependencies = owned
        logger.info("Federation bridge started")
        try:
            yield
        finally:
            if owned is not None:
                owned.provider.close()
                owned.provider_factory.close()
            logger.info("Federation bridge stopped")

    app = FastAPI(title="Remote Directory Federation Bridge", lifespan=lifespan)
    app.state.app_dependencies = dependencies

    @app.exception_handler(FederationError)
    async def federation_error_handler(request: Request, exc: FederationError):
        status_code, detail = error_status(exc)
        logger.bind(
            status_code=status_code,
            error_type=type(exc).__name__,
            path=request.url.path,
        ).warning("Federation call failed: {error}", error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": detail})

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        with logger.contextualize(
            request_id=request_id, method=request.method, path=request.url.path
        ):
            logger.info("request.start")
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=response.status_code,
                duration_ms=round(duration_ms, 1),
            ).info("request.end")
            response.headers.setdefault("X-Request-ID", request_id)
            return response

    app.include_router(health_router)
    app.include_router(federation_router)
    return app
