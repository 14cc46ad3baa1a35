"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.responses import JSONResponse

from src.jellybridge.api.http.app_data import ApplicationDependencies, build_application_dependencies
from src.jellybridge.api.http.routers import admin, health, logins, pairing
from src.jellybridge.core.exceptions import (
    ConfigurationError,
    DownstreamUnavailable,
    IdentityClaimsError,
    InvalidPairingCodeError,
    LocalUserConflictError,
    LoginLockTimeoutError,
    PairingApprovalError,
    ProvisioningError,
    UnknownUserError,
)
from src.jellybridge.runtime.context import get_config

ERROR_STATUS: dict[type[Exception], int] = {
    IdentityClaimsError: 400,
    InvalidPairingCodeError: 400,
    UnknownUserError: 404,
    LocalUserConflictError: 409,
    ConfigurationError: 500,
    ProvisioningError: 502,
    PairingApprovalError: 502,
    DownstreamUnavailable: 503,
    LoginLockTimeoutError: 503,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.bind(status_code=status_code, error_type=type(exc).__name__).warning(
            "request.failed: {}", exc
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(dependencies: ApplicationDependencies | None = None) -> FastAPI:
    """Build the application.

    With ``dependencies`` given (tests), the lifespan does not build or start
    anything and the caller owns their lifetime.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if dependencies is not None:
            yield
            return

        deps = build_application_dependencies()
        app.state.app_dependencies = deps
        logger.info("Starting up application in {} environment", deps.config.app.environment)
        if deps.scheduler is not None:
            deps.scheduler.start()
        try:
            yield
        finally:
            logger.info("Shutting down application")
            await deps.aclose()

    environment = get_config().app.environment
    app = FastAPI(
        title="jellybridge",
        lifespan=lifespan,
        docs_url=None if environment == "production" else "/docs",
        redoc_url=None if environment == "production" else "/redoc",
    )
    if dependencies is not None:
        app.state.app_dependencies = dependencies

    for exc_type, status_code in ERROR_STATUS.items():
        app.add_exception_handler(exc_type, _error_handler(status_code))

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        with logger.contextualize(request_id=request_id, method=request.method, path=request.url.path):
            response = await call_next(request)
            logger.bind(
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 1),
            ).info("request.end")
            response.headers.setdefault("X-Request-ID", request_id)
            return response

    app.include_router(health.router)
    app.include_router(logins.router)
    app.include_router(pairing.router)
    app.include_router(admin.router)
    return app
