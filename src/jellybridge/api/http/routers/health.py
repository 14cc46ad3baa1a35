"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.jellybridge.api.http.app_data import ApplicationDependencies

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness probe; does not check dependencies."""
    return {"status": "healthy", "service": "jellybridge"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe: 200 when the database is reachable, 503 otherwise.

    Redis is reported but not required; logins fall back to in-process locks.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    checks: dict[str, Any] = {}

    db_healthy = app_deps.database_service.health_check()
    checks["database"] = {"status": "healthy" if db_healthy else "unhealthy"}

    if app_deps.redis_service is not None and app_deps.redis_service.is_enabled:
        redis_healthy = await app_deps.redis_service.health_check()
        checks["redis"] = {"status": "healthy" if redis_healthy else "degraded"}

    if app_deps.scheduler is not None:
        checks["expiry_scheduler"] = {"running": app_deps.scheduler.running}

    body = {"status": "ready" if db_healthy else "not_ready", "checks": checks}
    if not db_healthy:
        return JSONResponse(status_code=503, content=body)
    return body
