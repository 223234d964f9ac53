"""Health check endpoints router."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.login_broker.api.http.app_data import ApplicationDependencies

router_health = APIRouter(prefix="/health", tags=["health"])


@router_health.get("")
async def health() -> dict[str, str]:
    """Liveness probe. Does not check dependencies."""
    return {"status": "healthy"}


@router_health.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe for the database and session storage.

    Returns 200 if all dependencies are ready, 503 otherwise.
    """
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    checks: dict[str, str] = {}

    if app_deps.database_service is not None:
        checks["database"] = (
            "healthy" if app_deps.database_service.health_check() else "unhealthy"
        )

    checks["session_storage"] = (
        "healthy" if app_deps.session_storage.is_available() else "unhealthy"
    )

    body = {
        "status": "ready" if all(v == "healthy" for v in checks.values()) else "not_ready",
        "checks": checks,
    }
    if body["status"] != "ready":
        return JSONResponse(status_code=503, content=body)
    return body
