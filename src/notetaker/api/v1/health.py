"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. The
readiness probe verifies database connectivity and reports whether the
Recall.ai configuration is valid and the bot scheduler is running.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.notetaker.config import get_settings
from src.notetaker.core.database import get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check.

    No external dependencies are checked -- just that the server is running.
    """
    settings = get_settings()
    return {"status": "ok", "environment": settings.ENVIRONMENT.value}


async def _check_dependencies(request: Request) -> dict:
    """Check database connectivity and bot pipeline state."""
    checks: dict = {"database": "ok"}

    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)

    recall_client = getattr(request.app.state, "recall_client", None)
    if recall_client is None:
        checks["recall"] = "not_initialized"
    else:
        checks["recall"] = "ok" if recall_client.validate_configuration().is_valid else "no_key"

    scheduler = getattr(request.app.state, "bot_scheduler", None)
    checks["bot_scheduler"] = "running" if scheduler is not None and scheduler.is_running else "stopped"

    return checks


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness check: verifies DB connectivity.

    Returns 200 if the database is reachable, 503 otherwise. A missing
    Recall.ai key or stopped scheduler is reported but does not fail
    readiness.
    """
    checks = await _check_dependencies(request)
    all_healthy = checks.get("database") == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )
