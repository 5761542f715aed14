"""Health and readiness endpoints.

  /health (liveness): the process answers; body lists each dependency
    as ok / degraded / not_configured.  Always 200; a degraded
    dependency should not get the container restarted.

  /ready (readiness): 503 while a configured database is unreachable,
    so the load balancer stops routing lesson traffic here until it
    recovers.  Redis and the course service are not required to serve
    reads from the lesson table, so they do not gate readiness.
"""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from learning.core.config import SETTINGS
from learning.db import engine as db_engine
from learning.db.redis import redis_pool

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if db_engine.engine is not None:
        if await db_engine.ping_database():
            checks["database"] = "ok"
        else:
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "not_configured"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    checks["course_service"] = (
        "configured" if SETTINGS.course_service_url else "not_configured"
    )

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    if db_engine.engine is not None and not await db_engine.ping_database():
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)
