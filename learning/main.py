"""learning-service API process: app assembly.

RUN:  uvicorn learning.main:app --host 0.0.0.0 --port 8000

Wires logging, the database/Redis lifespans, the course-service error
handler, middleware and routers.  Lesson event handling runs in the
separate worker process (learning.worker).
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from learning.api.health import router as health_router
from learning.api.lessons import router as lessons_router
from learning.api.metrics_endpoint import router as metrics_router
from learning.core.config import SETTINGS
from learning.core.logging import setup_logging
from learning.db.engine import lifespan_db
from learning.db.redis import lifespan_redis
from learning.middleware.metrics import MetricsMiddleware
from learning.middleware.request_context import (
    RequestContextMiddleware,
    install_log_filter,
)
from learning.services.course_client import CourseServiceError, course_client

setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    async with lifespan_db():
        async with lifespan_redis():
            yield
    aclose = getattr(course_client, "aclose", None)
    if aclose is not None:
        await aclose()


app = FastAPI(
    title="learning-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)


@app.exception_handler(CourseServiceError)
async def course_service_error_handler(
    _request: Request, exc: CourseServiceError
) -> JSONResponse:
    logger.error("Course service failure op=%s: %s", exc.operation, exc.detail)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Course service is unavailable"},
    )


# last added runs first: RequestContext → Metrics → route
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(lessons_router)

logger.info(
    "learning-service started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
