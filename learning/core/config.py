from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("", "0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    course_service_url: str | None = None
    course_service_timeout: float = 5.0
    lesson_expiry_sweep_seconds: int = 3600
    worker_metrics_port: int = 9100

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("COURSE_SERVICE_TIMEOUT", "5.0")
    sweep_raw = _getenv("LESSON_EXPIRY_SWEEP_SECONDS", "3600")
    worker_metrics_port_raw = _getenv("WORKER_METRICS_PORT", "9100")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    if log_json_raw in _TRUTHY:
        log_json = True
    elif log_json_raw in _FALSY:
        log_json = False
    else:
        raise ValueError(f"LOG_JSON must be a boolean (got {log_json_raw!r})")

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        course_service_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"COURSE_SERVICE_TIMEOUT must be a number (got {timeout_raw!r})"
        ) from None
    if course_service_timeout <= 0:
        raise ValueError(
            f"COURSE_SERVICE_TIMEOUT must be positive (got {timeout_raw!r})"
        )

    try:
        lesson_expiry_sweep_seconds = int(sweep_raw)
    except ValueError:
        raise ValueError(
            f"LESSON_EXPIRY_SWEEP_SECONDS must be an integer (got {sweep_raw!r})"
        ) from None
    if lesson_expiry_sweep_seconds < 0:
        raise ValueError(
            f"LESSON_EXPIRY_SWEEP_SECONDS must be >= 0 (got {sweep_raw!r})"
        )

    try:
        worker_metrics_port = int(worker_metrics_port_raw)
    except ValueError:
        raise ValueError(
            f"WORKER_METRICS_PORT must be an integer (got {worker_metrics_port_raw!r})"
        ) from None

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None
    course_service_url = _getenv("COURSE_SERVICE_URL", "") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        course_service_url=course_service_url,
        course_service_timeout=course_service_timeout,
        lesson_expiry_sweep_seconds=lesson_expiry_sweep_seconds,
        worker_metrics_port=worker_metrics_port,
    )


SETTINGS = load_settings()
