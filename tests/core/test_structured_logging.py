"""JSON log lines must stay parseable and carry request/message context."""

from __future__ import annotations

import json
import logging
import sys

from learning.core.logging import _ContainerFormatter, _JsonFormatter


def _record(msg: str = "lesson added", level: int = logging.INFO, args=(), exc_info=None):
    return logging.LogRecord(
        name="learning.services.lesson_service",
        level=level,
        pathname="lesson_service.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


def test_json_formatter_produces_valid_json() -> None:
    output = _JsonFormatter().format(_record("Added lessons user=%d", args=(42,)))
    parsed = json.loads(output)
    assert parsed["level"] == "INFO"
    assert parsed["logger"] == "learning.services.lesson_service"
    assert parsed["message"] == "Added lessons user=42"
    assert "timestamp" in parsed


def test_json_formatter_includes_request_fields() -> None:
    record = _record()
    record.request_id = "abc-123"  # type: ignore[attr-defined]
    record.method = "GET"  # type: ignore[attr-defined]
    record.path = "/lessons/page"  # type: ignore[attr-defined]
    record.user_id = "42"  # type: ignore[attr-defined]
    record.duration_ms = 12.5  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["request_id"] == "abc-123"
    assert parsed["method"] == "GET"
    assert parsed["path"] == "/lessons/page"
    assert parsed["user_id"] == "42"
    assert parsed["duration_ms"] == 12.5


def test_json_formatter_includes_worker_fields() -> None:
    record = _record()
    record.queue = "learning.lesson.pay.queue"  # type: ignore[attr-defined]
    record.message_id = "m-1"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert parsed["queue"] == "learning.lesson.pay.queue"
    assert parsed["message_id"] == "m-1"


def test_json_formatter_skips_placeholder_context() -> None:
    record = _record()
    record.request_id = "-"  # type: ignore[attr-defined]
    record.user_id = "-"  # type: ignore[attr-defined]

    parsed = json.loads(_JsonFormatter().format(record))

    assert "request_id" not in parsed
    assert "user_id" not in parsed


def test_json_formatter_includes_exception_info() -> None:
    try:
        raise ValueError("test error")
    except ValueError:
        output = _JsonFormatter().format(
            _record("sweep failed", level=logging.ERROR, exc_info=sys.exc_info())
        )

    parsed = json.loads(output)
    assert "ValueError: test error" in parsed["exception"]


def test_container_formatter_is_not_json() -> None:
    output = _ContainerFormatter().format(_record("server started"))
    assert "INFO" in output
    assert "learning.services.lesson_service" in output
    try:
        json.loads(output)
        raise AssertionError("Container format should not be valid JSON")
    except json.JSONDecodeError:
        pass
