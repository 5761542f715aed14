"""Prometheus metric inventory for learning-service.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment it at the point of action.
The API process exposes them on /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # lesson pages fan out to the course service, so the upper buckets matter
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Lesson lifecycle
# ---------------------------------------------------------------------------

LESSON_EVENTS = Counter(
    "lesson_events_total",
    "Order events consumed by the lesson listener",
    ["event", "outcome"],  # event: pay|refund  outcome: processed|discarded|failed
)

LESSONS_PROVISIONED = Counter(
    "lessons_provisioned_total",
    "Lesson rows created from completed payments",
)

LESSONS_REMOVED = Counter(
    "lessons_removed_total",
    "Lesson rows deleted by invalidation",
    ["source"],  # api|mq
)

LESSONS_EXPIRED = Counter(
    "lessons_expired_total",
    "Lesson rows flipped to EXPIRED by the expiry sweep",
)

# ---------------------------------------------------------------------------
# Course gateway
# ---------------------------------------------------------------------------

COURSE_GATEWAY_REQUESTS = Counter(
    "course_gateway_requests_total",
    "Calls to the course/catalogue services",
    ["operation", "outcome"],  # outcome: ok|not_found|error
)

QUEUE_DEPTH = Gauge(
    "event_queue_depth",
    "Messages waiting in a bound event queue",
    ["queue_name"],
)
