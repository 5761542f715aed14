"""Event consumer process.

RUN:  python -m learning.worker

Same image as the API, different command:
  api:    uvicorn learning.main:app --host 0.0.0.0 --port 8000
  worker: python -m learning.worker

On start the worker binds its queues to the order exchange
(learning.services.lesson_listener.setup_subscriptions), then loops:

  1. Poll every bound queue in turn
  2. Pop one message
  3. Hand the payload to the queue's handler
  4. Log success or failure; a failed message is dropped, not retried

Between polls it runs the lesson expiry sweep once every
LESSON_EXPIRY_SWEEP_SECONDS (0 disables it).

A queue that cannot be polled (Redis down, connection reset) is logged
and retried after ERROR_BACKOFF_SECONDS; the loop keeps running.

Lesson event, expiry and queue-depth metrics are recorded in this process,
so the worker exports them itself on WORKER_METRICS_PORT; the API's
/metrics only covers the API process.
"""

from __future__ import annotations

import asyncio
import logging
import time

from prometheus_client import start_http_server

from learning.core.config import SETTINGS
from learning.core.logging import setup_logging
from learning.core.metrics import QUEUE_DEPTH
from learning.services.event_bus import EventBus, event_bus
from learning.services.lesson_listener import EventHandler, setup_subscriptions
from learning.services.lesson_service import lesson_service_scope

logger = logging.getLogger("learning.worker")

ERROR_BACKOFF_SECONDS = 5.0


async def dispatch_one(bus: EventBus, queue: str, handler: EventHandler) -> bool:
    """Consume and handle at most one message from queue.

    Returns True if a message was taken off the queue (handled or not).
    """
    message = await bus.consume(queue, timeout=1)
    if message is None:
        return False

    context = {"queue": queue, "message_id": message.id}
    try:
        await handler(message.payload)
    except Exception:
        logger.exception(
            "Message %s on [%s] failed, dropped", message.id, queue, extra=context
        )
    else:
        logger.info("Message %s on [%s] handled", message.id, queue, extra=context)
    finally:
        QUEUE_DEPTH.labels(queue_name=queue).set(await bus.queue_length(queue))
    return True


async def run_expiry_sweep() -> int:
    try:
        async with lesson_service_scope() as lessons:
            return await lessons.expire_overdue_lessons()
    except Exception:
        logger.exception("Lesson expiry sweep failed")
        return 0


async def poll_queues(bus: EventBus, handlers: dict[str, EventHandler]) -> bool:
    """One pass over every bound queue; True if any message was taken."""
    busy = False
    for queue_name, handler in handlers.items():
        try:
            busy = await dispatch_one(bus, queue_name, handler) or busy
        except Exception:
            logger.exception(
                "Polling [%s] failed, retrying in %.1fs",
                queue_name,
                ERROR_BACKOFF_SECONDS,
                extra={"queue": queue_name},
            )
            await asyncio.sleep(ERROR_BACKOFF_SECONDS)
    return busy


async def run_worker(bus: EventBus = event_bus) -> None:
    handlers = await setup_subscriptions(bus)
    logger.info("Worker started, listening on queues: %s", list(handlers))

    sweep_every = SETTINGS.lesson_expiry_sweep_seconds
    next_sweep = time.monotonic()

    while True:
        if sweep_every and time.monotonic() >= next_sweep:
            await run_expiry_sweep()
            next_sweep = time.monotonic() + sweep_every

        if not await poll_queues(bus, handlers):
            # in-memory consume() never blocks; don't spin
            await asyncio.sleep(0.5)


def main() -> None:
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    start_http_server(SETTINGS.worker_metrics_port)
    logger.info("Worker metrics on port %d", SETTINGS.worker_metrics_port)
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
