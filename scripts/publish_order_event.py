#!/usr/bin/env python3
"""Publish an order event the way the order service does.

RUN:  REDIS_URL=redis://localhost:6379/0 \
      python scripts/publish_order_event.py pay 42 7 9
      python scripts/publish_order_event.py refund 42 9

Prerequisites:
  - REDIS_URL points at the same Redis as the worker
  - The worker has started at least once (it creates the queue bindings)

Without REDIS_URL the event goes to an in-process bus nobody reads;
the script says so and exits non-zero.
"""

from __future__ import annotations

import asyncio
import datetime
import sys

from learning.services.event_bus import InMemoryEventBus, event_bus
from learning.services.lesson_listener import (
    ORDER_EXCHANGE,
    ORDER_PAY_KEY,
    ORDER_REFUND_KEY,
)

ROUTING_KEYS = {"pay": ORDER_PAY_KEY, "refund": ORDER_REFUND_KEY}


async def publish(kind: str, user_id: int, course_ids: list[int]) -> int:
    payload = {
        "orderId": int(datetime.datetime.now(datetime.UTC).timestamp() * 1000),
        "userId": user_id,
        "courseIds": course_ids,
        "finishTime": datetime.datetime.now(datetime.UTC).isoformat(),
    }
    delivered = await event_bus.publish(ORDER_EXCHANGE, ROUTING_KEYS[kind], payload)
    for message in delivered:
        print(f"queued {message.id} → {message.queue}")
    return len(delivered)


def main(argv: list[str]) -> int:
    if len(argv) < 3 or argv[0] not in ROUTING_KEYS:
        print("usage: publish_order_event.py pay|refund USER_ID COURSE_ID...")
        return 2
    if isinstance(event_bus, InMemoryEventBus):
        print("REDIS_URL is not set; nothing would receive this event")
        return 1

    kind, user_id, course_ids = argv[0], int(argv[1]), [int(c) for c in argv[2:]]
    delivered = asyncio.run(publish(kind, user_id, course_ids))
    if not delivered:
        print("no queue is bound for this event; start the worker first")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
