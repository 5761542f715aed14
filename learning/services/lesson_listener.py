"""Order event consumers that keep the lesson table in step with orders.

Subscriptions (declared at worker start by setup_subscriptions):

  exchange order.topic
    order.pay     → learning.lesson.pay.queue     → listen_lesson_pay
    order.refund  → learning.lesson.refund.queue  → listen_lesson_refund

A malformed event (no user id, no course ids, unparsable payload) is
logged and dropped: it counts as consumed and is never redelivered.
Failures inside the lesson service propagate to the worker loop, which
logs them and moves on.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from learning.core.metrics import LESSON_EVENTS
from learning.services.event_bus import EventBus
from learning.services.lesson_service import lesson_service_scope

logger = logging.getLogger(__name__)

ORDER_EXCHANGE = "order.topic"
ORDER_PAY_KEY = "order.pay"
ORDER_REFUND_KEY = "order.refund"

LESSON_PAY_QUEUE = "learning.lesson.pay.queue"
LESSON_REFUND_QUEUE = "learning.lesson.refund.queue"

EventHandler = Callable[[dict], Coroutine[Any, Any, None]]


class OrderBasic(BaseModel):
    """Order summary carried by payment and refund events."""

    model_config = ConfigDict(extra="ignore")

    order_id: int | str | None = Field(
        default=None, validation_alias=AliasChoices("orderId", "order_id")
    )
    user_id: int | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )
    course_ids: list[int] | None = Field(
        default=None, validation_alias=AliasChoices("courseIds", "course_ids")
    )
    finish_time: datetime.datetime | None = Field(
        default=None, validation_alias=AliasChoices("finishTime", "finish_time")
    )


def _parse_order(event: str, payload: dict | None) -> tuple[int, list[int]] | None:
    if payload is None:
        order = None
    else:
        try:
            order = OrderBasic.model_validate(payload)
        except ValidationError as e:
            logger.error("Malformed %s event, dropped: %s", event, e)
            LESSON_EVENTS.labels(event=event, outcome="discarded").inc()
            return None

    if order is None or order.user_id is None or not order.course_ids:
        logger.error("Received %s event without user or courses, dropped", event)
        LESSON_EVENTS.labels(event=event, outcome="discarded").inc()
        return None
    return order.user_id, order.course_ids


async def listen_lesson_pay(payload: dict) -> None:
    order = _parse_order("pay", payload)
    if order is None:
        return
    user_id, course_ids = order

    try:
        async with lesson_service_scope() as lessons:
            await lessons.add_user_lessons(user_id, course_ids)
    except Exception:
        LESSON_EVENTS.labels(event="pay", outcome="failed").inc()
        raise
    LESSON_EVENTS.labels(event="pay", outcome="processed").inc()


async def listen_lesson_refund(payload: dict) -> None:
    order = _parse_order("refund", payload)
    if order is None:
        return
    user_id, course_ids = order

    try:
        async with lesson_service_scope() as lessons:
            await lessons.remove_invalid_courses_from_mq(user_id, course_ids)
    except Exception:
        LESSON_EVENTS.labels(event="refund", outcome="failed").inc()
        raise
    LESSON_EVENTS.labels(event="refund", outcome="processed").inc()


async def setup_subscriptions(bus: EventBus) -> dict[str, EventHandler]:
    """Bind the lesson queues to the order exchange; return queue → handler."""
    subscriptions: list[tuple[str, str, EventHandler]] = [
        (LESSON_PAY_QUEUE, ORDER_PAY_KEY, listen_lesson_pay),
        (LESSON_REFUND_QUEUE, ORDER_REFUND_KEY, listen_lesson_refund),
    ]
    handlers: dict[str, EventHandler] = {}
    for queue, routing_key, handler in subscriptions:
        await bus.bind(queue, ORDER_EXCHANGE, routing_key)
        handlers[queue] = handler
        logger.info(
            "Bound queue=%s exchange=%s key=%s", queue, ORDER_EXCHANGE, routing_key
        )
    return handlers
