"""Topic-routed event bus on Redis lists.

The order service publishes "payment completed" and "refund completed"
events to a topic exchange with a routing key.  Consumers declare which
of their queues receive which keys by binding a queue to the exchange:

    await event_bus.bind("learning.lesson.pay.queue", "order.topic", "order.pay")

publish() copies the message onto every bound queue whose binding key
matches the routing key, so several services can each receive their own
copy of the same order event.

Binding keys follow topic-exchange matching on dot-separated words:
  *  matches exactly one word     ("order.*"   matches "order.pay")
  #  matches zero or more words   ("order.#"   matches "order.pay.cny")

Storage layout in Redis:
  mq:bindings:{exchange}  SET of JSON {"queue", "routing_key"}
  mq:queue:{queue}        LIST; LPUSH on publish, BRPOP on consume (FIFO)

Delivery is at-most-once from the queue's point of view: a message is
gone once popped, whatever the handler does with it.  The order service
may still publish the same event twice, which is why provisioning checks
for existing rows before inserting.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from learning.db.redis import redis_pool


@dataclass(frozen=True, slots=True)
class Binding:
    queue: str
    exchange: str
    routing_key: str


@dataclass(frozen=True, slots=True)
class Message:
    """One delivery of an event to one queue."""

    id: str
    queue: str
    routing_key: str
    payload: dict


def topic_matches(binding_key: str, routing_key: str) -> bool:
    """Return True if routing_key matches binding_key under topic rules."""
    pattern = binding_key.split(".")
    words = routing_key.split(".")

    def match(pi: int, wi: int) -> bool:
        if pi == len(pattern):
            return wi == len(words)
        token = pattern[pi]
        if token == "#":
            return any(match(pi + 1, k) for k in range(wi, len(words) + 1))
        if wi == len(words):
            return False
        if token == "*" or token == words[wi]:
            return match(pi + 1, wi + 1)
        return False

    return match(0, 0)


@runtime_checkable
class EventBus(Protocol):
    async def bind(self, queue: str, exchange: str, routing_key: str) -> Binding: ...
    async def publish(
        self, exchange: str, routing_key: str, payload: dict
    ) -> list[Message]: ...
    async def consume(self, queue: str, timeout: int = 0) -> Message | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryEventBus:
    """In-process event bus for tests and local dev."""

    def __init__(self) -> None:
        self._bindings: dict[str, set[Binding]] = {}
        self._queues: dict[str, list[Message]] = {}

    async def bind(self, queue: str, exchange: str, routing_key: str) -> Binding:
        binding = Binding(queue=queue, exchange=exchange, routing_key=routing_key)
        self._bindings.setdefault(exchange, set()).add(binding)
        self._queues.setdefault(queue, [])
        return binding

    async def publish(
        self, exchange: str, routing_key: str, payload: dict
    ) -> list[Message]:
        delivered: list[Message] = []
        queues = sorted(
            {
                b.queue
                for b in self._bindings.get(exchange, set())
                if topic_matches(b.routing_key, routing_key)
            }
        )
        for queue in queues:
            message = Message(
                id=str(uuid.uuid4()),
                queue=queue,
                routing_key=routing_key,
                payload=payload,
            )
            self._queues[queue].append(message)
            delivered.append(message)
        return delivered

    async def consume(self, queue: str, timeout: int = 0) -> Message | None:
        messages = self._queues.get(queue, [])
        if messages:
            return messages.pop(0)
        return None

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))


class RedisEventBus:
    """Redis-backed event bus: binding sets plus one LPUSH/BRPOP list per queue."""

    _BINDINGS_PREFIX = "mq:bindings:"
    _QUEUE_PREFIX = "mq:queue:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def bind(self, queue: str, exchange: str, routing_key: str) -> Binding:
        member = json.dumps(
            {"queue": queue, "routing_key": routing_key}, sort_keys=True
        )
        await self._redis.sadd(f"{self._BINDINGS_PREFIX}{exchange}", member)
        return Binding(queue=queue, exchange=exchange, routing_key=routing_key)

    async def publish(
        self, exchange: str, routing_key: str, payload: dict
    ) -> list[Message]:
        members = await self._redis.smembers(f"{self._BINDINGS_PREFIX}{exchange}")
        queues = sorted(
            {
                b["queue"]
                for b in (json.loads(m) for m in members)
                if topic_matches(b["routing_key"], routing_key)
            }
        )
        delivered: list[Message] = []
        for queue in queues:
            message = Message(
                id=str(uuid.uuid4()),
                queue=queue,
                routing_key=routing_key,
                payload=payload,
            )
            await self._redis.lpush(
                f"{self._QUEUE_PREFIX}{queue}",
                json.dumps(
                    {
                        "id": message.id,
                        "queue": message.queue,
                        "routing_key": message.routing_key,
                        "payload": message.payload,
                    }
                ),
            )
            delivered.append(message)
        return delivered

    async def consume(self, queue: str, timeout: int = 5) -> Message | None:
        result = await self._redis.brpop(f"{self._QUEUE_PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, raw = result
        return Message(**json.loads(raw))

    async def queue_length(self, queue: str) -> int:
        return await self._redis.llen(f"{self._QUEUE_PREFIX}{queue}")


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    event_bus: EventBus = RedisEventBus(redis_pool)
else:
    event_bus = InMemoryEventBus()
