"""In-memory async event bus for SSE streaming, partitioned by guild.

Roulette runs publish wheel frames and run lifecycle events; SSE endpoints
subscribe. A subscription only ever sees events of the guild it was opened
for, which is the guild its session token is bound to. Each subscriber gets
a bounded asyncio.Queue; if a subscriber falls behind, events are dropped for
that subscriber only.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict
from typing import Any

logger = logging.getLogger(__name__)

ROULETTE_STARTED = "roulette.started"
SPIN_STARTED = "wheel.spin_started"
WHEEL_FRAME = "wheel.frame"
SPIN_FINISHED = "wheel.spin_finished"
ROULETTE_FINISHED = "roulette.finished"
ROULETTE_CANCELLED = "roulette.cancelled"
ROULETTE_FAILED = "roulette.failed"

EVENT_TYPES: frozenset[str] = frozenset(
    {
        ROULETTE_STARTED,
        SPIN_STARTED,
        WHEEL_FRAME,
        SPIN_FINISHED,
        ROULETTE_FINISHED,
        ROULETTE_CANCELLED,
        ROULETTE_FAILED,
    }
)


class EventBus:
    """Guild-partitioned async pub/sub.

    Usage:
        bus = EventBus()

        # Subscriber (SSE endpoint)
        async with bus.subscribe("guild-1") as sub:
            event = await sub.get(timeout=15)

        # Publisher (roulette run)
        await bus.publish("guild-1", "wheel.frame", {"rotation": 1.5})
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[asyncio.Queue[dict[str, Any]]]] = defaultdict(list)

    async def publish(self, guild_id: str, event_type: str, data: dict[str, Any]) -> int:
        """Publish an event to every subscriber of ``guild_id``.

        Returns the number of subscribers that received the event.
        """
        envelope = {"type": event_type, "data": data}
        count = 0
        for queue in self._subscribers.get(guild_id, []):
            try:
                queue.put_nowait(envelope)
                count += 1
            except asyncio.QueueFull:
                logger.warning("event_dropped type=%s guild=%s slow subscriber", event_type, guild_id)
        return count

    def subscribe(self, guild_id: str, max_size: int = 1000) -> Subscription:
        """Create a subscription to one guild's events.

        Must be used as an async context manager to ensure cleanup.
        """
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=max_size)
        return Subscription(self, queue, guild_id)

    def _register(self, queue: asyncio.Queue[dict[str, Any]], guild_id: str) -> None:
        self._subscribers[guild_id].append(queue)

    def _unregister(self, queue: asyncio.Queue[dict[str, Any]], guild_id: str) -> None:
        queues = self._subscribers.get(guild_id)
        if queues is None:
            return
        with contextlib.suppress(ValueError):
            queues.remove(queue)
        if not queues:
            del self._subscribers[guild_id]

    def subscriber_count(self, guild_id: str | None = None) -> int:
        """Active subscriptions for one guild, or across all guilds."""
        if guild_id is not None:
            return len(self._subscribers.get(guild_id, []))
        return sum(len(queues) for queues in self._subscribers.values())


class Subscription:
    """An active subscription. Use as async context manager + async iterator."""

    def __init__(
        self,
        bus: EventBus,
        queue: asyncio.Queue[dict[str, Any]],
        guild_id: str,
    ) -> None:
        self._bus = bus
        self._queue = queue
        self.guild_id = guild_id
        self._active = False

    async def __aenter__(self) -> Subscription:
        self._bus._register(self._queue, self.guild_id)
        self._active = True
        return self

    async def __aexit__(self, *args: object) -> None:
        self._active = False
        self._bus._unregister(self._queue, self.guild_id)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> dict[str, Any]:
        if not self._active:
            raise StopAsyncIteration
        try:
            return await self._queue.get()
        except asyncio.CancelledError:
            raise StopAsyncIteration from None

    async def get(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Next event, or None if nothing arrives within ``timeout`` seconds."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except TimeoutError:
            return None
