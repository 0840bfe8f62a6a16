"""Schedule event channel.

Mutations (shift toggles, job edits, scenario lifecycle) are published as
``{"type": ..., "data": ...}`` messages so every open calendar window can
refresh. Messages go over Redis pub/sub; when Redis is unavailable the bus
falls back to in-process subscriber queues with the same contract.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as aioredis
from fastapi import Request
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.config import settings

logger = logging.getLogger(__name__)

SHIFT_UPDATED = "shift-updated"
JOB_UPDATED = "job-updated"
SCENARIO_CREATED = "scenario-created"
SCENARIO_ACTIVATED = "scenario-activated"
SCENARIO_CHANGED = "scenario-changed"
SCENARIO_COMMITTED = "scenario-committed"
SCENARIO_DISCARDED = "scenario-discarded"

_LOCAL_QUEUE_SIZE = 100


def encode_event(event_type: str, data: dict[str, Any] | None = None) -> str:
    """Serialize an event message; UUIDs, dates and datetimes become strings."""
    return json.dumps({"type": event_type, "data": data or {}}, default=str)


class EventBus:
    """Publish/subscribe channel for schedule mutations."""

    def __init__(
        self,
        redis: aioredis.Redis | None = None,
        channel: str = settings.EVENTS_CHANNEL,
    ) -> None:
        self.redis = redis
        self.channel = channel
        self._local_queues: set[asyncio.Queue[str]] = set()

    async def publish(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        """Publish an event to every subscriber."""
        message = encode_event(event_type, data)
        if self.redis is not None:
            try:
                await self.redis.publish(self.channel, message)
                return
            except RedisError as exc:
                logger.warning("Redis publish failed (%s), delivering %s locally", exc, event_type)
        self._publish_local(message)

    async def publish_committed(
        self,
        session: AsyncSession,
        event_type: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Commit ``session``, then publish.

        Subscribers refetch on every event, so the change must be visible to
        other connections first. A failed commit raises and nothing is sent.
        """
        await session.commit()
        await self.publish(event_type, data)

    def _publish_local(self, message: str) -> None:
        for queue in list(self._local_queues):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Dropping event for a slow local subscriber")

    def subscribe_local(self) -> asyncio.Queue[str]:
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=_LOCAL_QUEUE_SIZE)
        self._local_queues.add(queue)
        return queue

    def unsubscribe_local(self, queue: asyncio.Queue[str]) -> None:
        self._local_queues.discard(queue)

    async def listen(self) -> AsyncIterator[str]:
        """Yield raw event messages as they are published."""
        if self.redis is None:
            queue = self.subscribe_local()
            try:
                while True:
                    yield await queue.get()
            finally:
                self.unsubscribe_local(queue)
            return

        pubsub = self.redis.pubsub()
        await pubsub.subscribe(self.channel)
        try:
            async for message in pubsub.listen():
                if message.get("type") == "message":
                    yield message["data"]
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()


def init_event_bus(app_state: object, redis: aioredis.Redis | None) -> EventBus:
    """Create the event bus and store it on app.state."""
    bus = EventBus(redis=redis)
    app_state.events = bus  # type: ignore[attr-defined]
    return bus


def get_event_bus(request: Request) -> EventBus:
    """FastAPI dependency that returns the event bus from app.state."""
    bus: EventBus | None = getattr(request.app.state, "events", None)
    if bus is None:
        raise RuntimeError("Event bus not initialized. Call init_event_bus() first.")
    return bus
