from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

import redis.asyncio as redis
from redis.exceptions import RedisError

from interview_navigator.core.config import settings

logger = logging.getLogger("nav.event_bus")

QUEUE_SIZE = 200


def _recipient(data: str) -> str | None:
    try:
        message = json.loads(data)
    except ValueError:
        return None
    if isinstance(message, dict) and message.get("kind") == "notification":
        return message.get("user_id")
    return None


class EventBus:
    """Fan-out of booking events and notifications.

    A subscriber registered for a user only sees that user's notifications;
    one registered without a user sees every message. With ``redis_url`` set
    messages travel through one Redis channel so every process's subscribers
    get them, otherwise delivery stays in-process.
    """

    def __init__(self, redis_url: str | None = None, channel: str = "nav:events") -> None:
        self._queues: dict[asyncio.Queue[str], str | None] = {}
        self._redis_url = (settings.redis_url if redis_url is None else redis_url).strip()
        self._redis: redis.Redis | None = None
        self._listener: asyncio.Task | None = None
        self._channel = channel

    @property
    def distributed(self) -> bool:
        return bool(self._redis_url)

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    def _deliver(self, data: str) -> None:
        recipient = _recipient(data)
        for queue, user_id in list(self._queues.items()):
            if user_id is not None and user_id != recipient:
                continue
            try:
                queue.put_nowait(data)
            except asyncio.QueueFull:
                logger.warning("event_bus_subscriber_full", extra={"user_id": user_id})

    async def _relay(self) -> None:
        pubsub = self._client().pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message and message.get("type") == "message" and isinstance(message.get("data"), str):
                    self._deliver(message["data"])
        except RedisError as exc:
            logger.warning("event_bus_listener_stopped", extra={"error": str(exc)})
        finally:
            await pubsub.close()

    async def subscribe(self, user_id: str | None = None) -> asyncio.Queue[str]:
        queue: asyncio.Queue[str] = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._queues[queue] = user_id
        if self.distributed and (self._listener is None or self._listener.done()):
            self._listener = asyncio.create_task(self._relay())
        return queue

    async def unsubscribe(self, queue: asyncio.Queue[str]) -> None:
        self._queues.pop(queue, None)

    async def publish(self, payload: Dict[str, Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str)
        if self.distributed:
            try:
                await self._client().publish(self._channel, data)
                return
            except RedisError as exc:
                logger.warning("event_bus_publish_fallback", extra={"error": str(exc)})
        self._deliver(data)


event_bus = EventBus()
