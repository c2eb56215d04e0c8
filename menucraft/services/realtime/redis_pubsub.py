"""
Redis Pub/Sub Event Bus

Every API worker publishes order events to ``<prefix>:<restaurant_id>`` and
runs one listener that pattern-subscribes ``<prefix>:*`` and fans each
message out to the kitchen sessions joined in *that* process. This keeps the
fire-and-forget contract: Redis pub/sub stores nothing for absent
subscribers.
"""

import asyncio
import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from menucraft.services.realtime.base import BaseEventBus, OrderEvent, build_envelope
from menucraft.services.realtime.channels import ChannelRegistry

logger = logging.getLogger(__name__)


class RedisEventBus(BaseEventBus):
    """Cross-process event bus over Redis pub/sub."""

    def __init__(
        self,
        redis_url: str,
        channel_prefix: str = "menucraft:orders",
        registry: Optional[ChannelRegistry] = None,
        client: Optional[aioredis.Redis] = None,
    ):
        super().__init__(registry)
        self.channel_prefix = channel_prefix
        self._redis = client or aioredis.from_url(redis_url, decode_responses=True)
        self._pubsub = None
        self._listener: Optional[asyncio.Task] = None
        logger.info(f"RedisEventBus initialized (prefix={channel_prefix})")

    @property
    def provider_name(self) -> str:
        return "redis"

    def channel_name(self, restaurant_id: str) -> str:
        return f"{self.channel_prefix}:{restaurant_id}"

    # =========================================================================
    # PUBLISHING
    # =========================================================================

    async def publish(
        self,
        event: OrderEvent,
        restaurant_id: str,
        order: dict[str, Any],
    ) -> None:
        envelope = build_envelope(event, restaurant_id, order)
        try:
            receivers = await self._redis.publish(
                self.channel_name(restaurant_id),
                json.dumps(envelope),
            )
            logger.debug(f"{envelope['event']} for {order.get('id')} published to {receivers} worker(s)")
        except RedisError as e:
            # Kitchen clients recover through their reconciliation poll
            logger.error(f"Failed to publish {envelope['event']} for {order.get('id')}: {e}")

    # =========================================================================
    # LISTENING
    # =========================================================================

    async def start(self) -> None:
        if self._listener is not None:
            return
        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(f"{self.channel_prefix}:*")
        self._listener = asyncio.create_task(self._listen(), name="redis-event-listener")
        logger.info(f"Subscribed to {self.channel_prefix}:*")

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        await self._redis.aclose()

    async def _listen(self) -> None:
        while True:
            try:
                async for message in self._pubsub.listen():
                    await self.dispatch(message)
            except asyncio.CancelledError:
                raise
            except RedisError as e:
                logger.error(f"Redis listener error, resubscribing: {e}")
                await asyncio.sleep(1.0)

    async def dispatch(self, message: dict[str, Any]) -> int:
        """Deliver one pub/sub message to local sessions."""
        if message.get("type") != "pmessage":
            return 0

        try:
            envelope = json.loads(message["data"])
            restaurant_id = envelope["restaurantId"]
        except (TypeError, ValueError, KeyError) as e:
            logger.warning(f"Ignoring malformed event on {message.get('channel')}: {e}")
            return 0

        return await self.registry.broadcast(restaurant_id, envelope)

    async def health_check(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False
