"""
Realtime Event Bus Factory

Returns the in-process or Redis-backed event bus based on ENV_MODE.

Environment Switching:
    - ENV_MODE=development → InMemoryEventBus (single process)
    - ENV_MODE=staging     → RedisEventBus
    - ENV_MODE=production  → RedisEventBus
"""

import logging
from functools import lru_cache

from menucraft.core.config import get_settings
from menucraft.services.realtime.base import BaseEventBus, OrderEvent, build_envelope
from menucraft.services.realtime.channels import (
    ChannelRegistry,
    KitchenSession,
    WebSocketSession,
)
from menucraft.services.realtime.memory import InMemoryEventBus
from menucraft.services.realtime.redis_pubsub import RedisEventBus

logger = logging.getLogger(__name__)


@lru_cache()
def get_event_bus() -> BaseEventBus:
    """Get the configured event bus (one per process)."""
    settings = get_settings()

    if settings.use_real_services:
        logger.info(f"Event Bus: Using RedisEventBus ({settings.env_mode.value} mode)")
        return RedisEventBus(
            redis_url=settings.redis_url,
            channel_prefix=settings.realtime_channel_prefix,
        )

    logger.info("Event Bus: Using InMemoryEventBus (development mode)")
    return InMemoryEventBus()


def reset_event_bus() -> None:
    """Clear the cached bus instance."""
    get_event_bus.cache_clear()


__all__ = [
    "get_event_bus",
    "reset_event_bus",
    "BaseEventBus",
    "OrderEvent",
    "build_envelope",
    "ChannelRegistry",
    "KitchenSession",
    "WebSocketSession",
    "InMemoryEventBus",
    "RedisEventBus",
]
