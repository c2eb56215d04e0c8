"""
In-Process Event Bus

Delivers straight into the local channel registry. Suitable for a single API
process (development, tests).
"""

import logging
from typing import Any

from menucraft.services.realtime.base import BaseEventBus, OrderEvent, build_envelope

logger = logging.getLogger(__name__)


class InMemoryEventBus(BaseEventBus):
    """Event bus for a single process."""

    @property
    def provider_name(self) -> str:
        return "memory"

    async def publish(
        self,
        event: OrderEvent,
        restaurant_id: str,
        order: dict[str, Any],
    ) -> None:
        envelope = build_envelope(event, restaurant_id, order)
        delivered = await self.registry.broadcast(restaurant_id, envelope)
        logger.debug(f"{envelope['event']} for {order.get('id')} delivered to {delivered} session(s)")

    async def health_check(self) -> bool:
        return True
