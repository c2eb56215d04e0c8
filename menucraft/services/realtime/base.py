"""
Realtime Event Bus Abstract Base Class

Defines how order lifecycle events reach kitchen sessions.
Supports both in-process (development) and Redis pub/sub (production)
implementations.

Delivery is fire-and-forget: no acknowledgement, retry or persistence. A
session that is not connected when an event is emitted never sees it and
relies on the kitchen client's reconciliation poll instead.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

from menucraft.services.realtime.channels import ChannelRegistry

logger = logging.getLogger(__name__)


class OrderEvent(str, Enum):
    """Event names pushed on a restaurant channel."""
    NEW = "order:new"
    UPDATED = "order:updated"
    DELETED = "order:deleted"


def build_envelope(
    event: OrderEvent,
    restaurant_id: str,
    order: dict[str, Any],
) -> dict[str, Any]:
    """Wire envelope shared by every bus implementation."""
    return {
        "event": OrderEvent(event).value,
        "restaurantId": restaurant_id,
        "order": order,
    }


class BaseEventBus(ABC):
    """Abstract base class for realtime event buses."""

    def __init__(self, registry: Optional[ChannelRegistry] = None):
        self.registry = registry or ChannelRegistry()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def publish(
        self,
        event: OrderEvent,
        restaurant_id: str,
        order: dict[str, Any],
    ) -> None:
        """
        Emit an event to the restaurant's channel.

        Must never raise on delivery problems.
        """
        pass

    async def start(self) -> None:
        """Open connections / start listeners."""

    async def stop(self) -> None:
        """Release connections / stop listeners."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Check bus connectivity."""
        pass
