"""
Order Submission Service

The customer-side contract for creating an order: resolve the restaurant,
persist the order atomically, then announce it on the restaurant's channel.
The returned order is authoritative for id, number, status and timestamps.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from menucraft.models import Order
from menucraft.schemas import OrderCreate, order_payload
from menucraft.services.orders.store import OrderStore
from menucraft.services.realtime import BaseEventBus, OrderEvent
from menucraft.services.restaurants import resolve_restaurant

logger = logging.getLogger(__name__)


class OrderSubmissionService:
    """Places customer orders and emits ``order:new``."""

    def __init__(self, session: AsyncSession, events: BaseEventBus):
        self.session = session
        self.events = events
        self.store = OrderStore(session, events)

    async def submit(self, restaurant_slug: str, order_data: OrderCreate) -> Order:
        """
        Raises:
            NotFoundError: unknown or inactive restaurant
            ValidationError: missing customer, order-type or item fields
        """
        restaurant = await resolve_restaurant(self.session, restaurant_slug)
        order = await self.store.place_order(restaurant.id, order_data)

        await self.events.publish(OrderEvent.NEW, order.restaurant_id, order_payload(order))
        logger.info(f"Order #{order.order_number} announced to restaurant '{restaurant_slug}'")

        return order
