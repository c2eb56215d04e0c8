"""
Kitchen Sync Client

Per-restaurant local view of orders for one kitchen station.

Local state is always the last applied snapshot per order: either from a
realtime event, a server response, an optimistic local write, or the
reconciliation poll. The poll re-fetches the full list every
``kitchen_poll_interval_seconds`` regardless of event traffic and replaces
local state wholesale, which is what heals missed events. Snapshots are
applied as whole replacements, never patched.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError as SchemaError

from menucraft.core.config import get_settings
from menucraft.core.exceptions import InvalidTransitionError, OrderingError
from menucraft.core.timeutils import as_utc, utcnow
from menucraft.kitchen.api import OrdersApiClient
from menucraft.models import OrderStatus
from menucraft.schemas import OrderSnapshot
from menucraft.services.orders.state_machine import plan_transition
from menucraft.services.realtime.base import OrderEvent

logger = logging.getLogger(__name__)


@dataclass
class KitchenStats:
    total: int
    pending: int
    in_progress: int
    completed: int
    avg_prep_minutes: Optional[float]


class KitchenSyncClient:
    """Local order view for one restaurant."""

    def __init__(
        self,
        api: OrdersApiClient,
        slug: str,
        restaurant_id: str,
        poll_interval: Optional[float] = None,
        limit: Optional[int] = None,
    ):
        settings = get_settings()
        self.api = api
        self.slug = slug
        self.restaurant_id = restaurant_id
        self.poll_interval = poll_interval or settings.kitchen_poll_interval_seconds
        self.limit = limit

        self._orders: dict[str, OrderSnapshot] = {}
        self._refresh_requested = asyncio.Event()
        self._running = False
        self.last_refresh_at: Optional[datetime] = None

    @classmethod
    async def for_restaurant(cls, api: OrdersApiClient, slug: str, **kwargs) -> "KitchenSyncClient":
        """Resolve ``slug`` and build a client for it."""
        restaurant = await api.get_restaurant(slug)
        return cls(api, slug, restaurant.id, **kwargs)

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def refresh(self) -> bool:
        """
        Re-fetch the full order list and replace local state with it.

        A failed fetch keeps the last-known state and is retried on the next
        poll tick.

        Returns:
            True if local state was replaced
        """
        try:
            orders = await self.api.list_orders(self.slug, limit=self.limit)
        except OrderingError as e:
            logger.warning(f"Order refresh for '{self.slug}' failed, keeping last-known state: {e.message}")
            return False

        self._orders = {
            order.id: order for order in orders if order.restaurant_id == self.restaurant_id
        }
        self.last_refresh_at = utcnow()
        logger.debug(f"Refreshed '{self.slug}': {len(self._orders)} order(s)")
        return True

    def request_refresh(self) -> None:
        """Wake the poll loop for an immediate re-fetch."""
        self._refresh_requested.set()

    async def run(self) -> None:
        """Poll loop; returns after ``stop()``."""
        self._running = True
        logger.info(f"Kitchen sync for '{self.slug}' started (every {self.poll_interval}s)")
        while self._running:
            await self.refresh()
            try:
                await asyncio.wait_for(self._refresh_requested.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._refresh_requested.clear()
        logger.info(f"Kitchen sync for '{self.slug}' stopped")

    def stop(self) -> None:
        self._running = False
        self._refresh_requested.set()

    # =========================================================================
    # REALTIME
    # =========================================================================

    def apply_event(self, envelope: dict[str, Any]) -> bool:
        """
        Apply one realtime envelope.

        A malformed envelope is dropped and an immediate re-fetch requested,
        so the server's list replaces whatever the event should have carried.

        Returns:
            True if local state changed
        """
        if envelope.get("restaurantId") != self.restaurant_id:
            logger.debug(f"Ignoring event for restaurant {envelope.get('restaurantId')}")
            return False

        event = envelope.get("event")
        if event not in (OrderEvent.NEW.value, OrderEvent.UPDATED.value, OrderEvent.DELETED.value):
            logger.debug(f"Ignoring unknown event {event!r}")
            return False

        payload = envelope.get("order")
        if not isinstance(payload, dict):
            return self._discard_event(event, f"order payload is {type(payload).__name__}")

        if event == OrderEvent.DELETED.value:
            return self._orders.pop(payload.get("id"), None) is not None

        try:
            order = OrderSnapshot.model_validate(payload)
        except SchemaError as e:
            return self._discard_event(event, f"{e.error_count()} validation error(s)")

        return self.apply_snapshot(order)

    def _discard_event(self, event: str, reason: str) -> bool:
        logger.warning(f"Dropping malformed {event} event ({reason}); re-fetching")
        self.request_refresh()
        return False

    def apply_snapshot(self, order: OrderSnapshot) -> bool:
        """Replace the local copy of ``order`` wholesale."""
        if order.restaurant_id != self.restaurant_id:
            return False
        self._orders[order.id] = order
        return True

    # =========================================================================
    # KITCHEN ACTIONS
    # =========================================================================

    async def update_status(self, order_id: str, status: OrderStatus) -> OrderSnapshot:
        """
        Apply a transition optimistically, then confirm it with the server.

        On failure the optimistic copy is reverted (unless something newer
        already replaced it), an immediate re-fetch is scheduled and the
        error is re-raised for the caller to surface.
        """
        status = OrderStatus(status)
        previous = self._orders.get(order_id)
        optimistic = None

        if previous is not None:
            try:
                transition = plan_transition(previous.status, status)
            except InvalidTransitionError:
                # Local copy may be stale; the server decides
                transition = None
            if transition is not None:
                optimistic = previous.model_copy(
                    update={"status": status, transition.timestamp_field: utcnow()}
                )
                self._orders[order_id] = optimistic

        try:
            updated = await self.api.update_status(order_id, status)
        except OrderingError as e:
            if optimistic is not None and self._orders.get(order_id) is optimistic:
                self._orders[order_id] = previous
            logger.warning(f"Status change of {order_id} to {status.value} failed, reverted: {e.message}")
            self.request_refresh()
            raise

        self.apply_snapshot(updated)
        return updated

    async def delete_order(self, order_id: str) -> None:
        """Remove an order locally at once and on the server."""
        removed = self._orders.pop(order_id, None)
        try:
            await self.api.delete_order(order_id)
        except OrderingError as e:
            if removed is not None and order_id not in self._orders:
                self._orders[order_id] = removed
            logger.warning(f"Removing {order_id} failed, restored: {e.message}")
            self.request_refresh()
            raise

    # =========================================================================
    # QUEUES
    # =========================================================================

    def get(self, order_id: str) -> Optional[OrderSnapshot]:
        return self._orders.get(order_id)

    def orders(self) -> list[OrderSnapshot]:
        return sorted(self._orders.values(), key=lambda o: (o.placed_at, o.order_number), reverse=True)

    def _queue(self, status: OrderStatus) -> list[OrderSnapshot]:
        return [order for order in self.orders() if order.status == status]

    def pending(self) -> list[OrderSnapshot]:
        return self._queue(OrderStatus.PENDING)

    def in_progress(self) -> list[OrderSnapshot]:
        return self._queue(OrderStatus.IN_PROGRESS)

    def completed(self) -> list[OrderSnapshot]:
        return self._queue(OrderStatus.COMPLETED)

    def stats(self, now: Optional[datetime] = None) -> KitchenStats:
        """Counts of today's orders (UTC day) and their average preparation time."""
        today = as_utc(now or utcnow()).date()
        todays = [o for o in self._orders.values() if as_utc(o.placed_at).date() == today]

        prep_minutes = [
            (o.completed_at - o.started_at).total_seconds() / 60
            for o in todays
            if o.status == OrderStatus.COMPLETED and o.started_at and o.completed_at
        ]
        avg = round(sum(prep_minutes) / len(prep_minutes), 1) if prep_minutes else None

        return KitchenStats(
            total=len(todays),
            pending=sum(1 for o in todays if o.status == OrderStatus.PENDING),
            in_progress=sum(1 for o in todays if o.status == OrderStatus.IN_PROGRESS),
            completed=sum(1 for o in todays if o.status == OrderStatus.COMPLETED),
            avg_prep_minutes=avg,
        )
