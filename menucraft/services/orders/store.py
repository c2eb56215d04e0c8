"""
Order Store

Durable, tenant-scoped persistence of orders and their line items; the single
source of truth and the single serialization point for status changes.

Placement writes the order, its line items and the restaurant's order-number
bump in one transaction. Status changes are compare-and-set updates guarded
by the current status, so of two stations racing on the same order exactly
one commits and the other observes the result as a no-op.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from menucraft.core.exceptions import InvalidTransitionError, NotFoundError
from menucraft.core.timeutils import utcnow
from menucraft.models import Order, OrderItem, OrderStatus, Restaurant
from menucraft.schemas import OrderCreate, order_payload
from menucraft.services.orders.rules import (
    compute_totals,
    line_subtotal,
    reconcile_client_totals,
    validate_new_order,
)
from menucraft.services.orders.state_machine import plan_transition
from menucraft.services.realtime import BaseEventBus, OrderEvent
from menucraft.services.restaurants import get_active_restaurant

logger = logging.getLogger(__name__)

# Each retry follows a committed forward step; the table has at most two
MAX_TRANSITION_ATTEMPTS = 3


@dataclass
class TransitionResult:
    order: Order
    changed: bool


class OrderStore:
    """Order persistence bound to one database session."""

    def __init__(self, session: AsyncSession, events: Optional[BaseEventBus] = None):
        self.session = session
        self.events = events

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    async def place_order(self, restaurant_id: str, order_data: OrderCreate) -> Order:
        """
        Persist an order and all of its line items as one unit.

        Assigns the id and the next order number for the restaurant, sets
        status PENDING and placed_at = now. Totals are recomputed from the
        line items with the restaurant's tax rate.

        Raises:
            ValidationError: required or order-type fields missing
            NotFoundError: restaurant unknown or inactive
        """
        data = validate_new_order(order_data)

        try:
            restaurant = await get_active_restaurant(self.session, restaurant_id)

            totals = compute_totals(data.items, restaurant.tax_rate)
            reconcile_client_totals(data, totals)

            order = Order(
                order_number=await self._next_order_number(restaurant.id),
                restaurant_id=restaurant.id,
                customer_name=data.customer_name,
                customer_phone=data.customer_phone,
                order_type=data.order_type,
                table_number=data.table_number,
                car_color=data.car_color,
                license_plate=data.license_plate,
                car_model=data.car_model,
                special_notes=data.special_notes,
                subtotal=totals.subtotal,
                tax=totals.tax,
                total=totals.total,
                status=OrderStatus.PENDING,
                placed_at=utcnow(),
                items=[
                    OrderItem(
                        position=position,
                        menu_item_id=item.menu_item_id,
                        name=item.name.strip(),
                        quantity=item.quantity,
                        price=item.price,
                        subtotal=line_subtotal(item),
                        customizations=list(item.customizations),
                    )
                    for position, item in enumerate(data.items)
                ],
            )

            self.session.add(order)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"Order #{order.order_number} placed for restaurant {restaurant_id} "
            f"({len(order.items)} items, total {order.total})"
        )
        return order

    async def _next_order_number(self, restaurant_id: str) -> int:
        result = await self.session.execute(
            update(Restaurant)
            .where(Restaurant.id == restaurant_id)
            .values(order_sequence=Restaurant.order_sequence + 1)
            .returning(Restaurant.order_sequence)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one()

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        """
        Raises:
            NotFoundError: unknown order id
        """
        order = await self.session.get(Order, order_id, populate_existing=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def list_orders(
        self,
        restaurant_id: str,
        status: Optional[OrderStatus] = None,
        limit: int = 50,
        include_archived: bool = False,
    ) -> list[Order]:
        """Orders of one restaurant, newest first."""
        query = (
            select(Order)
            .where(Order.restaurant_id == restaurant_id)
            .order_by(Order.placed_at.desc(), Order.order_number.desc())
            .limit(limit)
        )
        if status is not None:
            query = query.where(Order.status == OrderStatus(status))
        if not include_archived:
            query = query.where(Order.archived_at.is_(None))

        result = await self.session.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    async def update_status(self, order_id: str, new_status: OrderStatus) -> TransitionResult:
        """
        Apply a status change through the state machine.

        The write only succeeds while the order is still in the status the
        transition was planned from; if another request got there first the
        order is re-read and the request re-planned, which turns a duplicate
        into a no-op and a now-illegal request into InvalidTransitionError.

        Raises:
            NotFoundError: unknown order id
            InvalidTransitionError: change not allowed from the current status
        """
        new_status = OrderStatus(new_status)
        current = None

        try:
            for _ in range(MAX_TRANSITION_ATTEMPTS):
                order = await self.get_order(order_id)
                current = order.status
                transition = plan_transition(current, new_status)

                if transition is None:
                    await self.session.commit()
                    logger.debug(f"Order #{order.order_number} already {new_status.value}; no-op")
                    return TransitionResult(order=order, changed=False)

                now = utcnow()
                result = await self.session.execute(
                    update(Order)
                    .where(Order.id == order_id, Order.status == transition.source)
                    .values({
                        "status": transition.target,
                        transition.timestamp_field: now,
                        "updated_at": now,
                    })
                    .execution_options(synchronize_session=False)
                )

                if result.rowcount == 1:
                    await self.session.commit()
                    order = await self.get_order(order_id)
                    logger.info(
                        f"Order #{order.order_number}: {transition.source.value} -> "
                        f"{transition.target.value} ({transition.label})"
                    )
                    await self._publish(OrderEvent.UPDATED, order)
                    return TransitionResult(order=order, changed=True)

                await self.session.rollback()
                logger.info(f"Order {order_id} changed concurrently; re-evaluating {new_status.value}")

            raise InvalidTransitionError(
                current,
                new_status,
                message=f"Order {order_id} kept changing; transition abandoned",
            )
        except InvalidTransitionError as e:
            # Nothing written survives a rejection; commit ends the read
            # without expiring the caller's instances
            await self.session.commit()
            logger.warning(f"Rejected transition for order {order_id}: {e.message}")
            raise
        except Exception:
            await self.session.rollback()
            raise

    # =========================================================================
    # REMOVAL & ARCHIVING
    # =========================================================================

    async def delete_order(self, order_id: str) -> bool:
        """
        Hard-remove an order and its line items.

        Idempotent: an unknown id is not an error.

        Returns:
            True if a row was removed

        Raises:
            InvalidTransitionError: the order is COMPLETED
        """
        try:
            order = await self.session.get(Order, order_id, populate_existing=True)
            removable = order is not None and order.status != OrderStatus.COMPLETED
            if removable:
                restaurant_id = order.restaurant_id
                order_number = order.order_number
                await self.session.delete(order)
            # Read-only when nothing is removed; commit keeps the caller's
            # instances loaded where a rollback would expire them
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if order is None:
            return False
        if not removable:
            raise InvalidTransitionError(
                order.status,
                "DELETED",
                message="Completed orders cannot be removed",
            )

        logger.info(f"Order #{order_number} removed from restaurant {restaurant_id}")
        if self.events is not None:
            await self.events.publish(
                OrderEvent.DELETED,
                restaurant_id,
                {"id": order_id, "restaurantId": restaurant_id, "orderNumber": order_number},
            )
        return True

    async def archive_completed(self, older_than: datetime) -> int:
        """Archive completed orders finished before ``older_than``."""
        try:
            result = await self.session.execute(
                update(Order)
                .where(
                    Order.status == OrderStatus.COMPLETED,
                    Order.archived_at.is_(None),
                    Order.completed_at < older_than,
                )
                .values(archived_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        if result.rowcount:
            logger.info(f"Archived {result.rowcount} completed order(s)")
        return result.rowcount

    async def _publish(self, event: OrderEvent, order: Order) -> None:
        if self.events is None:
            return
        await self.events.publish(event, order.restaurant_id, order_payload(order))
