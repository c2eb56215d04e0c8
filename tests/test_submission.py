"""
Order submission: the customer-side contract. Persist first, then announce
the order on its restaurant's channel only.
"""

import pytest

from menucraft.core.exceptions import NotFoundError, ValidationError
from menucraft.models import OrderStatus
from menucraft.services.orders import OrderSubmissionService
from tests.helpers import RecordingSession, order_data


class TestOrderSubmission:
    """OrderSubmissionService.submit"""

    async def test_returns_persisted_order_and_announces_it(self, session, restaurant, event_bus, kitchen):
        service = OrderSubmissionService(session, event_bus)

        order = await service.submit(restaurant.slug, order_data())

        assert order.id
        assert order.order_number == 1
        assert order.status == OrderStatus.PENDING

        announced = kitchen.events("order:new")
        assert len(announced) == 1
        envelope = announced[0]
        assert envelope["restaurantId"] == restaurant.id
        assert envelope["order"]["id"] == order.id
        assert envelope["order"]["orderNumber"] == 1
        assert envelope["order"]["total"] == 21.6
        assert envelope["order"]["items"][0]["name"] == "Classic Burger"

    async def test_events_stay_within_the_restaurant(self, session, restaurant, other_restaurant, event_bus, kitchen):
        elsewhere = RecordingSession("kitchen-b")
        await event_bus.registry.join(other_restaurant.id, elsewhere)

        await OrderSubmissionService(session, event_bus).submit(restaurant.slug, order_data())

        assert len(kitchen.events("order:new")) == 1
        assert elsewhere.messages == []

    async def test_unknown_slug(self, session, event_bus, kitchen):
        with pytest.raises(NotFoundError):
            await OrderSubmissionService(session, event_bus).submit("nowhere", order_data())

        assert kitchen.messages == []

    async def test_invalid_order_is_not_announced(self, session, restaurant, event_bus, kitchen):
        with pytest.raises(ValidationError):
            await OrderSubmissionService(session, event_bus).submit(
                restaurant.slug, order_data(customerPhone="")
            )

        assert kitchen.messages == []
