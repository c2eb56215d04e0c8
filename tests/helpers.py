"""Test doubles and payload builders shared across test modules."""

from datetime import timedelta
from decimal import Decimal
from typing import Any

from menucraft.core.timeutils import utcnow
from menucraft.models import OrderStatus
from menucraft.schemas import OrderCreate, OrderSnapshot


class RecordingSession:
    """Kitchen session that keeps every message pushed to it."""

    def __init__(self, session_id: str = "rec", fail: bool = False):
        self.session_id = session_id
        self.fail = fail
        self.messages: list[dict[str, Any]] = []

    async def send_json(self, message: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket gone")
        self.messages.append(message)

    def events(self, name: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m.get("event") == name]


def order_body(**overrides) -> dict[str, Any]:
    """Wire-format (camelCase) body for a dine-in order."""
    body = {
        "customerName": "Jane Doe",
        "customerPhone": "555-123-4567",
        "orderType": "DINE_IN",
        "tableNumber": "12",
        "items": [
            {"id": "x", "name": "Classic Burger", "quantity": 2, "price": 10.00},
        ],
    }
    body.update(overrides)
    return body


def order_data(**overrides) -> OrderCreate:
    return OrderCreate.model_validate(order_body(**overrides))


def snapshot(
    order_id: str = "o-1",
    restaurant_id: str = "r-1",
    status: OrderStatus = OrderStatus.PENDING,
    minutes_ago: float = 0,
    order_number: int = 1,
    **fields,
) -> OrderSnapshot:
    """An order snapshot as the kitchen would receive it."""
    placed_at = fields.pop("placed_at", utcnow() - timedelta(minutes=minutes_ago))
    return OrderSnapshot(
        id=order_id,
        order_number=order_number,
        restaurant_id=restaurant_id,
        status=status,
        customer_name="Jane Doe",
        customer_phone="555-123-4567",
        order_type="DINE_IN",
        table_number="12",
        subtotal=Decimal("20.00"),
        tax=Decimal("1.60"),
        total=Decimal("21.60"),
        placed_at=placed_at,
        **fields,
    )
