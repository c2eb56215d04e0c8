"""
Order placement rules: required fields, order-type conditional fields and
server-side totals.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from pydantic.alias_generators import to_camel

from menucraft.core.exceptions import ValidationError
from menucraft.models import OrderType
from menucraft.schemas import CENT, OrderCreate, OrderItemCreate, quantize_money

logger = logging.getLogger(__name__)

# Fields that belong to each order type; the others are cleared on placement
TYPE_FIELDS: dict[OrderType, tuple[str, ...]] = {
    OrderType.DINE_IN: ("table_number",),
    OrderType.DRIVE_IN: ("car_color", "license_plate"),
    OrderType.TAKEOUT: (),
}
CONDITIONAL_FIELDS = ("table_number", "car_color", "license_plate", "car_model")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_new_order(data: OrderCreate) -> OrderCreate:
    """
    Check required and conditional fields and return a normalized copy
    where fields that do not belong to the order type are cleared.

    Raises:
        ValidationError: listing every problem found
    """
    errors: dict[str, str] = {}

    if _blank(data.customer_name):
        errors["customerName"] = "Customer name is required"
    if _blank(data.customer_phone):
        errors["customerPhone"] = "Customer phone is required"
    if not data.items:
        errors["items"] = "Order must contain at least one item"

    for field in TYPE_FIELDS[data.order_type]:
        if _blank(getattr(data, field)):
            errors[to_camel(field)] = f"Required for {data.order_type.value} orders"

    for index, item in enumerate(data.items):
        if _blank(item.name):
            errors[f"items[{index}].name"] = "Item name is required"

    if errors:
        raise ValidationError("Order validation failed", detail=errors)

    keep = set(TYPE_FIELDS[data.order_type])
    if data.order_type == OrderType.DRIVE_IN:
        keep.add("car_model")
    cleared = {
        field: None
        for field in CONDITIONAL_FIELDS
        if field not in keep and getattr(data, field) is not None
    }
    if cleared:
        logger.debug(f"Clearing fields not used by {data.order_type.value}: {sorted(cleared)}")

    return data.model_copy(update={
        "customer_name": data.customer_name.strip(),
        "customer_phone": data.customer_phone.strip(),
        **cleared,
    })


def line_subtotal(item: OrderItemCreate) -> Decimal:
    return quantize_money(item.price * item.quantity)


def compute_totals(items: Iterable[OrderItemCreate], tax_rate: Decimal) -> OrderTotals:
    """subtotal = Σ quantity × unit price; tax rounded half-up to the cent."""
    subtotal = sum((line_subtotal(item) for item in items), Decimal("0.00"))
    subtotal = quantize_money(subtotal)
    tax = quantize_money(subtotal * Decimal(tax_rate))
    return OrderTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


def reconcile_client_totals(data: OrderCreate, totals: OrderTotals) -> None:
    """Log when the client's own arithmetic disagrees with the server's."""
    for field in ("subtotal", "tax", "total"):
        claimed = getattr(data, field)
        actual = getattr(totals, field)
        if claimed is not None and abs(claimed - actual) > CENT:
            logger.warning(
                f"Client {field} {claimed} differs from server {actual}; using server value"
            )
