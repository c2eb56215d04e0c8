"""
Pydantic Schemas for Request/Response Validation

Wire format is camelCase (``customerName``, ``placedAt``) to match the
customer and kitchen clients; Python attributes stay snake_case. Money is
carried as ``Decimal`` quantized to the cent and written to JSON as a number.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from menucraft.core.timeutils import as_utc
from menucraft.models import OrderStatus, OrderType

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


Money = Annotated[
    Decimal,
    AfterValidator(quantize_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]
Rate = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


def normalize_enum_token(value: Any) -> Any:
    """Accept ``in-progress`` / ``dine_in`` style spellings for enum values."""
    if isinstance(value, str):
        return value.strip().upper().replace("-", "_")
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItemCreate(CamelModel):
    """Single line item as sent by the customer client."""
    menu_item_id: Optional[str] = Field(None, alias="id", max_length=64)
    name: str = Field(..., min_length=1, max_length=200, examples=["Classic Burger"])
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    price: Money = Field(..., ge=0, examples=[12.99])
    subtotal: Optional[Money] = None
    customizations: List[str] = Field(default_factory=list)


class OrderCreate(CamelModel):
    """Request schema for placing an order."""

    customer_name: str = Field(..., max_length=100, examples=["Jane Doe"])
    customer_phone: str = Field(..., max_length=30, examples=["555-123-4567"])
    order_type: OrderType = Field(..., examples=["DINE_IN"])

    table_number: Optional[str] = Field(None, max_length=20)
    car_color: Optional[str] = Field(None, max_length=50)
    license_plate: Optional[str] = Field(None, max_length=20)
    car_model: Optional[str] = Field(None, max_length=100)
    special_notes: Optional[str] = Field(None, max_length=1000)

    items: List[OrderItemCreate]

    # Client-computed totals; the server recomputes and wins
    subtotal: Optional[Money] = None
    tax: Optional[Money] = None
    total: Optional[Money] = None

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_order_type(cls, v: Any) -> Any:
        return normalize_enum_token(v)


class StatusUpdate(CamelModel):
    """Body of ``PUT /api/orders/{id}/status``."""
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return normalize_enum_token(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderItemSnapshot(CamelModel):
    id: str
    menu_item_id: Optional[str] = None
    name: str
    quantity: int
    price: Money
    subtotal: Money
    customizations: List[str] = Field(default_factory=list)


class OrderSnapshot(CamelModel):
    """
    Full, authoritative state of one order.

    Used for HTTP responses and realtime event payloads alike; consumers
    replace their copy wholesale rather than patching it.
    """
    id: str
    order_number: int
    restaurant_id: str
    status: OrderStatus

    customer_name: str
    customer_phone: str
    order_type: OrderType
    table_number: Optional[str] = None
    car_color: Optional[str] = None
    license_plate: Optional[str] = None
    car_model: Optional[str] = None
    special_notes: Optional[str] = None

    items: List[OrderItemSnapshot] = Field(default_factory=list)
    subtotal: Money
    tax: Money
    total: Money

    placed_at: UtcDatetime
    started_at: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None
    cancelled_at: Optional[UtcDatetime] = None
    archived_at: Optional[UtcDatetime] = None


class RestaurantSummary(CamelModel):
    id: str
    slug: str
    name: str
    tax_rate: Rate
    currency: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    code: str = "error"
    detail: Optional[Any] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    event_bus: str
    timestamp: datetime


def order_payload(order: Any) -> dict[str, Any]:
    """Serialize an ORM order (or snapshot) into its JSON wire form."""
    return OrderSnapshot.model_validate(order).model_dump(mode="json", by_alias=True)
