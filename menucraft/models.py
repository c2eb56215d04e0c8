"""
SQLAlchemy Database Models

Orders are tenant-scoped: every order belongs to exactly one restaurant and
owns its line items. Line items snapshot the menu entry (name, unit price) at
order time so later menu edits never change a placed order.
"""

import enum
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from menucraft.core.timeutils import utcnow
from menucraft.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderType(str, enum.Enum):
    """How the customer receives the order."""
    DINE_IN = "DINE_IN"
    DRIVE_IN = "DRIVE_IN"
    TAKEOUT = "TAKEOUT"


class Restaurant(Base):
    """
    Tenant record. Only the fields the order lifecycle reads are modelled here;
    menus and branding live with the admin console.
    """
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    tax_rate = Column(Numeric(6, 4), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    # Last order number handed out for this restaurant
    order_sequence = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    orders = relationship("Order", back_populates="restaurant", lazy="noload")

    def __repr__(self):
        return f"<Restaurant {self.slug}>"


class Order(Base):
    """
    A customer's placed order.

    Items and totals are fixed at placement; afterwards only the status and
    its stage timestamps change.
    """
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_number"),
        Index("ix_orders_restaurant_placed", "restaurant_id", "placed_at"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    order_number = Column(Integer, nullable=False)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    order_type = Column(Enum(OrderType), nullable=False)

    # Dine-in
    table_number = Column(String(20), nullable=True)

    # Drive-in
    car_color = Column(String(50), nullable=True)
    license_plate = Column(String(20), nullable=True)
    car_model = Column(String(100), nullable=True)

    special_notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    placed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    restaurant = relationship("Restaurant", back_populates="orders", lazy="noload")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Order #{self.order_number} - {self.order_type.value} - {self.customer_name} - {self.status.value}>"


class OrderItem(Base):
    """One menu entry within an order, price-snapshotted at order time."""
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_uuid)
    order_id = Column(
        String(36),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    # Originating menu item; name and price are copies, not live references
    menu_item_id = Column(String(64), nullable=True)
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    customizations = Column(JSON, nullable=False, default=list)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.name}>"
