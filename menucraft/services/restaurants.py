"""
Restaurant lookup.

Restaurants are owned by the admin console; the order lifecycle only needs to
resolve a slug to an active tenant and, for seeding, create one.
"""

import logging
import re
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menucraft.core.exceptions import NotFoundError, ValidationError
from menucraft.models import Restaurant

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    """``"Joe's Pizza  Palace"`` -> ``"joes-pizza-palace"``"""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


async def resolve_restaurant(session: AsyncSession, slug: str) -> Restaurant:
    """
    Resolve a slug to an active restaurant.

    Raises:
        NotFoundError: unknown or inactive restaurant
    """
    result = await session.execute(
        select(Restaurant).where(Restaurant.slug == slug, Restaurant.is_active.is_(True))
    )
    restaurant = result.scalar_one_or_none()
    if restaurant is None:
        raise NotFoundError(f"Restaurant '{slug}' not found")
    return restaurant


async def get_active_restaurant(session: AsyncSession, restaurant_id: str) -> Restaurant:
    result = await session.execute(
        select(Restaurant).where(Restaurant.id == restaurant_id, Restaurant.is_active.is_(True))
    )
    restaurant = result.scalar_one_or_none()
    if restaurant is None:
        raise NotFoundError(f"Restaurant {restaurant_id} not found")
    return restaurant


async def create_restaurant(
    session: AsyncSession,
    name: str,
    slug: Optional[str] = None,
    tax_rate: Decimal = Decimal("0"),
    currency: str = "USD",
    is_active: bool = True,
) -> Restaurant:
    """Insert a restaurant; used by seeding scripts and tests."""
    slug = slug or slugify(name)
    if not slug:
        raise ValidationError("Restaurant name must contain letters or digits")

    restaurant = Restaurant(
        name=name,
        slug=slug,
        tax_rate=Decimal(tax_rate),
        currency=currency.upper(),
        is_active=is_active,
        order_sequence=0,
    )
    session.add(restaurant)
    await session.commit()
    await session.refresh(restaurant)

    logger.info(f"Restaurant '{slug}' created ({restaurant.id})")
    return restaurant
