"""
Seed Script

Creates the tables and a demo restaurant, then prints a kitchen channel token
for it.

Run from project root: python scripts/seed.py [--reset]
"""

import argparse
import asyncio
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select  # noqa: E402

from menucraft.core.security import issue_kitchen_token  # noqa: E402
from menucraft.database import Base, async_session_maker, engine, init_db  # noqa: E402
from menucraft.models import Restaurant  # noqa: E402
from menucraft.services.restaurants import create_restaurant  # noqa: E402

DEMO_SLUG = "demo-restaurant"


async def seed(reset: bool = False) -> None:
    if reset:
        from menucraft import models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        print("🗑️  Dropped all tables")

    await init_db()

    async with async_session_maker() as session:
        result = await session.execute(select(Restaurant).where(Restaurant.slug == DEMO_SLUG))
        restaurant = result.scalar_one_or_none()
        if restaurant is None:
            restaurant = await create_restaurant(
                session,
                name="Demo Restaurant",
                slug=DEMO_SLUG,
                tax_rate=Decimal("0.08"),
            )
            print(f"✅ Created restaurant '{restaurant.slug}'")
        else:
            print(f"ℹ️  Restaurant '{restaurant.slug}' already exists")

        print(f"   ID: {restaurant.id}")
        print(f"   Tax rate: {restaurant.tax_rate}")
        print(f"   Kitchen token: {issue_kitchen_token(restaurant.id)}")

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the demo restaurant")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()
    asyncio.run(seed(reset=args.reset))
