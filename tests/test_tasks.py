"""
Celery housekeeping tasks, executed eagerly in-process.
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from menucraft import tasks
from menucraft.celery_worker import celery_app
from menucraft.core.timeutils import utcnow
from menucraft.database import init_db
from menucraft.models import Order, OrderStatus
from menucraft.services.orders import OrderStore
from menucraft.services.restaurants import create_restaurant
from tests.helpers import order_data


def test_beat_schedule_runs_archive():
    entry = celery_app.conf.beat_schedule["archive-completed-orders"]

    assert entry["task"] == "menucraft.tasks.archive_completed_orders"
    assert entry["kwargs"]["older_than_hours"] > 0


def test_archive_task_reports_count(monkeypatch):
    seen = {}

    async def fake_archive(older_than):
        seen["cutoff"] = older_than
        return 3

    monkeypatch.setattr(tasks, "_archive", fake_archive)

    result = tasks.archive_completed_orders(older_than_hours=12)

    assert result["success"] is True
    assert result["archived"] == 3
    assert utcnow() - seen["cutoff"] >= timedelta(hours=12)


def test_archive_task_against_database(tmp_path, monkeypatch):
    url = f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}"

    async def prepare():
        engine = create_async_engine(url, poolclass=NullPool)
        await init_db(engine)
        maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        async with maker() as session:
            restaurant = await create_restaurant(session, "Night Diner", tax_rate=Decimal("0.08"))
            store = OrderStore(session)
            old = await store.place_order(restaurant.id, order_data())
            await store.place_order(restaurant.id, order_data())
            await store.update_status(old.id, OrderStatus.IN_PROGRESS)
            await store.update_status(old.id, OrderStatus.COMPLETED)
            await session.execute(
                update(Order)
                .where(Order.id == old.id)
                .values(completed_at=utcnow() - timedelta(days=2))
            )
            await session.commit()
        await engine.dispose()

    asyncio.run(prepare())
    monkeypatch.setattr(tasks, "create_worker_engine", lambda: create_async_engine(url, poolclass=NullPool))

    result = tasks.archive_completed_orders(older_than_hours=12)

    assert result["archived"] == 1


def test_health_check_task():
    assert tasks.health_check()["status"] == "healthy"
