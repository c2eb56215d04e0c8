"""
Celery Tasks
Background housekeeping for the order store.
"""

import asyncio
import logging
import time
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from menucraft.celery_worker import celery_app
from menucraft.core.timeutils import utcnow
from menucraft.database import create_worker_engine
from menucraft.services.orders import OrderStore

logger = logging.getLogger(__name__)


async def _archive(older_than: datetime) -> int:
    engine = create_worker_engine()
    try:
        session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        async with session_maker() as session:
            return await OrderStore(session).archive_completed(older_than)
    finally:
        await engine.dispose()


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def archive_completed_orders(self, older_than_hours: int = 12) -> dict:
    """
    Archive COMPLETED orders finished more than ``older_than_hours`` ago.

    Archived orders drop out of the kitchen listing but stay in the store.
    No realtime events are emitted: kitchens already show these orders as
    completed, and the next poll simply stops returning them.
    """
    task_id = self.request.id
    start_time = time.time()
    cutoff = utcnow() - timedelta(hours=older_than_hours)

    archived = asyncio.run(_archive(cutoff))

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"Task {task_id}: archived {archived} order(s) completed before {cutoff.isoformat()} in {elapsed}s")

    return {
        'success': True,
        'archived': archived,
        'cutoff': cutoff.isoformat(),
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': utcnow().isoformat()
    }
