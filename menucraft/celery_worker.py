"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend, plus the
beat schedule for housekeeping of finished orders.
"""

from celery import Celery

from menucraft.core.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    'menucraft_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['menucraft.tasks']
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Result settings
    result_expires=3600,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)

# Periodic tasks (celery -A menucraft.celery_worker beat)
celery_app.conf.beat_schedule = {
    'archive-completed-orders': {
        'task': 'menucraft.tasks.archive_completed_orders',
        'schedule': float(settings.archive_interval_seconds),
        'kwargs': {'older_than_hours': settings.archive_after_hours},
    },
}


if __name__ == '__main__':
    celery_app.start()
