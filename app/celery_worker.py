"""
Celery Worker Configuration
Background worker for the order ledger export. Redis is both the
broker and the result backend, the same instance that holds cart
sessions in production.

Run with:
    celery -A app.celery_worker worker -Q ledger --loglevel=info
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'ordering_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['app.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Ledger writes serialize on a file lock anyway
    task_routes={
        'app.tasks.export_order_to_excel': {'queue': 'ledger'},
    },
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    result_expires=3600,

    # An order must reach the ledger even if a worker dies mid-export
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
