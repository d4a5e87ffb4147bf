"""
Celery configuration for background tasks
"""
from celery import Celery
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

# Create Celery instance
celery_app = Celery(
    "pos_ledger",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.modules.journal.tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,  # 10 minutes
    task_soft_time_limit=8 * 60,  # 8 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Result backend settings
    result_expires=3600,  # 1 hour

    # Task routes for different queues
    task_routes={
        "app.modules.journal.tasks.*": {"queue": "ledger"},
    },

    # Beat schedule for periodic tasks
    beat_schedule={
        "retry-pending-postings": {
            "task": "app.modules.journal.tasks.retry_pending_postings",
            "schedule": settings.POSTING_OUTBOX_RETRY_SECONDS,
        },
    }
)

if __name__ == "__main__":
    celery_app.start()
