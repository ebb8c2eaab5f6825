"""
Celery Application Configuration

Celery setup for the periodic position check.

Usage:
    # Start Celery worker
    celery -A app.tasks.celery_app worker --loglevel=info

    # Start Celery beat (scheduler)
    celery -A app.tasks.celery_app beat --loglevel=info

    # Start both
    celery -A app.tasks.celery_app worker --beat --loglevel=info

Author: Alphalert Team
Last Updated: 2026-10-17
"""

from celery import Celery
from celery.schedules import crontab

from app.config.settings import get_settings

settings = get_settings()

# Initialize Celery
celery_app = Celery(
    "simulator",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.tasks.simulator_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution; a run is POLL_ITERATIONS cycles spaced POLL_DELAY_SECONDS apart
    task_time_limit=120,
    task_soft_time_limit=110,

    # Result backend
    result_expires=3600,

    # One run at a time per worker process
    worker_prefetch_multiplier=1,

    task_routes={
        "app.tasks.simulator_tasks.*": {"queue": "simulator"},
    },

    # Beat schedule (periodic tasks)
    beat_schedule={
        # Check open positions every minute
        "check-positions": {
            "task": "app.tasks.simulator_tasks.check_positions_task",
            "schedule": crontab(minute="*"),
            "options": {"queue": "simulator", "expires": 55}
        },
    }
)


if __name__ == "__main__":
    celery_app.start()
