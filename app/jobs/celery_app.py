"""Celery application configuration"""

from celery import Celery
from celery.schedules import crontab
from app.config import settings

# Create Celery app
celery_app = Celery(
    "sportbar_pos",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Beat schedule for periodic tasks
    beat_schedule={
        "generate-daily-summaries": {
            "task": "generate_daily_summaries",
            "schedule": crontab(hour=0, minute=5),  # Just after UTC midnight
        },
        "notify-overdue-orders": {
            "task": "notify_overdue_orders",
            "schedule": 60.0,  # Every minute
        },
    },
)
