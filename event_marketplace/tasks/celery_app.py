"""
Celery application configuration for background tasks.
"""

from celery import Celery
from celery.schedules import crontab

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "event_marketplace",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "event_marketplace.tasks.booking_tasks",
        "event_marketplace.tasks.notification_tasks",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
)

celery_app.conf.beat_schedule = {
    "auto-release-escrow": {
        "task": "auto_release_escrow_task",
        "schedule": crontab(minute=0),  # Every hour
    },
    "send-event-reminders": {
        "task": "send_event_reminders_task",
        "schedule": crontab(hour=8, minute=0),  # Daily at 08:00 UTC
    },
    "cleanup-old-notifications": {
        "task": "cleanup_old_notifications_task",
        "schedule": crontab(hour=3, minute=0),  # Daily at 03:00 UTC
    },
}
