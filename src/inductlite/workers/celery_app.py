"""Celery application and beat schedule.

Beat triggers one export tick every EXPORT_SCHEDULER_INTERVAL_SECONDS and a
retention sweep daily at 02:00 UTC. Run with:

    celery -A inductlite.workers.celery_app worker --beat
"""

from celery import Celery
from celery.schedules import crontab

from ..config import get_settings

settings = get_settings()

celery_app = Celery(
    "inductlite",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["inductlite.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "exports-process-next": {
        "task": "exports.process_next",
        "schedule": settings.EXPORT_SCHEDULER_INTERVAL_SECONDS,
        "options": {
            "expires": settings.EXPORT_SCHEDULER_INTERVAL_SECONDS * 3,
        },
    },
    "retention-sweep-daily": {
        "task": "retention.sweep",
        "schedule": crontab(hour=2, minute=0),  # 02:00 UTC
        "options": {
            "expires": 3600,  # Task expires after 1 hour if not picked up
        },
    },
}
