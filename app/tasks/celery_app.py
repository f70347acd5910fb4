from celery import Celery
from celery.schedules import crontab
from celery.signals import worker_process_init

from app.core.config import settings

celery_app = Celery(
    "brand_visibility",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# Celery Beat schedule: one daily run over all eligible brands.
# Failed URL backfill (retry_failed_urls) is manual only.
celery_app.conf.beat_schedule = {
    "generate-daily-reports": {
        "task": "generate_daily_reports",
        "schedule": crontab(hour=settings.daily_report_hour_utc, minute=0),
    },
}

celery_app.conf.include = [
    "app.tasks.report_tasks",
]


@worker_process_init.connect
def _init_worker(**kwargs):
    from app.core.logging import setup_logging
    from app.core.sentry import init_sentry

    setup_logging()
    init_sentry("worker")
