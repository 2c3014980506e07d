from celery import Celery
from celery.schedules import crontab

from apartment_manager.core.config import settings

celery_app = Celery(
    "apartment_manager",
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
)

# ─── Scheduled tasks ──────────────────────────
celery_app.conf.beat_schedule = {
    "generate-month-payments": {
        "task": "apartment_manager.services.payments.generate_month_payments",
        "schedule": crontab(day_of_month=1, hour=0, minute=30),
    },
}

# autodiscover_tasks() only looks for "tasks.py", so list task modules explicitly
celery_app.conf.include = [
    "apartment_manager.services.payments",
]
