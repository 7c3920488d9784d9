from celery import Celery
from celery.schedules import crontab

from forge_crm.core.config import settings

celery_app = Celery(
    "forge_worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "forge_crm.workers.alert_tasks",
    ],
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

celery_app.conf.beat_schedule = {
    "task-check-daily": {
        "task": "forge_crm.workers.alert_tasks.task_check",
        "schedule": crontab(hour=8, minute=0),
    },
    "stale-check-daily": {
        "task": "forge_crm.workers.alert_tasks.stale_check",
        "schedule": crontab(hour=8, minute=30),
    },
    "quota-check-daily": {
        "task": "forge_crm.workers.alert_tasks.quota_check",
        "schedule": crontab(hour=9, minute=0),
    },
    "activity-check-weekly": {
        "task": "forge_crm.workers.alert_tasks.activity_check",
        "schedule": crontab(hour=16, minute=0, day_of_week="fri"),
    },
    "marketing-weekly": {
        "task": "forge_crm.workers.alert_tasks.marketing_weekly",
        "schedule": crontab(hour=9, minute=0, day_of_week="mon"),
    },
    "marketing-monthly": {
        "task": "forge_crm.workers.alert_tasks.marketing_monthly",
        "schedule": crontab(hour=9, minute=0, day_of_month="1"),
    },
    "monthly-review": {
        "task": "forge_crm.workers.alert_tasks.monthly_review",
        "schedule": crontab(hour=8, minute=0, day_of_month="1"),
    },
}
