from celery import Celery
from celery.schedules import crontab

from accu_lifecycle.core.config import get_settings

settings = get_settings()
celery_app = Celery(
    "accu_lifecycle",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["accu_lifecycle.tasks.jobs"],
)
celery_app.conf.task_always_eager = settings.celery_eager_mode
celery_app.conf.task_eager_propagates = True

celery_app.conf.task_routes = {
    "accu_lifecycle.tasks.jobs.relay_outbox": {"queue": "outbox"},
    "accu_lifecycle.tasks.jobs.send_deadline_reminders": {"queue": "default"},
    "accu_lifecycle.tasks.jobs.cleanup_idempotency": {"queue": "default"},
}
celery_app.conf.beat_schedule = {
    "relay-outbox-every-minute": {
        "task": "accu_lifecycle.tasks.jobs.relay_outbox",
        "schedule": crontab(minute="*"),
    },
    "deadline-reminders-daily": {
        "task": "accu_lifecycle.tasks.jobs.send_deadline_reminders",
        "schedule": crontab(minute=0, hour=9),
    },
    "cleanup-idempotency-daily": {
        "task": "accu_lifecycle.tasks.jobs.cleanup_idempotency",
        "schedule": crontab(minute=0, hour=2),
    },
}
