from datetime import timedelta

from celery.utils.log import get_task_logger
from sqlalchemy.orm import Session

from accu_lifecycle.core.config import get_settings
from accu_lifecycle.core.observability import TASK_COUNT
from accu_lifecycle.core.time import days_between, now_utc
from accu_lifecycle.db.session import get_session_maker
from accu_lifecycle.models.entities import Application, ApplicationStatus, Deadline, JobDeadLetter
from accu_lifecycle.services.idempotency import cleanup_expired_keys
from accu_lifecycle.services.notifications import deadline_reminder_event
from accu_lifecycle.services.outbox import OutboxRelay, enqueue_notifications
from accu_lifecycle.tasks.celery_app import celery_app

logger = get_task_logger(__name__)

REMINDER_STATUSES = (ApplicationStatus.submitted, ApplicationStatus.under_review)


def _db() -> Session:
    return get_session_maker()()


@celery_app.task(name="accu_lifecycle.tasks.jobs.relay_outbox")
def relay_outbox(limit: int | None = None) -> dict:
    db = _db()
    try:
        stats = OutboxRelay(db).relay_pending(limit=limit)
        TASK_COUNT.labels("relay_outbox", "success").inc()
        if stats["failed"]:
            logger.warning("Outbox relay dead-lettered %s event(s)", stats["failed"])
        return stats
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        _dead_letter(db, "relay_outbox", {"limit": limit}, exc)
        TASK_COUNT.labels("relay_outbox", "failure").inc()
        raise
    finally:
        db.close()


@celery_app.task(name="accu_lifecycle.tasks.jobs.send_deadline_reminders")
def send_deadline_reminders() -> dict:
    settings = get_settings()
    reminder_days = set(settings.deadline_reminder_day_list)
    db = _db()
    try:
        now = now_utc()
        horizon = now + timedelta(days=max(reminder_days, default=0))
        rows = (
            db.query(Deadline, Application)
            .join(Application, Application.id == Deadline.application_id)
            .filter(
                Deadline.due_at >= now,
                Deadline.due_at <= horizon,
                Application.status.in_(REMINDER_STATUSES),
            )
            .all()
        )

        events = []
        for deadline, application in rows:
            days_until = days_between(now, deadline.due_at)
            if days_until in reminder_days:
                events.append(deadline_reminder_event(application, deadline, days_until))
        enqueue_notifications(db, events)
        db.commit()
        TASK_COUNT.labels("send_deadline_reminders", "success").inc()
    except Exception as exc:  # noqa: BLE001
        db.rollback()
        _dead_letter(db, "send_deadline_reminders", {}, exc)
        TASK_COUNT.labels("send_deadline_reminders", "failure").inc()
        raise
    finally:
        db.close()

    if events:
        relay_outbox.delay()
    return {"reminders": len(events)}


@celery_app.task(name="accu_lifecycle.tasks.jobs.cleanup_idempotency")
def cleanup_idempotency() -> dict:
    db = _db()
    try:
        removed = cleanup_expired_keys(db, get_settings().idempotency_ttl_hours)
        db.commit()
        TASK_COUNT.labels("cleanup_idempotency", "success").inc()
        return {"deleted": removed}
    except Exception:  # noqa: BLE001
        db.rollback()
        TASK_COUNT.labels("cleanup_idempotency", "failure").inc()
        raise
    finally:
        db.close()


def _dead_letter(db: Session, task_name: str, payload: dict, exc: Exception, retry_count: int = 0) -> None:
    logger.exception("Task failed %s", task_name)
    db.add(
        JobDeadLetter(
            task_name=task_name,
            payload_json=payload,
            retry_count=retry_count,
            error=str(exc),
        )
    )
    db.commit()
