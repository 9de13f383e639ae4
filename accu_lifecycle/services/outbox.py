import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from accu_lifecycle.core.config import get_settings
from accu_lifecycle.core.observability import SIDE_EFFECT_COUNT
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import (
    Application,
    JobDeadLetter,
    OutboxEvent,
    OutboxKind,
    OutboxStatus,
)
from accu_lifecycle.services.deadlines import SqlDeadlineScheduler
from accu_lifecycle.services.notifications import NotificationDispatcher
from accu_lifecycle.services.registry import DeadlineScheduler

logger = logging.getLogger(__name__)


def enqueue(
    db: Session,
    kind: OutboxKind,
    name: str,
    payload: dict[str, Any],
    application_id: str | None = None,
    tenant_id: str | None = None,
) -> OutboxEvent:
    event = OutboxEvent(
        kind=kind,
        name=name,
        payload_json=payload,
        application_id=application_id,
        tenant_id=tenant_id,
        status=OutboxStatus.pending,
    )
    db.add(event)
    return event


def enqueue_notifications(db: Session, events: list[dict[str, Any]]) -> list[OutboxEvent]:
    return [
        enqueue(
            db,
            OutboxKind.notification,
            event["name"],
            event,
            application_id=event.get("application_id"),
            tenant_id=event.get("tenant_id"),
        )
        for event in events
    ]


def enqueue_deadline(
    db: Session,
    application: Application,
    title: str,
    due_at: datetime,
    description: str = "",
) -> OutboxEvent:
    return enqueue(
        db,
        OutboxKind.deadline,
        "submission_deadline",
        {
            "project_id": application.project_id,
            "application_id": application.id,
            "title": title,
            "description": description,
            "due_at": due_at.isoformat(),
            "priority": "high",
        },
        application_id=application.id,
        tenant_id=application.tenant_id,
    )


class OutboxRelay:
    def __init__(
        self,
        db: Session,
        notifier: NotificationDispatcher | None = None,
        scheduler: DeadlineScheduler | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier or NotificationDispatcher(db)
        self.scheduler = scheduler or SqlDeadlineScheduler(db)

    def deliver(self, event: OutboxEvent) -> None:
        payload = event.payload_json or {}
        if event.kind == OutboxKind.notification:
            self.notifier.send(payload, source_event_id=event.id)
        elif event.kind == OutboxKind.deadline:
            self.scheduler.create_deadline(
                project_id=payload["project_id"],
                title=payload["title"],
                due_at=datetime.fromisoformat(payload["due_at"]),
                description=payload.get("description", ""),
                application_id=payload.get("application_id"),
                priority=payload.get("priority", "high"),
                source_event_id=event.id,
            )
        else:
            raise ValueError(f"Unsupported outbox event kind: {event.kind}")

    def relay_pending(self, limit: int | None = None, max_attempts: int | None = None) -> dict[str, int]:
        settings = get_settings()
        limit = limit or settings.outbox_batch_size
        max_attempts = max_attempts or settings.outbox_max_attempts

        event_ids = [
            row.id
            for row in self.db.query(OutboxEvent.id)
            .filter(OutboxEvent.status == OutboxStatus.pending)
            .order_by(OutboxEvent.created_at.asc())
            .limit(limit)
            .all()
        ]

        stats = {"delivered": 0, "retrying": 0, "failed": 0}
        for event_id in event_ids:
            event = (
                self.db.query(OutboxEvent)
                .filter(OutboxEvent.id == event_id, OutboxEvent.status == OutboxStatus.pending)
                .with_for_update(skip_locked=True)
                .one_or_none()
            )
            if event is None:
                continue

            try:
                self.deliver(event)
                event.attempts += 1
                event.status = OutboxStatus.delivered
                event.delivered_at = now_utc()
                event.last_error = None
                self.db.commit()
            except Exception as exc:  # noqa: BLE001
                self.db.rollback()
                logger.exception("Outbox delivery failed event_id=%s", event_id)
                outcome = self._record_failure(event_id, exc, max_attempts)
                stats[outcome] += 1
            else:
                stats["delivered"] += 1
                SIDE_EFFECT_COUNT.labels(event.kind.value, "delivered").inc()
        return stats

    def _record_failure(self, event_id: str, exc: Exception, max_attempts: int) -> str:
        event = self.db.get(OutboxEvent, event_id)
        event.attempts += 1
        event.last_error = str(exc)
        outcome = "retrying"
        if event.attempts >= max_attempts:
            outcome = "failed"
            event.status = OutboxStatus.failed
            self.db.add(
                JobDeadLetter(
                    task_name=f"outbox.{event.kind.value}",
                    payload_json=event.payload_json or {},
                    outbox_event_id=event.id,
                    retry_count=event.attempts,
                    error=str(exc),
                )
            )
        SIDE_EFFECT_COUNT.labels(event.kind.value, outcome).inc()
        self.db.commit()
        return outcome


def schedule_outbox_relay() -> None:
    """Ask a worker to drain the outbox; beat sweeps pick up anything missed."""
    from accu_lifecycle.tasks.jobs import relay_outbox

    try:
        relay_outbox.delay()
    except Exception:  # noqa: BLE001
        logger.exception("Could not enqueue outbox relay; periodic sweep will deliver pending events")
