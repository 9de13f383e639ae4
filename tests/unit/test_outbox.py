from accu_lifecycle.models.entities import (
    ApplicationStatus,
    Deadline,
    JobDeadLetter,
    Notification,
    OutboxEvent,
    OutboxKind,
    OutboxStatus,
)
from accu_lifecycle.schemas import SubmissionRequest
from accu_lifecycle.services.outbox import OutboxRelay, enqueue


class FailingNotifier:
    def __init__(self) -> None:
        self.calls = 0

    def send(self, event, source_event_id=None):
        self.calls += 1
        raise RuntimeError("notification service unavailable")


def test_relay_delivers_pending_events(db_session, controller, draft_application):
    controller.submit(draft_application.id, SubmissionRequest(submission_notes="first cut"))

    stats = OutboxRelay(db_session).relay_pending()
    assert stats == {"delivered": 2, "retrying": 0, "failed": 0}

    events = db_session.query(OutboxEvent).all()
    assert {event.status for event in events} == {OutboxStatus.delivered}
    assert all(event.attempts == 1 for event in events)

    notifications = db_session.query(Notification).filter(Notification.application_id == draft_application.id).all()
    assert {item.metadata_json["name"] for item in notifications} == {"submission_confirmation", "missing_documents"}
    assert {item.user_id for item in notifications} == {"owner-1"}

    assert OutboxRelay(db_session).relay_pending() == {"delivered": 0, "retrying": 0, "failed": 0}


def test_side_effect_failure_never_rolls_back_the_transition(db_session, controller, draft_application):
    controller.submit(draft_application.id, SubmissionRequest())
    notifier = FailingNotifier()
    relay = OutboxRelay(db_session, notifier=notifier)

    first = relay.relay_pending(max_attempts=2)
    assert first == {"delivered": 0, "retrying": 2, "failed": 0}
    db_session.refresh(draft_application)
    assert draft_application.status == ApplicationStatus.submitted

    second = relay.relay_pending(max_attempts=2)
    assert second == {"delivered": 0, "retrying": 0, "failed": 2}
    assert notifier.calls == 4

    events = db_session.query(OutboxEvent).all()
    assert {event.status for event in events} == {OutboxStatus.failed}
    assert all("unavailable" in event.last_error for event in events)

    dead = db_session.query(JobDeadLetter).all()
    assert len(dead) == 2
    assert {item.task_name for item in dead} == {"outbox.notification"}
    assert {item.outbox_event_id for item in dead} == {event.id for event in events}

    db_session.refresh(draft_application)
    assert draft_application.status == ApplicationStatus.submitted


def test_redelivery_is_idempotent_per_event(db_session, project):
    event = enqueue(
        db_session,
        OutboxKind.deadline,
        "submission_deadline",
        {
            "project_id": project.id,
            "title": "Review deadline",
            "due_at": "2030-01-01T00:00:00",
        },
    )
    db_session.commit()

    relay = OutboxRelay(db_session)
    relay.deliver(event)
    relay.deliver(event)
    db_session.commit()
    assert db_session.query(Deadline).count() == 1


def test_malformed_event_is_dead_lettered(db_session):
    event = enqueue(db_session, OutboxKind.notification, "broken", {})
    db_session.commit()

    stats = OutboxRelay(db_session).relay_pending(max_attempts=1)
    assert stats["failed"] == 1
    db_session.refresh(event)
    assert event.status == OutboxStatus.failed
