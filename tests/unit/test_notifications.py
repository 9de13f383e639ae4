from datetime import datetime
from decimal import Decimal

from accu_lifecycle.core.config import Settings
from accu_lifecycle.models.entities import (
    Application,
    ApplicationStatus,
    Deadline,
    Notification,
    NotificationType,
    Project,
)
from accu_lifecycle.services import notifications
from accu_lifecycle.services.notifications import (
    NotificationDispatcher,
    approval_events,
    deadline_reminder_event,
    rejection_events,
    status_change_events,
)


def _application(**overrides) -> Application:
    values = {
        "id": "app-1",
        "project_id": "p1",
        "tenant_id": "tenant-1",
        "status": ApplicationStatus.approved,
        "units": Decimal("500"),
        "methodology_id": "m1",
        "approval_date": datetime(2026, 5, 1),
        "project": Project(id="p1", name="Riverina Soil Carbon", owner_id="owner-1"),
    }
    values.update(overrides)
    return Application(**values)


def test_status_change_appends_reason_and_notes():
    events = status_change_events(
        _application(status=ApplicationStatus.under_review),
        ApplicationStatus.submitted,
        ApplicationStatus.under_review,
        reason="Assigned",
        notes="Assessor: J. Smith",
    )
    assert len(events) == 1
    assert events[0]["message"].endswith("Reason: Assigned Notes: Assessor: J. Smith")
    assert events[0]["user_id"] == "owner-1"


def test_terminal_review_outcomes_notify_admins():
    events = status_change_events(_application(), ApplicationStatus.under_review, ApplicationStatus.approved)
    assert [event["name"] for event in events] == ["status_change", "admin_status_update"]
    assert events[1]["user_id"] is None
    assert events[1]["metadata"]["is_admin_notification"] is True


def test_approval_mentions_original_request():
    approval, next_steps = approval_events(_application(), Decimal("1000"), "Trimmed baseline")
    assert approval["message"] == (
        "Your ACCU application has been approved for 500 units (originally requested 1000 units)."
    )
    assert next_steps["type"] == NotificationType.info.value


def test_rejection_includes_reason():
    rejection, guidance = rejection_events(_application(status=ApplicationStatus.rejected), "Insufficient documentation")
    assert rejection["message"].endswith("Reason: Insufficient documentation")
    assert guidance["metadata"]["can_resubmit"] is True


def test_deadline_reminder_urgency():
    deadline = Deadline(id=7, project_id="p1", title="Review deadline", due_at=datetime(2030, 1, 1))
    assert deadline_reminder_event(_application(), deadline, 30)["type"] == "info"
    assert deadline_reminder_event(_application(), deadline, 14)["type"] == "warning"
    assert deadline_reminder_event(_application(), deadline, 3)["type"] == "error"


class _Response:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.text = ""


def test_dispatcher_persists_and_posts_webhook(db_session, monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json))
        return _Response(202)

    monkeypatch.setattr(notifications.httpx, "post", fake_post)
    settings = Settings(
        env="test",
        api_auth_enabled=False,
        notification_webhook_enabled=True,
        notification_webhook_url="https://hooks.example.com/accu",
    )
    dispatcher = NotificationDispatcher(db_session, settings=settings)
    event = approval_events(_application(), Decimal("500"))[0]

    first = dispatcher.send(event, source_event_id="evt-1")
    second = dispatcher.send(event, source_event_id="evt-1")
    db_session.commit()

    assert first.id == second.id
    assert db_session.query(Notification).count() == 1
    assert len(calls) == 1
    assert calls[0][0] == "https://hooks.example.com/accu"
    assert calls[0][1]["notification_id"] == first.id
