from datetime import timedelta

from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import Deadline, OutboxEvent
from accu_lifecycle.schemas import SubmissionRequest


def test_deadline_reminders_fire_on_configured_days(db_session, controller, project, draft_application, monkeypatch):
    from accu_lifecycle.tasks import jobs

    controller.submit(draft_application.id, SubmissionRequest())
    now = now_utc()
    for days in (7, 8):
        db_session.add(
            Deadline(
                project_id=project.id,
                application_id=draft_application.id,
                title=f"Milestone in {days} days",
                due_at=now + timedelta(days=days, hours=-1),
            )
        )
    db_session.commit()

    relayed = []
    monkeypatch.setattr(jobs, "_db", lambda: db_session)
    monkeypatch.setattr(db_session, "close", lambda: None)
    monkeypatch.setattr(jobs.relay_outbox, "delay", lambda *args, **kwargs: relayed.append(True))

    assert jobs.send_deadline_reminders() == {"reminders": 1}
    reminders = db_session.query(OutboxEvent).filter(OutboxEvent.name == "deadline_reminder").all()
    assert len(reminders) == 1
    assert reminders[0].payload_json["metadata"]["days_until_deadline"] == 7
    assert relayed == [True]
