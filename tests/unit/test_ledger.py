from datetime import timedelta

import pytest

from accu_lifecycle.core.errors import LedgerImmutableError
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import ApplicationStatus, StatusHistoryEntry
from accu_lifecycle.services import ledger


def test_create_appends_initial_entry(db_session, draft_application):
    history = ledger.get_history(db_session, draft_application.id)
    assert len(history) == 1
    assert history[0].from_status is None
    assert history[0].to_status == ApplicationStatus.draft
    assert history[0].reason == "Application created"
    assert history[0].actor == "user-42"


def test_history_timestamps_never_go_backwards(db_session, draft_application):
    future = now_utc() + timedelta(minutes=5)
    db_session.add(
        StatusHistoryEntry(
            application_id=draft_application.id,
            from_status=ApplicationStatus.draft,
            to_status=ApplicationStatus.draft,
            reason="clock skew",
            notes="",
            actor="system",
            created_at=future,
        )
    )
    db_session.flush()

    entry = ledger.append_history(
        db_session, draft_application.id, ApplicationStatus.draft, ApplicationStatus.submitted
    )
    assert entry.created_at >= future

    history = ledger.get_history(db_session, draft_application.id)
    assert [item.created_at for item in history] == sorted(item.created_at for item in history)
    assert history[-1].id == entry.id


def test_history_entries_cannot_be_modified(db_session, draft_application):
    entry = ledger.get_history(db_session, draft_application.id)[0]
    entry.reason = "rewritten"
    with pytest.raises(LedgerImmutableError):
        db_session.flush()
    db_session.rollback()


def test_history_entries_cannot_be_deleted(db_session, draft_application):
    entry = ledger.get_history(db_session, draft_application.id)[0]
    db_session.delete(entry)
    with pytest.raises(LedgerImmutableError):
        db_session.flush()
    db_session.rollback()
