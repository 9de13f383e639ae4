from datetime import datetime, timedelta
from decimal import Decimal

from accu_lifecycle.models.entities import Application, ApplicationStatus
from accu_lifecycle.services.progress import (
    days_in_current_status,
    document_completion,
    estimate_progress,
    estimated_days_remaining,
    is_overdue,
)

NOW = datetime(2026, 6, 1, 12, 0, 0)


def _submitted(days_ago: int) -> Application:
    return Application(
        status=ApplicationStatus.submitted,
        units=Decimal("100"),
        methodology_id="m1",
        submission_date=NOW - timedelta(days=days_ago),
        created_at=NOW - timedelta(days=days_ago + 5),
        updated_at=NOW - timedelta(days=days_ago),
    )


def test_progress_blends_status_and_documents():
    assert estimate_progress(ApplicationStatus.draft, 0, 0) == 10
    assert estimate_progress(ApplicationStatus.submitted, 2, 5) == 48
    assert estimate_progress(ApplicationStatus.issued, 0, 5) == 100
    assert estimate_progress(ApplicationStatus.issued, 9, 5) == 100


def test_progress_caps_document_ratio():
    assert estimate_progress(ApplicationStatus.under_review, 10, 2) == 90
    assert estimate_progress(ApplicationStatus.rejected, 0, 3) == 0


def test_document_completion():
    assert document_completion(1, 4) == 25
    assert document_completion(8, 4) == 100
    assert document_completion(3, 0) == 0


def test_overdue_only_for_submitted_past_review_period():
    assert is_overdue(_submitted(91), 90, NOW)
    assert not is_overdue(_submitted(10), 90, NOW)
    assert is_overdue(_submitted(31), 30, NOW)

    reviewing = _submitted(200)
    reviewing.status = ApplicationStatus.under_review
    assert not is_overdue(reviewing, 90, NOW)


def test_overdue_falls_back_to_default_period():
    assert not is_overdue(_submitted(89), None, NOW)
    assert is_overdue(_submitted(95), None, NOW)


def test_estimated_days_remaining_is_a_fixed_table():
    assert estimated_days_remaining(ApplicationStatus.draft) == 30
    assert estimated_days_remaining(ApplicationStatus.submitted) == 60
    assert estimated_days_remaining(ApplicationStatus.issued) == 0


def test_days_in_current_status_uses_submission_date():
    assert days_in_current_status(_submitted(12), NOW) == 12
