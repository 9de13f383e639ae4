from datetime import datetime, timedelta
from decimal import Decimal

from accu_lifecycle.models.entities import Application, ApplicationStatus
from accu_lifecycle.services.dashboard import compute_stats
from accu_lifecycle.services.registry import MethodologyRequirements

NOW = datetime(2026, 6, 1, 12, 0, 0)


class FakeMethodologies:
    def lookup(self, methodology_id):
        if methodology_id != "m1":
            return None
        return MethodologyRequirements(
            methodology_id="m1",
            name="Carbon Reduction Methodology",
            max_units=Decimal("100000"),
            required_documents_count=3,
            review_period_days=30,
        )


def _app(status, units="100", methodology_id="m1", submitted_days_ago=None, approved_days_ago=None):
    return Application(
        status=status,
        units=Decimal(units),
        methodology_id=methodology_id,
        submission_date=NOW - timedelta(days=submitted_days_ago) if submitted_days_ago is not None else None,
        approval_date=NOW - timedelta(days=approved_days_ago) if approved_days_ago is not None else None,
    )


def test_stats_over_draft_submitted_approved():
    applications = [
        _app(ApplicationStatus.draft, "100"),
        _app(ApplicationStatus.submitted, "200", submitted_days_ago=5),
        _app(ApplicationStatus.approved, "300", submitted_days_ago=20, approved_days_ago=10),
    ]
    stats = compute_stats(applications, FakeMethodologies(), NOW)

    assert stats["total"] == 3
    assert stats["pending"] == 1
    assert stats["success_rate"] == 100.0
    assert stats["total_units"] == 600.0
    assert stats["average_units"] == 200.0
    assert stats["average_processing_time"] == 10.0
    assert stats["by_methodology"] == {"m1": 3}
    assert stats["by_status"]["draft"] == 1
    assert stats["by_status"]["issued"] == 0
    assert stats["overdue"] == 0


def test_success_rate_counts_only_terminal_outcomes():
    applications = [
        _app(ApplicationStatus.approved, submitted_days_ago=4, approved_days_ago=1),
        _app(ApplicationStatus.rejected),
        _app(ApplicationStatus.rejected),
        _app(ApplicationStatus.rejected),
        _app(ApplicationStatus.under_review, submitted_days_ago=2),
    ]
    stats = compute_stats(applications, FakeMethodologies(), NOW)
    assert stats["success_rate"] == 25.0
    assert stats["pending"] == 1


def test_overdue_uses_methodology_review_period():
    applications = [
        _app(ApplicationStatus.submitted, submitted_days_ago=45),
        _app(ApplicationStatus.submitted, methodology_id="retired", submitted_days_ago=45),
    ]
    stats = compute_stats(applications, FakeMethodologies(), NOW, default_review_period_days=90)
    assert stats["overdue"] == 1


def test_empty_scope_is_all_zero():
    stats = compute_stats([], FakeMethodologies(), NOW)
    assert stats["total"] == 0
    assert stats["success_rate"] == 0.0
    assert stats["average_units"] == 0.0
    assert set(stats["by_status"]) == {status.value for status in ApplicationStatus}
