from datetime import datetime
from decimal import Decimal

import pytest

from accu_lifecycle.core.errors import IncompleteDocumentationError, ValidationError
from accu_lifecycle.models.entities import Application, ApplicationStatus
from accu_lifecycle.services.guards import check_approval, check_submission
from accu_lifecycle.services.registry import MethodologyRequirements


class FakeMethodologies:
    def __init__(self, *requirements: MethodologyRequirements) -> None:
        self.rows = {item.methodology_id: item for item in requirements}

    def lookup(self, methodology_id):
        return self.rows.get(methodology_id)


class FakeDocuments:
    def __init__(self, count: int) -> None:
        self.value = count

    def count(self, project_id):
        return self.value


REQUIREMENTS = MethodologyRequirements(
    methodology_id="m1",
    name="Carbon Reduction Methodology",
    max_units=Decimal("100000"),
    required_documents_count=3,
    review_period_days=90,
)


def _application(**overrides) -> Application:
    values = {
        "project_id": "p1",
        "status": ApplicationStatus.draft,
        "units": Decimal("1000"),
        "methodology_id": "m1",
        "payload_json": {"description": "Regenerating native forest"},
    }
    values.update(overrides)
    return Application(**values)


def test_submission_passes_and_reports_missing_documents():
    check = check_submission(_application(), FakeMethodologies(REQUIREMENTS), FakeDocuments(1))
    assert check.required_documents == 3
    assert check.missing_documents == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"units": Decimal("0")},
        {"payload_json": {"description": "   "}},
        {"payload_json": {}},
        {"methodology_id": "unknown"},
    ],
)
def test_submission_rejects_invalid_application(overrides):
    with pytest.raises(ValidationError):
        check_submission(_application(**overrides), FakeMethodologies(REQUIREMENTS), FakeDocuments(3))


def test_submission_can_block_on_missing_documents():
    with pytest.raises(IncompleteDocumentationError):
        check_submission(
            _application(),
            FakeMethodologies(REQUIREMENTS),
            FakeDocuments(0),
            block_on_missing_documents=True,
        )


def test_approval_requires_submission_date():
    with pytest.raises(ValidationError, match="submitted before approval"):
        check_approval(_application(), FakeMethodologies(REQUIREMENTS), FakeDocuments(3))


def test_approval_is_stricter_than_submission_on_documents():
    application = _application(
        status=ApplicationStatus.under_review, submission_date=datetime(2026, 1, 1)
    )
    with pytest.raises(IncompleteDocumentationError) as excinfo:
        check_approval(application, FakeMethodologies(REQUIREMENTS), FakeDocuments(2))
    assert excinfo.value.details == {"required": 3, "submitted": 2}

    assert check_approval(application, FakeMethodologies(REQUIREMENTS), FakeDocuments(3)) == REQUIREMENTS
