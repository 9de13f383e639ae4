from decimal import Decimal

import pytest
from pydantic import ValidationError

from accu_lifecycle.schemas import (
    ApplicationCreate,
    ApplicationQuery,
    ApprovalRequest,
    DocumentLinkRequest,
    RejectionRequest,
    SubmissionRequest,
)


def test_application_create_rejects_negative_units():
    with pytest.raises(ValidationError):
        ApplicationCreate(
            project_id="p1",
            units=Decimal("-1"),
            methodology_id="m1",
            application_data={"description": "x"},
        )


def test_application_data_keeps_extra_fields():
    payload = ApplicationCreate(
        project_id="p1",
        units=Decimal("10"),
        methodology_id="m1",
        application_data={"description": "x", "vegetation_type": "mallee"},
    )
    assert payload.application_data.model_dump()["vegetation_type"] == "mallee"


def test_query_limit_is_capped():
    with pytest.raises(ValidationError):
        ApplicationQuery(limit=101)
    with pytest.raises(ValidationError):
        ApplicationQuery(sort_order="sideways")
    assert ApplicationQuery().page == 1


def test_rejection_requires_reason():
    with pytest.raises(ValidationError):
        RejectionRequest(reason="")


def test_submission_accepts_iso_deadline():
    request = SubmissionRequest(deadline="2030-01-01T00:00:00Z")
    assert request.deadline.year == 2030


def test_approval_minimal_valid():
    out = ApprovalRequest(approved=True)
    assert out.approved_units is None


def test_document_link_requirement_level_is_constrained():
    assert DocumentLinkRequest(document_id=3, requirement_level="conditional").requirement_level == "conditional"
    with pytest.raises(ValidationError):
        DocumentLinkRequest(document_id=3, requirement_level="mandatory")
    with pytest.raises(ValidationError):
        DocumentLinkRequest(document_id=0)
