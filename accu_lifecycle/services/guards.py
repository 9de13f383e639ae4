from dataclasses import dataclass

from accu_lifecycle.core.errors import IncompleteDocumentationError, ValidationError
from accu_lifecycle.models.entities import Application
from accu_lifecycle.services.registry import (
    DocumentStore,
    MethodologyRegistry,
    MethodologyRequirements,
)


@dataclass(frozen=True)
class SubmissionCheck:
    requirements: MethodologyRequirements
    submitted_documents: int

    @property
    def required_documents(self) -> int:
        return self.requirements.required_documents_count

    @property
    def missing_documents(self) -> int:
        return max(0, self.required_documents - self.submitted_documents)


def check_submission(
    application: Application,
    methodologies: MethodologyRegistry,
    documents: DocumentStore,
    block_on_missing_documents: bool = False,
) -> SubmissionCheck:
    if application.units < 1:
        raise ValidationError("Application must have at least 1 unit to be submitted")

    description = (application.payload_json or {}).get("description")
    if not description or not str(description).strip():
        raise ValidationError("Application description is required for submission")

    requirements = methodologies.lookup(application.methodology_id)
    if requirements is None:
        raise ValidationError(
            "Invalid methodology for submission",
            details={"methodology_id": application.methodology_id},
        )

    check = SubmissionCheck(
        requirements=requirements,
        submitted_documents=documents.count(application.project_id),
    )
    if check.missing_documents and block_on_missing_documents:
        raise IncompleteDocumentationError(check.required_documents, check.submitted_documents)
    return check


def check_approval(
    application: Application,
    methodologies: MethodologyRegistry,
    documents: DocumentStore,
) -> MethodologyRequirements:
    if application.submission_date is None:
        raise ValidationError("Application must be submitted before approval")

    requirements = methodologies.lookup(application.methodology_id)
    if requirements is None:
        raise ValidationError(
            "Invalid methodology for approval",
            details={"methodology_id": application.methodology_id},
        )

    submitted = documents.count(application.project_id)
    if submitted < requirements.required_documents_count:
        raise IncompleteDocumentationError(requirements.required_documents_count, submitted)
    return requirements
