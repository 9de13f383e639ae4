from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from accu_lifecycle.core.time import days_between
from accu_lifecycle.models.entities import Application, ApplicationStatus, StatusHistoryEntry


class ApiError(BaseModel):
    code: str
    message: str
    trace_id: str
    details: dict[str, Any] = Field(default_factory=dict)


class ApiEnvelope(BaseModel):
    data: Any = None
    error: ApiError | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ApplicationData(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: str | None = None
    location: dict[str, Any] | None = None
    baseline: dict[str, Any] | None = None
    activities: list[str] | None = None
    metadata: dict[str, Any] | None = None


class ApplicationCreate(BaseModel):
    project_id: str = Field(min_length=1, max_length=36)
    units: Decimal = Field(ge=0, max_digits=15, decimal_places=2)
    methodology_id: str = Field(min_length=1, max_length=255)
    ser_reference: str | None = Field(default=None, max_length=100)
    application_data: ApplicationData
    tenant_id: str | None = Field(default=None, max_length=64)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApplicationUpdate(BaseModel):
    units: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    methodology_id: str | None = Field(default=None, min_length=1, max_length=255)
    ser_reference: str | None = Field(default=None, max_length=100)
    application_data: ApplicationData | None = None
    metadata: dict[str, Any] | None = None


class StatusChangeRequest(BaseModel):
    status: ApplicationStatus
    reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class ContactPerson(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    position: str | None = None


class SubmissionRequest(BaseModel):
    submission_notes: str | None = Field(default=None, max_length=1000)
    contact_person: ContactPerson | None = None
    deadline: datetime | None = None


class ApprovalRequest(BaseModel):
    approved: bool
    reason: str | None = Field(default=None, max_length=1000)
    approved_units: Decimal | None = Field(default=None, ge=0, max_digits=15, decimal_places=2)
    reviewer_comments: str | None = Field(default=None, max_length=2000)
    next_steps: str | None = Field(default=None, max_length=2000)


class RejectionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)
    notes: str | None = Field(default=None, max_length=2000)


class FinalApprovalRequest(BaseModel):
    approved_units: Decimal = Field(ge=0, max_digits=15, decimal_places=2)
    reviewer_comments: str | None = Field(default=None, max_length=2000)
    next_steps: str | None = Field(default=None, max_length=2000)


class ReviewRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=1000)


class IssueRequest(BaseModel):
    ser_reference: str | None = Field(default=None, max_length=100)


class DocumentLinkRequest(BaseModel):
    document_id: int = Field(ge=1)
    category: str | None = Field(default=None, max_length=64)
    role: str | None = Field(default=None, max_length=64)
    requirement_level: Literal["required", "optional", "conditional"] | None = None


class ApplicationQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str | None = None
    status: ApplicationStatus | None = None
    project_id: str | None = None
    methodology_id: str | None = None
    tenant_id: str | None = None
    submission_date_from: datetime | None = None
    submission_date_to: datetime | None = None
    approval_date_from: datetime | None = None
    approval_date_to: datetime | None = None
    sort_by: str = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class ProjectSummary(BaseModel):
    id: str
    name: str
    status: str


class HistoryEntryOut(BaseModel):
    id: int
    from_status: ApplicationStatus | None
    to_status: ApplicationStatus
    reason: str
    notes: str
    changed_by: str
    changed_at: datetime

    @classmethod
    def from_entity(cls, entry: StatusHistoryEntry) -> "HistoryEntryOut":
        return cls(
            id=entry.id,
            from_status=entry.from_status,
            to_status=entry.to_status,
            reason=entry.reason,
            notes=entry.notes,
            changed_by=entry.actor,
            changed_at=entry.created_at,
        )


class ApplicationOut(BaseModel):
    id: str
    status: ApplicationStatus
    units: float
    methodology_id: str
    ser_reference: str | None = None
    application_data: dict[str, Any]
    metadata: dict[str, Any]
    project: ProjectSummary | None = None
    tenant_id: str | None = None
    submission_date: datetime | None = None
    approval_date: datetime | None = None
    issued_date: datetime | None = None
    created_at: datetime
    updated_at: datetime
    is_draft: bool
    is_submitted: bool
    is_approved: bool
    is_issued: bool
    age_in_days: int
    status_history: list[HistoryEntryOut] | None = None

    @classmethod
    def from_entity(
        cls, application: Application, history: list[StatusHistoryEntry] | None = None
    ) -> "ApplicationOut":
        project = application.project
        return cls(
            id=application.id,
            status=application.status,
            units=float(application.units),
            methodology_id=application.methodology_id,
            ser_reference=application.ser_reference,
            application_data=application.payload_json or {},
            metadata=application.metadata_json or {},
            project=(
                ProjectSummary(id=project.id, name=project.name, status=project.status.value)
                if project is not None
                else None
            ),
            tenant_id=application.tenant_id,
            submission_date=application.submission_date,
            approval_date=application.approval_date,
            issued_date=application.issued_date,
            created_at=application.created_at,
            updated_at=application.updated_at,
            is_draft=application.status == ApplicationStatus.draft,
            is_submitted=application.status == ApplicationStatus.submitted,
            is_approved=application.status == ApplicationStatus.approved,
            is_issued=application.status == ApplicationStatus.issued,
            age_in_days=days_between(application.created_at),
            status_history=(
                [HistoryEntryOut.from_entity(entry) for entry in history] if history else None
            ),
        )


class DocumentOut(BaseModel):
    id: int
    project_id: str | None
    application_id: str | None
    name: str
    category: str | None
    role: str | None
    requirement_level: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DeadlineOut(BaseModel):
    id: int
    project_id: str
    application_id: str | None
    title: str
    description: str
    priority: str
    due_at: datetime

    model_config = {"from_attributes": True}


class AnalyticsOut(BaseModel):
    id: str
    project_name: str | None
    status: ApplicationStatus
    progress: float
    days_until_next_deadline: int
    is_overdue: bool
    document_completion: float
    required_documents_count: int
    submitted_documents_count: int
    application_age_in_days: int
    estimated_days_remaining: int


class StatsOut(BaseModel):
    total: int
    by_status: dict[str, int]
    by_methodology: dict[str, int]
    average_units: float
    total_units: float
    average_processing_time: float
    success_rate: float
    pending: int
    overdue: int


class DashboardOut(StatsOut):
    recent_applications: list[AnalyticsOut] = Field(default_factory=list)
    upcoming_deadlines: list[DeadlineOut] = Field(default_factory=list)


class StatusInfoOut(BaseModel):
    id: str
    status: ApplicationStatus
    can_submit: bool
    can_approve: bool
    can_reject: bool
    can_issue: bool
    can_edit: bool
    can_delete: bool
    allowed_transitions: list[ApplicationStatus]
    progress: float
    is_overdue: bool
    days_in_current_status: int
