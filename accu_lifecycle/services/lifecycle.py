import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from accu_lifecycle.core.auth import SYSTEM_ACTOR
from accu_lifecycle.core.config import Settings, get_settings
from accu_lifecycle.core.errors import ConflictError, NotFoundError, ValidationError
from accu_lifecycle.core.observability import TRANSITION_COUNT
from accu_lifecycle.core.time import now_utc, to_naive_utc
from accu_lifecycle.models.entities import (
    Application,
    ApplicationStatus,
    Deadline,
    ProjectDocument,
    ProjectStatus,
    StatusHistoryEntry,
)
from accu_lifecycle.schemas.applications import (
    ApplicationCreate,
    ApplicationQuery,
    ApplicationUpdate,
    ApprovalRequest,
    DocumentLinkRequest,
    FinalApprovalRequest,
    RejectionRequest,
    SubmissionRequest,
)
from accu_lifecycle.services import dashboard, ledger
from accu_lifecycle.services.deadlines import SqlDeadlineScheduler
from accu_lifecycle.services.guards import check_approval, check_submission
from accu_lifecycle.services.listing import query_applications
from accu_lifecycle.services.notifications import (
    approval_events,
    issuance_events,
    missing_documents_event,
    rejection_events,
    status_change_events,
    submission_confirmation_event,
)
from accu_lifecycle.services.outbox import (
    enqueue_deadline,
    enqueue_notifications,
    schedule_outbox_relay,
)
from accu_lifecycle.services.progress import (
    days_in_current_status,
    estimate_progress,
    is_overdue,
)
from accu_lifecycle.services.registry import (
    DeadlineScheduler,
    DocumentStore,
    MethodologyRegistry,
    MethodologyRequirements,
    ProjectStore,
    SqlDocumentStore,
    SqlMethodologyRegistry,
    SqlProjectStore,
)
from accu_lifecycle.state_machine.application_status import (
    allowed_targets,
    can_transition,
    enforce_transition,
)

logger = logging.getLogger(__name__)

CLOSED_PROJECT_STATUSES = frozenset({ProjectStatus.completed, ProjectStatus.cancelled})
REVIEWABLE_STATUSES = frozenset({ApplicationStatus.submitted, ApplicationStatus.under_review})

# Date column stamped the first time an application reaches each status.
DATE_FIELDS = {
    ApplicationStatus.submitted: "submission_date",
    ApplicationStatus.approved: "approval_date",
    ApplicationStatus.issued: "issued_date",
}

DELETION_REASON = "Application deleted by user"
ACTIVATION_NOTES = "Application activated via API"


class LifecycleController:
    def __init__(
        self,
        db: Session,
        methodologies: MethodologyRegistry | None = None,
        projects: ProjectStore | None = None,
        documents: DocumentStore | None = None,
        deadlines: DeadlineScheduler | None = None,
        settings: Settings | None = None,
        on_commit: Callable[[], None] | None = schedule_outbox_relay,
        before_commit: Callable[[Any], None] | None = None,
    ) -> None:
        self.db = db
        self.methodologies = methodologies or SqlMethodologyRegistry(db)
        self.projects = projects or SqlProjectStore(db)
        self.documents = documents or SqlDocumentStore(db)
        self.deadlines = deadlines or SqlDeadlineScheduler(db)
        self.settings = settings or get_settings()
        self.on_commit = on_commit
        # Runs inside the write transaction, just before its single commit.
        self.before_commit = before_commit

    # -- reads ---------------------------------------------------------

    def get_application(self, application_id: str) -> Application:
        application = self.db.get(Application, application_id)
        if application is None:
            raise NotFoundError("ACCU application not found", details={"id": application_id})
        return application

    def get(self, application_id: str) -> tuple[Application, list[StatusHistoryEntry]]:
        application = self.get_application(application_id)
        return application, ledger.get_history(self.db, application.id)

    def get_history(self, application_id: str) -> list[StatusHistoryEntry]:
        application = self.get_application(application_id)
        return ledger.get_history(self.db, application.id)

    def list_applications(self, params: ApplicationQuery) -> tuple[list[Application], int]:
        return query_applications(self.db, params)

    def get_analytics(self, application_id: str) -> dict[str, Any]:
        application = self.get_application(application_id)
        return dashboard.application_analytics(
            application,
            self.methodologies,
            self.documents,
            self.deadlines,
            default_review_period_days=self.settings.default_review_period_days,
        )

    def get_stats(self, tenant_id: str | None = None) -> dict[str, Any]:
        return dashboard.build_stats(
            self.db,
            tenant_id,
            self.methodologies,
            default_review_period_days=self.settings.default_review_period_days,
        )

    def get_dashboard(self, tenant_id: str | None = None) -> dict[str, Any]:
        return dashboard.build_dashboard(
            self.db,
            tenant_id,
            self.methodologies,
            self.documents,
            self.deadlines,
            default_review_period_days=self.settings.default_review_period_days,
        )

    def get_deadlines(self, application_id: str) -> list[Deadline]:
        application = self.get_application(application_id)
        return self.deadlines.for_project(application.project_id)

    def get_documents(self, application_id: str) -> list[ProjectDocument]:
        application = self.get_application(application_id)
        return self.documents.for_project(application.project_id)

    def get_status_info(self, application_id: str) -> dict[str, Any]:
        application = self.get_application(application_id)
        status = application.status
        requirements = self.methodologies.lookup(application.methodology_id)
        required = requirements.required_documents_count if requirements else 0
        period = (
            requirements.review_period_days
            if requirements
            else self.settings.default_review_period_days
        )
        return {
            "id": application.id,
            "status": status,
            "can_submit": status == ApplicationStatus.draft,
            "can_approve": status in REVIEWABLE_STATUSES,
            "can_reject": can_transition(status, ApplicationStatus.rejected),
            "can_issue": status == ApplicationStatus.approved,
            "can_edit": status == ApplicationStatus.draft,
            "can_delete": status == ApplicationStatus.draft,
            "allowed_transitions": sorted(allowed_targets(status), key=lambda item: item.value),
            "progress": estimate_progress(
                status, self.documents.count(application.project_id), required
            ),
            "is_overdue": is_overdue(application, period),
            "days_in_current_status": days_in_current_status(application),
        }

    # -- writes --------------------------------------------------------

    def create(self, data: ApplicationCreate, actor_id: str = SYSTEM_ACTOR) -> Application:
        project = self.projects.get(data.project_id)
        if project is None:
            raise NotFoundError("Project not found", details={"project_id": data.project_id})
        if project.status in CLOSED_PROJECT_STATUSES:
            raise ValidationError(
                "Cannot create ACCU application for completed or cancelled project",
                details={"project_status": project.status.value},
            )

        existing = (
            self.db.query(Application.id)
            .filter(
                Application.project_id == project.id,
                Application.status == ApplicationStatus.draft,
            )
            .first()
        )
        if existing:
            raise ConflictError(
                "A draft ACCU application already exists for this project",
                details={"application_id": existing.id},
            )

        requirements = self._validate_requirements(data.methodology_id, data.units)

        application = Application(
            project_id=project.id,
            tenant_id=data.tenant_id or project.tenant_id,
            status=ApplicationStatus.draft,
            units=data.units,
            methodology_id=data.methodology_id,
            ser_reference=data.ser_reference,
            payload_json=data.application_data.model_dump(exclude_none=True),
            metadata_json={
                **data.metadata,
                "created_by": actor_id,
                "requirements": requirements.as_dict(),
            },
        )
        self.db.add(application)
        try:
            self.db.flush()
        except IntegrityError as exc:
            # Lost the race against a concurrent create for the same project.
            self.db.rollback()
            raise ConflictError(
                "A draft ACCU application already exists for this project",
                details={"project_id": project.id},
            ) from exc

        ledger.append_history(
            self.db,
            application.id,
            None,
            ApplicationStatus.draft,
            reason="Application created",
            notes="Initial draft created",
            actor=actor_id,
        )
        self._commit(application)
        TRANSITION_COUNT.labels("none", ApplicationStatus.draft.value).inc()
        logger.info("Created ACCU application id=%s project_id=%s", application.id, project.id)
        return application

    def update(self, application_id: str, patch: ApplicationUpdate) -> Application:
        application = self.get_application(application_id)
        if application.status != ApplicationStatus.draft:
            raise ValidationError(
                "Only draft applications can be updated",
                details={"status": application.status.value},
            )

        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        values: dict[str, Any] = {}
        if "methodology_id" in changes or "units" in changes:
            self._validate_requirements(
                changes.get("methodology_id", application.methodology_id),
                changes.get("units", application.units),
            )
        if "units" in changes:
            values["units"] = changes["units"]
        if "methodology_id" in changes:
            values["methodology_id"] = changes["methodology_id"]
        if "ser_reference" in changes:
            values["ser_reference"] = changes["ser_reference"]
        if patch.application_data is not None:
            values["payload_json"] = patch.application_data.model_dump(exclude_none=True)
        if patch.metadata:
            values["metadata_json"] = {**(application.metadata_json or {}), **patch.metadata}

        if values:
            self._compare_and_set(application, ApplicationStatus.draft, values)
        self._commit(application)
        return application

    def submit(
        self,
        application_id: str,
        data: SubmissionRequest | None = None,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        data = data or SubmissionRequest()
        application = self.get_application(application_id)
        if application.status != ApplicationStatus.draft:
            raise ValidationError(
                "Only draft applications can be submitted",
                details={"status": application.status.value},
            )

        check = check_submission(
            application,
            self.methodologies,
            self.documents,
            block_on_missing_documents=self.settings.missing_documents_blocks_submission,
        )

        metadata = dict(application.metadata_json or {})
        metadata["submission_notes"] = data.submission_notes
        metadata["contact_person"] = (
            data.contact_person.model_dump(exclude_none=True) if data.contact_person else None
        )
        metadata["submission_deadline"] = data.deadline.isoformat() if data.deadline else None

        values: dict[str, Any] = {"status": ApplicationStatus.submitted, "metadata_json": metadata}
        if application.submission_date is None:
            values["submission_date"] = now_utc()
        self._compare_and_set(application, ApplicationStatus.draft, values)

        ledger.append_history(
            self.db,
            application.id,
            ApplicationStatus.draft,
            ApplicationStatus.submitted,
            reason="Application submitted",
            notes=data.submission_notes,
            actor=actor_id,
        )

        events = []
        if check.missing_documents:
            events.append(
                missing_documents_event(application, check.submitted_documents, check.required_documents)
            )
        events.append(submission_confirmation_event(application, data.submission_notes))
        enqueue_notifications(self.db, events)

        if data.deadline:
            enqueue_deadline(
                self.db,
                application,
                title=f"ACCU Application Review Deadline - {application.project.name}",
                due_at=to_naive_utc(data.deadline),
                description=f"Deadline for review of ACCU application {application.id}",
            )

        self._commit_transition(application, ApplicationStatus.draft)
        return application

    def activate(self, application_id: str, actor_id: str = SYSTEM_ACTOR) -> Application:
        return self.submit(application_id, SubmissionRequest(submission_notes=ACTIVATION_NOTES), actor_id)

    def add_document(
        self,
        application_id: str,
        data: DocumentLinkRequest,
        actor_id: str = SYSTEM_ACTOR,
    ) -> ProjectDocument:
        """Attach an uploaded document to the application's project.

        Linked documents count towards the methodology's required evidence.
        """
        application = self.get_application(application_id)
        document = self.db.get(ProjectDocument, data.document_id)
        if document is None:
            raise NotFoundError("Document not found", details={"document_id": data.document_id})
        if document.project_id not in (None, application.project_id):
            raise ValidationError(
                "Document belongs to a different project",
                details={"document_id": document.id, "project_id": document.project_id},
            )

        document.project_id = application.project_id
        document.application_id = application.id
        document.role = data.role
        document.requirement_level = data.requirement_level
        if data.category is not None:
            document.category = data.category
        self.db.flush()
        self._commit(document)
        logger.info(
            "Linked document id=%s to ACCU application id=%s actor=%s",
            document.id,
            application.id,
            actor_id,
        )
        return document

    def update_status(
        self,
        application_id: str,
        target: ApplicationStatus,
        reason: str | None = None,
        notes: str | None = None,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        application = self.get_application(application_id)
        return self._transition(application, target, reason, notes, actor_id)

    def approve(
        self,
        application_id: str,
        data: ApprovalRequest,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        application = self.get_application(application_id)
        current = application.status
        if current not in REVIEWABLE_STATUSES:
            raise ValidationError(
                "Only submitted applications can be approved or rejected",
                details={"status": current.value},
            )

        target = ApplicationStatus.approved if data.approved else ApplicationStatus.rejected
        requested_units = application.units

        metadata = {
            **(application.metadata_json or {}),
            "approval_reason": data.reason,
            "reviewer_comments": data.reviewer_comments,
            "next_steps": data.next_steps,
            "approved_units": str(data.approved_units) if data.approved_units is not None else None,
        }
        values: dict[str, Any] = {"status": target, "metadata_json": metadata}
        if application.approval_date is None:
            values["approval_date"] = now_utc()
        if (
            data.approved
            and data.approved_units is not None
            and Decimal(data.approved_units) != Decimal(application.units)
        ):
            values["units"] = data.approved_units
        self._compare_and_set(application, current, values)

        ledger.append_history(
            self.db,
            application.id,
            current,
            target,
            reason="Application approved" if data.approved else "Application rejected",
            notes=data.reason,
            actor=actor_id,
        )
        if data.approved:
            events = approval_events(application, requested_units, data.reviewer_comments)
        else:
            events = rejection_events(application, data.reason, data.reviewer_comments)
        enqueue_notifications(self.db, events)

        self._commit_transition(application, current)
        return application

    def reject(
        self,
        application_id: str,
        data: RejectionRequest,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        return self.approve(
            application_id,
            ApprovalRequest(approved=False, reason=data.reason, reviewer_comments=data.notes),
            actor_id,
        )

    def mark_under_review(
        self,
        application_id: str,
        notes: str | None = None,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        return self.update_status(
            application_id,
            ApplicationStatus.under_review,
            reason="Application under review",
            notes=notes,
            actor_id=actor_id,
        )

    def final_approve(
        self,
        application_id: str,
        data: FinalApprovalRequest,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        """Approve from UnderReview through the guarded transition path."""
        application = self.get_application(application_id)
        requested_units = application.units
        metadata = {
            **(application.metadata_json or {}),
            "approved_units": str(data.approved_units),
            "reviewer_comments": data.reviewer_comments,
            "next_steps": data.next_steps,
        }
        return self._transition(
            application,
            ApplicationStatus.approved,
            reason="Final approval granted",
            notes=data.reviewer_comments,
            actor_id=actor_id,
            extra_values={"units": data.approved_units, "metadata_json": metadata},
            extra_events=lambda approved: approval_events(approved, requested_units, data.reviewer_comments),
        )

    def issue(
        self,
        application_id: str,
        ser_reference: str | None = None,
        actor_id: str = SYSTEM_ACTOR,
    ) -> Application:
        application = self.get_application(application_id)
        extra = {"ser_reference": ser_reference} if ser_reference else None
        return self._transition(
            application,
            ApplicationStatus.issued,
            reason="ACCU units issued",
            actor_id=actor_id,
            extra_values=extra,
        )

    def remove(self, application_id: str, actor_id: str = SYSTEM_ACTOR) -> None:
        application = self.get_application(application_id)
        if application.status != ApplicationStatus.draft:
            raise ValidationError(
                "Only draft applications can be deleted",
                details={"status": application.status.value},
            )

        metadata = {
            **(application.metadata_json or {}),
            "deleted_at": now_utc().isoformat(),
            "deletion_reason": DELETION_REASON,
            "deleted_by": actor_id,
        }
        self._compare_and_set(
            application,
            ApplicationStatus.draft,
            {"status": ApplicationStatus.rejected, "metadata_json": metadata},
        )
        ledger.append_history(
            self.db,
            application.id,
            ApplicationStatus.draft,
            ApplicationStatus.rejected,
            reason="Application deleted",
            notes=DELETION_REASON,
            actor=actor_id,
        )
        self._commit(application)
        TRANSITION_COUNT.labels(ApplicationStatus.draft.value, ApplicationStatus.rejected.value).inc()
        logger.info("Removed draft ACCU application id=%s actor=%s", application.id, actor_id)

    # -- internals -----------------------------------------------------

    def _transition(
        self,
        application: Application,
        target: ApplicationStatus,
        reason: str | None = None,
        notes: str | None = None,
        actor_id: str = SYSTEM_ACTOR,
        extra_values: dict[str, Any] | None = None,
        extra_events: Callable[[Application], list[dict[str, Any]]] | None = None,
    ) -> Application:
        current = application.status
        enforce_transition(current, target)

        submission = None
        if target == ApplicationStatus.submitted:
            submission = check_submission(
                application,
                self.methodologies,
                self.documents,
                block_on_missing_documents=self.settings.missing_documents_blocks_submission,
            )
        elif target == ApplicationStatus.approved:
            check_approval(application, self.methodologies, self.documents)

        values: dict[str, Any] = {**(extra_values or {}), "status": target}
        date_field = DATE_FIELDS.get(target)
        if date_field and getattr(application, date_field) is None:
            values[date_field] = now_utc()
        self._compare_and_set(application, current, values)

        ledger.append_history(
            self.db, application.id, current, target, reason=reason, notes=notes, actor=actor_id
        )
        events = status_change_events(application, current, target, reason, notes)
        if submission is not None and submission.missing_documents:
            events.append(
                missing_documents_event(
                    application, submission.submitted_documents, submission.required_documents
                )
            )
        if target == ApplicationStatus.issued:
            events.extend(issuance_events(application))
        if extra_events is not None:
            events.extend(extra_events(application))
        enqueue_notifications(self.db, events)

        self._commit_transition(application, current)
        return application

    def _validate_requirements(self, methodology_id: str, units: Any) -> MethodologyRequirements:
        requirements = self.methodologies.lookup(methodology_id)
        if requirements is None:
            raise ValidationError(
                "Invalid or inactive methodology", details={"methodology_id": methodology_id}
            )
        if units and not (1 <= Decimal(units) <= requirements.max_units):
            raise ValidationError(
                f"ACCU units must be between 1 and {requirements.max_units}",
                details={"units": str(units), "max_units": str(requirements.max_units)},
            )
        return requirements

    def _compare_and_set(
        self,
        application: Application,
        expected: ApplicationStatus,
        values: dict[str, Any],
    ) -> None:
        result = self.db.execute(
            update(Application)
            .where(Application.id == application.id, Application.status == expected)
            .values(**values, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise ConflictError(
                "Application was modified concurrently",
                details={"id": application.id, "expected_status": expected.value},
            )
        self.db.refresh(application)

    def _commit(self, result: Any) -> None:
        if self.before_commit is not None:
            try:
                self.before_commit(result)
            except Exception:
                self.db.rollback()
                raise
        self.db.commit()

    def _commit_transition(self, application: Application, previous: ApplicationStatus) -> None:
        self._commit(application)
        TRANSITION_COUNT.labels(previous.value, application.status.value).inc()
        logger.info(
            "ACCU application id=%s moved %s -> %s",
            application.id,
            previous.value,
            application.status.value,
        )
        if self.on_commit is not None:
            self.on_commit()
