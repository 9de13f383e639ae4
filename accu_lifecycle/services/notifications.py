import logging
from typing import Any

import httpx
from jinja2 import Template
from sqlalchemy.orm import Session
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from accu_lifecycle.core.config import Settings, get_settings
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import (
    Application,
    ApplicationStatus,
    Deadline,
    Notification,
    NotificationType,
)

logger = logging.getLogger(__name__)

NOTIFICATION_SOURCE = "accu-system"

STATUS_MESSAGES = {
    ApplicationStatus.draft: (
        NotificationType.info,
        "ACCU Application Created",
        "A new ACCU application has been created and is in draft status.",
    ),
    ApplicationStatus.submitted: (
        NotificationType.success,
        "ACCU Application Submitted",
        "Your ACCU application has been submitted for review.",
    ),
    ApplicationStatus.under_review: (
        NotificationType.info,
        "ACCU Application Under Review",
        "Your ACCU application is now under review by our team.",
    ),
    ApplicationStatus.approved: (
        NotificationType.success,
        "ACCU Application Approved",
        "Your ACCU application has been approved!",
    ),
    ApplicationStatus.rejected: (
        NotificationType.error,
        "ACCU Application Rejected",
        "Your ACCU application has been rejected.",
    ),
    ApplicationStatus.issued: (
        NotificationType.success,
        "ACCU Units Issued",
        "Your ACCU units have been issued successfully.",
    ),
}

APPROVAL_TEMPLATE = Template(
    "Your ACCU application has been approved for {{ approved }} units"
    "{% if approved != requested %} (originally requested {{ requested }} units){% endif %}."
)
REJECTION_TEMPLATE = Template(
    "Your ACCU application has been rejected.{% if reason %} Reason: {{ reason }}{% endif %}"
)
MISSING_DOCUMENTS_TEMPLATE = Template(
    "Your ACCU application is missing {{ missing }} required document(s) out of {{ required }}. "
    "Please upload the missing documents to proceed with the review."
)
DEADLINE_REMINDER_TEMPLATE = Template(
    'Your ACCU application "{{ project_name }}" has {{ days }} day(s) remaining until '
    'the deadline "{{ title }}".'
)


def _project_name(application: Application) -> str:
    return application.project.name if application.project else "Unknown Project"


def _format_units(value: Any) -> str:
    return f"{float(value):g}"


def _event(
    name: str,
    application: Application,
    kind: NotificationType,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
    to_owner: bool = True,
) -> dict[str, Any]:
    project = application.project
    return {
        "name": name,
        "type": kind.value,
        "title": title,
        "message": message,
        "user_id": project.owner_id if (to_owner and project) else None,
        "tenant_id": application.tenant_id,
        "project_id": application.project_id,
        "application_id": application.id,
        "metadata": metadata or {},
    }


def status_change_events(
    application: Application,
    old_status: ApplicationStatus | None,
    new_status: ApplicationStatus,
    reason: str | None = None,
    notes: str | None = None,
) -> list[dict[str, Any]]:
    kind, title, message = STATUS_MESSAGES[new_status]
    if reason:
        message += f" Reason: {reason}"
    if notes:
        message += f" Notes: {notes}"

    events = [
        _event(
            "status_change",
            application,
            kind,
            title,
            message,
            {
                "old_status": old_status.value if old_status else None,
                "new_status": new_status.value,
                "reason": reason,
                "notes": notes,
            },
        )
    ]
    if new_status in {ApplicationStatus.approved, ApplicationStatus.rejected}:
        events.append(
            _event(
                "admin_status_update",
                application,
                NotificationType.info,
                "ACCU Application Status Update",
                f"ACCU Application {application.id} status changed to {new_status.value}",
                {"new_status": new_status.value, "reason": reason, "is_admin_notification": True},
                to_owner=False,
            )
        )
    return events


def missing_documents_event(application: Application, submitted: int, required: int) -> dict[str, Any]:
    missing = max(0, required - submitted)
    return _event(
        "missing_documents",
        application,
        NotificationType.warning,
        "Missing Required Documents",
        MISSING_DOCUMENTS_TEMPLATE.render(missing=missing, required=required),
        {
            "missing_documents_count": missing,
            "required_documents_count": required,
            "submitted_documents_count": submitted,
        },
    )


def submission_confirmation_event(application: Application, submission_notes: str | None = None) -> dict[str, Any]:
    return _event(
        "submission_confirmation",
        application,
        NotificationType.success,
        "ACCU Application Submitted",
        f'Your ACCU application "{_project_name(application)}" has been successfully submitted for review.',
        {
            "submission_date": application.submission_date.isoformat() if application.submission_date else None,
            "units": _format_units(application.units),
            "methodology_id": application.methodology_id,
            "submission_notes": submission_notes,
        },
    )


def approval_events(
    application: Application, requested_units: Any, reviewer_comments: str | None = None
) -> list[dict[str, Any]]:
    approved = _format_units(application.units)
    requested = _format_units(requested_units)
    return [
        _event(
            "approval",
            application,
            NotificationType.success,
            "ACCU Application Approved",
            APPROVAL_TEMPLATE.render(approved=approved, requested=requested),
            {
                "approved_units": approved,
                "originally_requested_units": requested,
                "reviewer_comments": reviewer_comments,
                "approval_date": application.approval_date.isoformat() if application.approval_date else None,
            },
        ),
        _event(
            "next_steps",
            application,
            NotificationType.info,
            "Next Steps for ACCU Application",
            "Your application has been approved. The next step is to await the issuance of ACCU units.",
            {"next_step": "await_issuance", "estimated_issuance_time": "30 days"},
        ),
    ]


def rejection_events(
    application: Application, reason: str | None = None, reviewer_comments: str | None = None
) -> list[dict[str, Any]]:
    return [
        _event(
            "rejection",
            application,
            NotificationType.error,
            "ACCU Application Rejected",
            REJECTION_TEMPLATE.render(reason=reason),
            {
                "rejection_reason": reason,
                "reviewer_comments": reviewer_comments,
                "rejection_date": application.approval_date.isoformat() if application.approval_date else None,
            },
        ),
        _event(
            "resubmission_guidance",
            application,
            NotificationType.info,
            "Resubmission Guidance",
            "You may resubmit a revised ACCU application after addressing the rejection reasons. "
            "Please review the feedback and contact support if needed.",
            {"can_resubmit": True, "resubmission_guidelines": "Contact support for resubmission process"},
        ),
    ]


def issuance_events(application: Application) -> list[dict[str, Any]]:
    units = _format_units(application.units)
    return [
        _event(
            "issuance",
            application,
            NotificationType.success,
            "ACCU Units Issued",
            f'Congratulations! {units} ACCU units have been issued for your application "{_project_name(application)}".',
            {
                "issued_units": units,
                "issuance_date": application.issued_date.isoformat() if application.issued_date else None,
                "ser_reference": application.ser_reference,
            },
        ),
        _event(
            "certificate_information",
            application,
            NotificationType.info,
            "ACCU Certificate Information",
            "Your ACCU units have been issued. Certificate details will be available in your account "
            "within 24-48 hours.",
            {"certificate_available_in": "24-48 hours", "ser_reference": application.ser_reference},
        ),
    ]


def deadline_reminder_event(application: Application, deadline: Deadline, days_until: int) -> dict[str, Any]:
    if days_until <= 7:
        urgency = NotificationType.error
    elif days_until <= 14:
        urgency = NotificationType.warning
    else:
        urgency = NotificationType.info
    return _event(
        "deadline_reminder",
        application,
        urgency,
        "ACCU Application Deadline Reminder",
        DEADLINE_REMINDER_TEMPLATE.render(
            project_name=_project_name(application), days=days_until, title=deadline.title
        ),
        {"days_until_deadline": days_until, "deadline_id": deadline.id, "urgency_level": urgency.value},
    )


class WebhookDeliveryError(RuntimeError):
    pass


class NotificationDispatcher:
    def __init__(self, db: Session, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    def send(self, event: dict[str, Any], source_event_id: str | None = None) -> Notification:
        if source_event_id:
            existing = (
                self.db.query(Notification)
                .filter(Notification.source_event_id == source_event_id)
                .one_or_none()
            )
            if existing:
                return existing

        notification = Notification(
            type=NotificationType(event["type"]),
            title=event["title"],
            message=event["message"],
            user_id=event.get("user_id"),
            tenant_id=event.get("tenant_id"),
            project_id=event.get("project_id"),
            application_id=event.get("application_id"),
            metadata_json={
                **(event.get("metadata") or {}),
                "name": event.get("name"),
                "created_by": NOTIFICATION_SOURCE,
                "timestamp": now_utc().isoformat(),
            },
            source_event_id=source_event_id,
        )
        self.db.add(notification)
        self.db.flush()

        if self.settings.notification_webhook_enabled:
            self._post_webhook({**event, "notification_id": notification.id})
        return notification

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(WebhookDeliveryError),
        reraise=True,
    )
    def _post_webhook(self, payload: dict[str, Any]) -> None:
        try:
            response = httpx.post(
                self.settings.notification_webhook_url,
                json=payload,
                timeout=self.settings.notification_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise WebhookDeliveryError(str(exc)) from exc
        if response.status_code >= 500:
            raise WebhookDeliveryError(f"Webhook returned {response.status_code}")
        if response.status_code >= 400:
            logger.warning(
                "Notification webhook rejected payload status=%s body=%s",
                response.status_code,
                response.text[:200],
            )
