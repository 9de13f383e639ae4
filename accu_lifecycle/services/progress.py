from datetime import datetime
from types import MappingProxyType

from accu_lifecycle.core.time import days_between, now_utc, to_naive_utc
from accu_lifecycle.models.entities import Application, ApplicationStatus

DEFAULT_REVIEW_PERIOD_DAYS = 90
DOCUMENT_WEIGHT = 20

STATUS_BASELINE = MappingProxyType(
    {
        ApplicationStatus.draft: 10,
        ApplicationStatus.submitted: 40,
        ApplicationStatus.under_review: 70,
        ApplicationStatus.approved: 90,
        ApplicationStatus.issued: 100,
        ApplicationStatus.rejected: 0,
    }
)

# Fixed lookup, not derived from historical processing times.
ESTIMATED_DAYS_REMAINING = MappingProxyType(
    {
        ApplicationStatus.draft: 30,
        ApplicationStatus.submitted: 60,
        ApplicationStatus.under_review: 30,
        ApplicationStatus.approved: 0,
        ApplicationStatus.rejected: 0,
        ApplicationStatus.issued: 0,
    }
)


def estimate_progress(status: ApplicationStatus, submitted_documents: int, required_documents: int) -> float:
    progress = float(STATUS_BASELINE[status])
    if required_documents > 0:
        progress += min(submitted_documents / required_documents, 1) * DOCUMENT_WEIGHT
    return min(100.0, max(0.0, progress))


def document_completion(submitted_documents: int, required_documents: int) -> float:
    if required_documents <= 0:
        return 0.0
    return min(100.0, submitted_documents / required_documents * 100)


def is_overdue(
    application: Application,
    review_period_days: int | None = None,
    now: datetime | None = None,
) -> bool:
    if application.status != ApplicationStatus.submitted or application.submission_date is None:
        return False
    period = DEFAULT_REVIEW_PERIOD_DAYS if review_period_days is None else review_period_days
    return days_between(application.submission_date, now or now_utc()) > period


def estimated_days_remaining(status: ApplicationStatus) -> int:
    return ESTIMATED_DAYS_REMAINING[status]


def status_entered_at(application: Application) -> datetime:
    if application.status == ApplicationStatus.draft:
        return application.created_at
    if application.status in {ApplicationStatus.submitted, ApplicationStatus.under_review}:
        return application.submission_date or application.updated_at
    if application.status == ApplicationStatus.approved:
        return application.approval_date or application.updated_at
    if application.status == ApplicationStatus.issued:
        return application.issued_date or application.updated_at
    return application.updated_at


def days_in_current_status(application: Application, now: datetime | None = None) -> int:
    elapsed = to_naive_utc(now or now_utc()) - status_entered_at(application)
    return max(0, elapsed.days)
