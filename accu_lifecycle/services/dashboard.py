from collections import Counter
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from accu_lifecycle.core.time import days_between, now_utc
from accu_lifecycle.models.entities import Application, ApplicationStatus
from accu_lifecycle.services.progress import (
    document_completion,
    estimate_progress,
    estimated_days_remaining,
    is_overdue,
)
from accu_lifecycle.services.registry import DeadlineScheduler, DocumentStore, MethodologyRegistry

PENDING_STATUSES = frozenset({ApplicationStatus.submitted, ApplicationStatus.under_review})
REVIEWED_STATUSES = frozenset({ApplicationStatus.approved, ApplicationStatus.rejected})
RECENT_LIMIT = 5


def _scoped_applications(db: Session, tenant_id: str | None) -> list[Application]:
    query = db.query(Application)
    if tenant_id:
        query = query.filter(Application.tenant_id == tenant_id)
    return query.all()


def _review_period(methodologies: MethodologyRegistry, methodology_id: str, cache: dict) -> int | None:
    if methodology_id not in cache:
        requirements = methodologies.lookup(methodology_id)
        cache[methodology_id] = requirements.review_period_days if requirements else None
    return cache[methodology_id]


def compute_stats(
    applications: list[Application],
    methodologies: MethodologyRegistry,
    now: datetime | None = None,
    default_review_period_days: int | None = None,
) -> dict:
    now = now or now_utc()
    total = len(applications)

    by_status = {status.value: 0 for status in ApplicationStatus}
    by_status.update(Counter(app.status.value for app in applications))
    by_methodology = dict(Counter(app.methodology_id for app in applications))

    total_units = sum((Decimal(app.units) for app in applications), Decimal("0"))
    average_units = total_units / total if total else Decimal("0")

    processed = [
        days_between(app.submission_date, app.approval_date)
        for app in applications
        if app.status == ApplicationStatus.approved and app.submission_date and app.approval_date
    ]
    average_processing_time = sum(processed) / len(processed) if processed else 0.0

    reviewed = [app for app in applications if app.status in REVIEWED_STATUSES]
    approved = sum(1 for app in reviewed if app.status == ApplicationStatus.approved)
    success_rate = approved / len(reviewed) * 100 if reviewed else 0.0

    periods: dict[str, int | None] = {}
    overdue = 0
    for app in applications:
        if app.status != ApplicationStatus.submitted:
            continue
        period = _review_period(methodologies, app.methodology_id, periods)
        if is_overdue(app, period if period is not None else default_review_period_days, now):
            overdue += 1

    return {
        "total": total,
        "by_status": by_status,
        "by_methodology": by_methodology,
        "average_units": round(float(average_units), 2),
        "total_units": round(float(total_units), 2),
        "average_processing_time": round(average_processing_time, 2),
        "success_rate": round(success_rate, 2),
        "pending": sum(1 for app in applications if app.status in PENDING_STATUSES),
        "overdue": overdue,
    }


def build_stats(
    db: Session,
    tenant_id: str | None,
    methodologies: MethodologyRegistry,
    default_review_period_days: int | None = None,
) -> dict:
    return compute_stats(
        _scoped_applications(db, tenant_id),
        methodologies,
        default_review_period_days=default_review_period_days,
    )


def application_analytics(
    application: Application,
    methodologies: MethodologyRegistry,
    documents: DocumentStore,
    deadlines: DeadlineScheduler,
    now: datetime | None = None,
    default_review_period_days: int | None = None,
) -> dict:
    now = now or now_utc()
    requirements = methodologies.lookup(application.methodology_id)
    required = requirements.required_documents_count if requirements else 0
    period = requirements.review_period_days if requirements else default_review_period_days
    submitted = documents.count(application.project_id)
    next_deadline = deadlines.next_deadline(application.project_id, after=now)
    return {
        "id": application.id,
        "project_name": application.project.name if application.project else None,
        "status": application.status,
        "progress": estimate_progress(application.status, submitted, required),
        "days_until_next_deadline": days_between(now, next_deadline) if next_deadline else 0,
        "is_overdue": is_overdue(application, period, now),
        "document_completion": document_completion(submitted, required),
        "required_documents_count": required,
        "submitted_documents_count": submitted,
        "application_age_in_days": days_between(application.created_at, now),
        "estimated_days_remaining": estimated_days_remaining(application.status),
    }


def build_dashboard(
    db: Session,
    tenant_id: str | None,
    methodologies: MethodologyRegistry,
    documents: DocumentStore,
    deadlines: DeadlineScheduler,
    default_review_period_days: int | None = None,
) -> dict:
    applications = _scoped_applications(db, tenant_id)
    now = now_utc()
    dashboard = compute_stats(applications, methodologies, now, default_review_period_days)

    recent = sorted(applications, key=lambda app: app.updated_at, reverse=True)[:RECENT_LIMIT]
    dashboard["recent_applications"] = [
        application_analytics(app, methodologies, documents, deadlines, now, default_review_period_days)
        for app in recent
    ]
    dashboard["upcoming_deadlines"] = deadlines.upcoming(tenant_id)
    return dashboard
