from sqlalchemy import func
from sqlalchemy.orm import Session

from accu_lifecycle.core.auth import SYSTEM_ACTOR
from accu_lifecycle.core.time import now_utc
from accu_lifecycle.models.entities import ApplicationStatus, StatusHistoryEntry


def append_history(
    db: Session,
    application_id: str,
    from_status: ApplicationStatus | None,
    to_status: ApplicationStatus,
    reason: str | None = None,
    notes: str | None = None,
    actor: str = SYSTEM_ACTOR,
) -> StatusHistoryEntry:
    # Timestamps never go backwards within one application's ledger.
    latest = (
        db.query(func.max(StatusHistoryEntry.created_at))
        .filter(StatusHistoryEntry.application_id == application_id)
        .scalar()
    )
    timestamp = now_utc()
    if latest is not None and latest > timestamp:
        timestamp = latest

    entry = StatusHistoryEntry(
        application_id=application_id,
        from_status=from_status,
        to_status=to_status,
        reason=reason or "",
        notes=notes or "",
        actor=actor or SYSTEM_ACTOR,
        created_at=timestamp,
    )
    db.add(entry)
    db.flush()
    return entry


def get_history(db: Session, application_id: str) -> list[StatusHistoryEntry]:
    return (
        db.query(StatusHistoryEntry)
        .filter(StatusHistoryEntry.application_id == application_id)
        .order_by(StatusHistoryEntry.created_at.asc(), StatusHistoryEntry.id.asc())
        .all()
    )
