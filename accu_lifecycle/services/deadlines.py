from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from accu_lifecycle.core.time import now_utc, to_naive_utc
from accu_lifecycle.models.entities import Deadline, Project


class SqlDeadlineScheduler:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create_deadline(
        self,
        project_id: str,
        title: str,
        due_at: datetime,
        description: str = "",
        application_id: str | None = None,
        priority: str = "high",
        source_event_id: str | None = None,
    ) -> int:
        if source_event_id:
            existing = (
                self.db.query(Deadline).filter(Deadline.source_event_id == source_event_id).one_or_none()
            )
            if existing:
                return existing.id

        deadline = Deadline(
            project_id=project_id,
            application_id=application_id,
            title=title,
            description=description,
            priority=priority,
            due_at=to_naive_utc(due_at),
            source_event_id=source_event_id,
        )
        self.db.add(deadline)
        self.db.flush()
        return deadline.id

    def next_deadline(self, project_id: str, after: datetime | None = None) -> datetime | None:
        row = (
            self.db.query(Deadline)
            .filter(Deadline.project_id == project_id, Deadline.due_at >= (after or now_utc()))
            .order_by(Deadline.due_at.asc())
            .first()
        )
        return row.due_at if row else None

    def for_project(self, project_id: str) -> list[Deadline]:
        return (
            self.db.query(Deadline)
            .filter(Deadline.project_id == project_id)
            .order_by(Deadline.due_at.asc())
            .all()
        )

    def upcoming(self, tenant_id: str | None = None, within_days: int = 30, limit: int = 10) -> list[Deadline]:
        start = now_utc()
        query = self.db.query(Deadline).filter(
            Deadline.due_at >= start, Deadline.due_at <= start + timedelta(days=within_days)
        )
        if tenant_id:
            query = query.join(Project, Project.id == Deadline.project_id).filter(
                Project.tenant_id == tenant_id
            )
        return query.order_by(Deadline.due_at.asc()).limit(limit).all()
