from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy import func
from sqlalchemy.orm import Session

from accu_lifecycle.models.entities import Deadline, Methodology, Project, ProjectDocument


@dataclass(frozen=True)
class MethodologyRequirements:
    methodology_id: str
    name: str
    max_units: Decimal
    required_documents_count: int
    review_period_days: int

    def as_dict(self) -> dict:
        return {
            "methodology_id": self.methodology_id,
            "name": self.name,
            "max_units": str(self.max_units),
            "required_documents_count": self.required_documents_count,
            "review_period_days": self.review_period_days,
        }


class MethodologyRegistry(Protocol):
    def lookup(self, methodology_id: str) -> MethodologyRequirements | None: ...


class ProjectStore(Protocol):
    def get(self, project_id: str) -> Project | None: ...


class DocumentStore(Protocol):
    def count(self, project_id: str) -> int: ...

    def for_project(self, project_id: str) -> list[ProjectDocument]: ...


class DeadlineScheduler(Protocol):
    def create_deadline(
        self,
        project_id: str,
        title: str,
        due_at: datetime,
        description: str = "",
        application_id: str | None = None,
        priority: str = "high",
        source_event_id: str | None = None,
    ) -> int: ...

    def next_deadline(self, project_id: str, after: datetime | None = None) -> datetime | None: ...

    def for_project(self, project_id: str) -> list[Deadline]: ...

    def upcoming(
        self, tenant_id: str | None = None, within_days: int = 30, limit: int = 10
    ) -> list[Deadline]: ...


class SqlMethodologyRegistry:
    def __init__(self, db: Session) -> None:
        self.db = db

    def lookup(self, methodology_id: str) -> MethodologyRequirements | None:
        row = (
            self.db.query(Methodology)
            .filter(Methodology.id == methodology_id, Methodology.active.is_(True))
            .one_or_none()
        )
        if row is None:
            return None
        return MethodologyRequirements(
            methodology_id=row.id,
            name=row.name,
            max_units=Decimal(row.max_units),
            required_documents_count=row.required_documents_count,
            review_period_days=row.review_period_days,
        )


class SqlProjectStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, project_id: str) -> Project | None:
        return self.db.query(Project).filter(Project.id == project_id).one_or_none()


class SqlDocumentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def count(self, project_id: str) -> int:
        return (
            self.db.query(func.count(ProjectDocument.id))
            .filter(ProjectDocument.project_id == project_id)
            .scalar()
            or 0
        )

    def for_project(self, project_id: str) -> list[ProjectDocument]:
        return (
            self.db.query(ProjectDocument)
            .filter(ProjectDocument.project_id == project_id)
            .order_by(ProjectDocument.created_at.desc(), ProjectDocument.id.desc())
            .all()
        )
