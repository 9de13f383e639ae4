from accu_lifecycle.models.entities import (
    Application,
    ApplicationStatus,
    Deadline,
    IdempotencyKey,
    JobDeadLetter,
    Methodology,
    Notification,
    NotificationType,
    OutboxEvent,
    OutboxKind,
    OutboxStatus,
    Project,
    ProjectDocument,
    ProjectStatus,
    StatusHistoryEntry,
)
from accu_lifecycle.db import immutability  # noqa: F401,E402

__all__ = [
    "Application",
    "ApplicationStatus",
    "Deadline",
    "IdempotencyKey",
    "JobDeadLetter",
    "Methodology",
    "Notification",
    "NotificationType",
    "OutboxEvent",
    "OutboxKind",
    "OutboxStatus",
    "Project",
    "ProjectDocument",
    "ProjectStatus",
    "StatusHistoryEntry",
]
