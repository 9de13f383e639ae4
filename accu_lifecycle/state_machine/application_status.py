from types import MappingProxyType

from accu_lifecycle.core.errors import InvalidTransitionError
from accu_lifecycle.models.entities import ApplicationStatus


_ALLOWED = MappingProxyType(
    {
        ApplicationStatus.draft: frozenset({ApplicationStatus.submitted, ApplicationStatus.rejected}),
        ApplicationStatus.submitted: frozenset({ApplicationStatus.under_review, ApplicationStatus.rejected}),
        ApplicationStatus.under_review: frozenset({ApplicationStatus.approved, ApplicationStatus.rejected}),
        ApplicationStatus.approved: frozenset({ApplicationStatus.issued}),
        ApplicationStatus.rejected: frozenset(),
        ApplicationStatus.issued: frozenset(),
    }
)

TERMINAL_STATUSES = frozenset(status for status, targets in _ALLOWED.items() if not targets)

if set(_ALLOWED) != set(ApplicationStatus):
    raise RuntimeError("Transition table must cover every application status")


def allowed_targets(current: ApplicationStatus) -> frozenset[ApplicationStatus]:
    return _ALLOWED[current]


def can_transition(current: ApplicationStatus, target: ApplicationStatus) -> bool:
    return target in _ALLOWED[current]


def enforce_transition(current: ApplicationStatus, target: ApplicationStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
