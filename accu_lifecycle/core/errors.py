from typing import Any


class LifecycleError(Exception):
    code = "LIFECYCLE_ERROR"
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(LifecycleError):
    code = "NOT_FOUND"
    status_code = 404


class ValidationError(LifecycleError):
    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidTransitionError(ValidationError):
    code = "INVALID_TRANSITION"

    def __init__(self, current: Any, target: Any) -> None:
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            f"Invalid status transition from {current_value} to {target_value}",
            details={"from": current_value, "to": target_value},
        )
        self.current = current
        self.target = target


class ConflictError(LifecycleError):
    code = "CONFLICT"
    status_code = 409


class IncompleteDocumentationError(LifecycleError):
    code = "INCOMPLETE_DOCUMENTATION"
    status_code = 400

    def __init__(self, required: int, submitted: int) -> None:
        super().__init__(
            "All required documents must be submitted before approval. "
            f"Required: {required}, Submitted: {submitted}",
            details={"required": required, "submitted": submitted},
        )
        self.required = required
        self.submitted = submitted


class LedgerImmutableError(RuntimeError):
    def __init__(self, entry_id: int | None, operation: str) -> None:
        super().__init__(f"Status history entry {entry_id} cannot be {operation}")
        self.entry_id = entry_id
        self.operation = operation
