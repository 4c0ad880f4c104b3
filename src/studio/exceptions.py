"""Domain level exceptions for the content pipeline."""

from __future__ import annotations

from typing import Iterable, Sequence

__all__ = [
    "AppError",
    "ValidationError",
    "InvalidFileType",
    "FileTooLarge",
    "MissingField",
    "InvalidField",
    "ValidationFailed",
    "StateConflictError",
    "InvalidState",
    "NotFoundError",
    "TransformError",
    "NotificationError",
]


class AppError(Exception):
    """Base class for application specific errors."""

    failure_reason = "internal_error"


class ValidationError(AppError):
    """User-correctable request problem; nothing has been persisted."""

    failure_reason = "invalid_request"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def as_dict(self) -> dict[str, str | None]:
        return {
            "failure_reason": self.failure_reason,
            "field": self.field,
            "message": self.message,
        }


class InvalidFileType(ValidationError):
    failure_reason = "invalid_file_type"


class FileTooLarge(ValidationError):
    failure_reason = "file_too_large"


class MissingField(ValidationError):
    failure_reason = "missing_field"


class InvalidField(ValidationError):
    failure_reason = "invalid_field"


class ValidationFailed(ValidationError):
    """Several independent validation errors reported together."""

    failure_reason = "validation_failed"

    def __init__(self, errors: Sequence[ValidationError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(error.message for error in self.errors))

    @classmethod
    def collect(cls, errors: Iterable[ValidationError]) -> ValidationError | None:
        """Return ``None``, the single error, or an aggregate of many."""
        collected = list(errors)
        if not collected:
            return None
        if len(collected) == 1:
            return collected[0]
        return cls(collected)


class StateConflictError(AppError):
    failure_reason = "state_conflict"


class InvalidState(StateConflictError):
    """Attempted transition is not legal from the item's current status."""

    failure_reason = "invalid_state"

    def __init__(self, item_id: str, action: str, current: str) -> None:
        super().__init__(f"Cannot {action} item '{item_id}' in status '{current}'")
        self.item_id = item_id
        self.action = action
        self.current = current


class NotFoundError(AppError):
    """Referenced pipeline item or asset does not exist."""

    failure_reason = "not_found"


class TransformError(AppError):
    """Media processing failed; absorbed into the owning transition."""

    failure_reason = "transform_error"


class NotificationError(AppError):
    """Outbound notification failed; always swallowed."""

    failure_reason = "notification_error"
