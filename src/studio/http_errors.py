"""Translate domain exceptions into HTTP error responses."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any

from fastapi import HTTPException, status

from .exceptions import (
    AppError,
    FileTooLarge,
    InvalidFileType,
    NotFoundError,
    StateConflictError,
    ValidationError,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


class FailureReason(StrEnum):
    """Failure reasons enumerated in the pipeline error contract."""

    INVALID_REQUEST = "invalid_request"
    INVALID_FILE_TYPE = "invalid_file_type"
    FILE_TOO_LARGE = "file_too_large"
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    VALIDATION_FAILED = "validation_failed"
    INVALID_STATE = "invalid_state"
    STATE_CONFLICT = "state_conflict"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


def _reason(exc: AppError) -> str:
    try:
        return FailureReason(exc.failure_reason).value
    except ValueError:
        return FailureReason.INTERNAL_ERROR.value


def status_code_for(exc: AppError) -> int:
    if isinstance(exc, InvalidFileType):
        return status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
    if isinstance(exc, FileTooLarge):
        return status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, StateConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def to_http_exception(exc: AppError) -> HTTPException:
    """Build the ``{"status": "error", "failure_reason": ...}`` response."""
    detail: dict[str, Any] = {
        "status": "error",
        "failure_reason": _reason(exc),
        "message": str(exc),
    }
    if isinstance(exc, ValidationFailed):
        detail["errors"] = [error.as_dict() for error in exc.errors]
    elif isinstance(exc, ValidationError) and exc.field:
        detail["field"] = exc.field
    code = status_code_for(exc)
    if code >= 500:
        logger.error("http.internal_error", extra={"error": str(exc)})
    return HTTPException(status_code=code, detail=detail)
