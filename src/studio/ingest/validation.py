"""Upload validation utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import FileTooLarge, InvalidField, InvalidFileType, MissingField, ValidationError, ValidationFailed
from ..media.media_types import classify, file_extension
from ..settings.settings_models import CreatorSettings
from .ingest_models import IngestRequest, UploadValidationResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestValidator:
    """Validate uploads against a creator's allow-list and size ceilings.

    The extension and size checks run independently; when both fail the
    caller receives a :class:`ValidationFailed` carrying both errors.
    """

    def validate(self, request: IngestRequest, settings: CreatorSettings) -> UploadValidationResult:
        filename = (request.filename or "").strip()
        if not filename:
            raise MissingField("filename is required", field="filename")

        errors: list[ValidationError] = []
        extension = file_extension(filename)
        media_type = classify(extension)
        limit = settings.max_bytes_for(media_type)

        if not extension or extension not in settings.allowed_extensions:
            errors.append(
                InvalidFileType(
                    f"File type '.{extension}' is not allowed",
                    field="filename",
                )
            )

        size = self._resolve_size(request)
        if size is None:
            errors.append(MissingField("fileSize is required without a payload", field="fileSize"))
        elif size < 0:
            errors.append(InvalidField("fileSize must be non-negative", field="fileSize"))
        elif size > limit:
            errors.append(
                FileTooLarge(
                    f"{media_type.value} of {size} bytes exceeds the {limit} byte limit",
                    field="fileSize",
                )
            )

        failure = ValidationFailed.collect(errors)
        if failure is not None:
            logger.warning(
                "ingest.upload.rejected",
                extra={
                    "upload_name": filename,
                    "creator_id": settings.creator_id,
                    "reasons": [error.failure_reason for error in errors],
                },
            )
            raise failure

        result = UploadValidationResult(
            filename=filename,
            extension=extension,
            media_type=media_type,
            size_bytes=size or 0,
            limit_bytes=limit,
        )
        logger.info(
            "ingest.upload.validated",
            extra={
                "upload_name": result.filename,
                "size_bytes": result.size_bytes,
                "media_type": result.media_type.value,
            },
        )
        return result

    @staticmethod
    def _resolve_size(request: IngestRequest) -> int | None:
        """Return the larger of the declared size and the actual payload length."""
        if request.payload is not None:
            actual = len(request.payload)
            if request.size_bytes is not None:
                return max(actual, request.size_bytes)
            return actual
        return request.size_bytes
