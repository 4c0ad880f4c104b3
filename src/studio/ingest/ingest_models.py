"""Data structures for the ingest step."""

from dataclasses import dataclass, field
from datetime import datetime

from ..media.media_types import MediaType


@dataclass(slots=True)
class IngestRequest:
    """An upload as received from the HTTP surface or the chat bot."""

    filename: str
    size_bytes: int | None = None
    payload: bytes | None = None
    creator_id: str | None = None
    caption: str = ""
    tags: list[str] = field(default_factory=list)
    category: str = ""
    tier: str | None = None
    source: str = "upload"
    scheduled_at: datetime | str | None = None


@dataclass(slots=True)
class UploadValidationResult:
    """Outcome of validating an upload against the creator's limits."""

    filename: str
    extension: str
    media_type: MediaType
    size_bytes: int
    limit_bytes: int
