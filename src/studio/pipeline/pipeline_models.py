"""Data structures for pipeline items and their lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Mapping

from ..exceptions import InvalidField, InvalidState
from ..media.media_types import MediaType


class PipelineStatus(StrEnum):
    INBOX = "inbox"
    PROCESSED = "processed"
    QUEUED = "queued"
    PUBLISHED = "published"
    REJECTED = "rejected"


class Tier(StrEnum):
    FREE = "free"
    VIP = "vip"
    ELITE = "elite"


TERMINAL_STATUSES = frozenset({PipelineStatus.PUBLISHED, PipelineStatus.REJECTED})

ALLOWED_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = {
    PipelineStatus.INBOX: frozenset({PipelineStatus.PROCESSED, PipelineStatus.REJECTED}),
    PipelineStatus.PROCESSED: frozenset({PipelineStatus.QUEUED, PipelineStatus.REJECTED}),
    PipelineStatus.QUEUED: frozenset({PipelineStatus.PUBLISHED, PipelineStatus.REJECTED}),
    PipelineStatus.PUBLISHED: frozenset(),
    PipelineStatus.REJECTED: frozenset(),
}

# fields callers may change through approve/update
EDITABLE_FIELDS = frozenset({"caption", "tags", "category", "tier", "scheduled_at"})

DEFAULT_REJECT_REASON = "Rejected by reviewer"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO strings / datetimes into aware UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidField(f"Invalid timestamp '{value}'", field="scheduledAt") from exc
    else:
        raise InvalidField(f"Invalid timestamp '{value!r}'", field="scheduledAt")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def normalize_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    return [str(tag).strip() for tag in parts if str(tag).strip()]


def parse_tier(value: Any) -> Tier:
    try:
        return Tier(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidField(f"Unknown tier '{value}'", field="tier") from exc


@dataclass(slots=True)
class Checks:
    file_type_valid: bool = False
    file_size_valid: bool = False
    exif_stripped: bool = False
    compressed: bool = False
    thumbnail_generated: bool = False

    def to_document(self) -> dict[str, bool]:
        return {
            "fileTypeValid": self.file_type_valid,
            "fileSizeValid": self.file_size_valid,
            "exifStripped": self.exif_stripped,
            "compressed": self.compressed,
            "thumbnailGenerated": self.thumbnail_generated,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any] | None) -> "Checks":
        data = data or {}
        return cls(
            file_type_valid=bool(data.get("fileTypeValid", False)),
            file_size_valid=bool(data.get("fileSizeValid", False)),
            exif_stripped=bool(data.get("exifStripped", False)),
            compressed=bool(data.get("compressed", False)),
            thumbnail_generated=bool(data.get("thumbnailGenerated", False)),
        )


@dataclass(slots=True)
class PipelineItem:
    """One media upload tracked from ingest to publication or rejection."""

    id: str
    creator_id: str
    filename: str
    media_type: MediaType
    file_extension: str
    file_size: int
    stored_asset_key: str
    created_at: datetime
    status: PipelineStatus = PipelineStatus.INBOX
    checks: Checks = field(default_factory=Checks)
    processing: dict[str, Any] | None = None
    caption: str = ""
    tags: list[str] = field(default_factory=list)
    category: str = ""
    tier: Tier = Tier.FREE
    source: str = "upload"
    scheduled_at: datetime | None = None
    reject_reason: str | None = None
    content_key: str | None = None
    processed_at: datetime | None = None
    queued_at: datetime | None = None
    published_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.status is PipelineStatus.PUBLISHED and not self.content_key:
            raise ValueError(f"Published item '{self.id}' must carry a content key")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def title(self) -> str:
        return self.caption.strip() or self.filename

    def ensure_status(self, action: str, allowed: frozenset[PipelineStatus] | set[PipelineStatus]) -> None:
        if self.status not in allowed:
            raise InvalidState(self.id, action, self.status.value)

    def transition(self, target: PipelineStatus, now: datetime, *, action: str) -> None:
        """Move to ``target`` stamping the matching timestamp once."""
        if target is PipelineStatus.PUBLISHED:
            raise ValueError("Use mark_published to publish an item")
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidState(self.id, action, self.status.value)
        if target is PipelineStatus.PROCESSED and self.processed_at is None:
            self.processed_at = now
        if target is PipelineStatus.QUEUED and self.queued_at is None:
            self.queued_at = now
        self.status = target

    def mark_processed(self, now: datetime) -> None:
        """Record a completed transform without necessarily changing status."""
        if self.processed_at is None:
            self.processed_at = now
        if self.status is PipelineStatus.INBOX:
            self.status = PipelineStatus.PROCESSED

    def mark_published(self, content_key: str, now: datetime) -> None:
        if PipelineStatus.PUBLISHED not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidState(self.id, "publish", self.status.value)
        if not content_key:
            raise ValueError("content_key is required to publish")
        self.content_key = content_key
        if self.published_at is None:
            self.published_at = now
        self.status = PipelineStatus.PUBLISHED

    def reject(self, reason: str | None, now: datetime) -> None:
        self.transition(PipelineStatus.REJECTED, now, action="reject")
        self.reject_reason = (reason or "").strip() or DEFAULT_REJECT_REASON

    def apply_metadata(self, fields: Mapping[str, Any]) -> list[str]:
        """Apply caption/tags/category/tier/scheduled_at; returns changed names."""
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise InvalidField(
                f"Unsupported fields: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )
        changed: list[str] = []
        if "caption" in fields:
            self.caption = str(fields["caption"] or "")
            changed.append("caption")
        if "tags" in fields:
            self.tags = normalize_tags(fields["tags"])
            changed.append("tags")
        if "category" in fields:
            self.category = str(fields["category"] or "")
            changed.append("category")
        if "tier" in fields and fields["tier"] is not None:
            self.tier = parse_tier(fields["tier"])
            changed.append("tier")
        if "scheduled_at" in fields:
            self.scheduled_at = parse_timestamp(fields["scheduled_at"])
            changed.append("scheduled_at")
        return changed

    def is_due(self, now: datetime) -> bool:
        return (
            self.status is PipelineStatus.QUEUED
            and self.scheduled_at is not None
            and self.scheduled_at <= now
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "creatorId": self.creator_id,
            "status": self.status.value,
            "filename": self.filename,
            "mediaType": self.media_type.value,
            "fileExtension": self.file_extension,
            "fileSize": self.file_size,
            "storedAssetKey": self.stored_asset_key,
            "checks": self.checks.to_document(),
            "processing": self.processing,
            "caption": self.caption,
            "tags": list(self.tags),
            "category": self.category,
            "tier": self.tier.value,
            "source": self.source,
            "scheduledAt": format_timestamp(self.scheduled_at),
            "rejectReason": self.reject_reason,
            "contentKey": self.content_key,
            "createdAt": format_timestamp(self.created_at),
            "processedAt": format_timestamp(self.processed_at),
            "queuedAt": format_timestamp(self.queued_at),
            "publishedAt": format_timestamp(self.published_at),
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "PipelineItem":
        created_at = parse_timestamp(data.get("createdAt")) or utcnow()
        return cls(
            id=str(data["id"]),
            creator_id=str(data.get("creatorId") or "default"),
            status=PipelineStatus(data.get("status", PipelineStatus.INBOX.value)),
            filename=str(data.get("filename") or ""),
            media_type=MediaType(data.get("mediaType", MediaType.OTHER.value)),
            file_extension=str(data.get("fileExtension") or ""),
            file_size=int(data.get("fileSize") or 0),
            stored_asset_key=str(data.get("storedAssetKey") or ""),
            checks=Checks.from_document(data.get("checks")),
            processing=data.get("processing"),
            caption=str(data.get("caption") or ""),
            tags=normalize_tags(data.get("tags")),
            category=str(data.get("category") or ""),
            tier=parse_tier(data.get("tier") or Tier.FREE.value),
            source=str(data.get("source") or "upload"),
            scheduled_at=parse_timestamp(data.get("scheduledAt")),
            reject_reason=data.get("rejectReason"),
            content_key=data.get("contentKey"),
            created_at=created_at,
            processed_at=parse_timestamp(data.get("processedAt")),
            queued_at=parse_timestamp(data.get("queuedAt")),
            published_at=parse_timestamp(data.get("publishedAt")),
        )


@dataclass(slots=True)
class BatchResult:
    """Outcome of a batch operation; one bad item never fails the batch."""

    succeeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.succeeded)

    def to_document(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "succeeded": list(self.succeeded),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }


@dataclass(slots=True)
class ItemListing:
    items: list[PipelineItem]
    counts: dict[str, int] | None = None

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            "items": [item.to_document() for item in self.items],
            "total": len(self.items),
        }
        if self.counts is not None:
            document["counts"] = dict(self.counts)
        return document
