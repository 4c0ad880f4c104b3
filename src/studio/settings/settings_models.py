"""Per-creator pipeline configuration."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from ..config import PipelineLimits
from ..exceptions import InvalidField
from ..media.media_types import MediaType

DEFAULT_CREATOR_ID = "default"
SUPPORTED_OUTPUT_FORMATS = frozenset({"JPEG", "PNG", "WEBP"})


@dataclass(frozen=True, slots=True)
class TransformOptions:
    strip_metadata: bool = True
    compress: bool = True
    generate_thumbnail: bool = True
    watermark: bool = False
    watermark_text: str = ""
    output_format: str | None = None


@dataclass(frozen=True, slots=True)
class CreatorSettings:
    creator_id: str
    allowed_extensions: tuple[str, ...]
    image_max_bytes: int
    video_max_bytes: int
    other_max_bytes: int
    strip_metadata: bool = True
    compress: bool = True
    generate_thumbnail: bool = True
    auto_approve: bool = False
    watermark: bool = False
    watermark_text: str = ""
    output_format: str | None = None

    @classmethod
    def defaults(cls, creator_id: str, limits: PipelineLimits) -> "CreatorSettings":
        return cls(
            creator_id=creator_id,
            allowed_extensions=tuple(ext.lower().lstrip(".") for ext in limits.allowed_extensions),
            image_max_bytes=limits.image_max_bytes,
            video_max_bytes=limits.video_max_bytes,
            other_max_bytes=limits.other_max_bytes,
        )

    def max_bytes_for(self, media_type: MediaType) -> int:
        if media_type is MediaType.IMAGE:
            return self.image_max_bytes
        if media_type is MediaType.VIDEO:
            return self.video_max_bytes
        return self.other_max_bytes

    def transform_options(self) -> TransformOptions:
        return TransformOptions(
            strip_metadata=self.strip_metadata,
            compress=self.compress,
            generate_thumbnail=self.generate_thumbnail,
            watermark=self.watermark,
            watermark_text=self.watermark_text,
            output_format=self.output_format,
        )

    def merged(self, overrides: Mapping[str, Any]) -> "CreatorSettings":
        """Return a copy with document-style overrides applied."""
        changes: dict[str, Any] = {}
        if "allowedExtensions" in overrides:
            raw = overrides["allowedExtensions"] or []
            if isinstance(raw, str):
                raw = raw.split(",")
            changes["allowed_extensions"] = tuple(
                str(ext).strip().lower().lstrip(".") for ext in raw if str(ext).strip()
            )
        for doc_key, attr in _INT_FIELDS.items():
            if overrides.get(doc_key) is not None:
                value = int(overrides[doc_key])
                if value < 0:
                    raise InvalidField(f"{doc_key} must be non-negative", field=doc_key)
                changes[attr] = value
        for doc_key, attr in _BOOL_FIELDS.items():
            if overrides.get(doc_key) is not None:
                changes[attr] = bool(overrides[doc_key])
        if "watermarkText" in overrides:
            changes["watermark_text"] = str(overrides["watermarkText"] or "")
        if "outputFormat" in overrides:
            changes["output_format"] = _normalize_format(overrides["outputFormat"])
        return replace(self, **changes)

    def to_document(self) -> dict[str, Any]:
        return {
            "creatorId": self.creator_id,
            "allowedExtensions": list(self.allowed_extensions),
            "imageMaxBytes": self.image_max_bytes,
            "videoMaxBytes": self.video_max_bytes,
            "otherMaxBytes": self.other_max_bytes,
            "stripMetadata": self.strip_metadata,
            "compress": self.compress,
            "generateThumbnail": self.generate_thumbnail,
            "autoApprove": self.auto_approve,
            "watermark": self.watermark,
            "watermarkText": self.watermark_text,
            "outputFormat": self.output_format,
        }


_INT_FIELDS = {
    "imageMaxBytes": "image_max_bytes",
    "videoMaxBytes": "video_max_bytes",
    "otherMaxBytes": "other_max_bytes",
}

_BOOL_FIELDS = {
    "stripMetadata": "strip_metadata",
    "compress": "compress",
    "generateThumbnail": "generate_thumbnail",
    "autoApprove": "auto_approve",
    "watermark": "watermark",
}


def _normalize_format(value: Any) -> str | None:
    if value in (None, ""):
        return None
    normalized = str(value).strip().upper()
    if normalized == "JPG":
        normalized = "JPEG"
    if normalized not in SUPPORTED_OUTPUT_FORMATS:
        raise InvalidField(f"Unsupported output format '{value}'", field="outputFormat")
    return normalized
