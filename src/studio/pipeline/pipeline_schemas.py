"""Pydantic schemas for the pipeline API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MetadataUpdateRequest(BaseModel):
    """Editable metadata; omitted fields stay untouched."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    caption: str | None = None
    tags: list[str] | str | None = None
    category: str | None = None
    tier: str | None = None
    scheduled_at: datetime | str | None = Field(default=None, alias="scheduledAt")

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_unset=True)


class ApproveRequest(MetadataUpdateRequest):
    pass


class RejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)
