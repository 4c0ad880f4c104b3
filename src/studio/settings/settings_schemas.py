"""Pydantic schemas for the creator settings API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class CreatorSettingsResponseModel(BaseModel):
    creatorId: str
    allowedExtensions: list[str]
    imageMaxBytes: int
    videoMaxBytes: int
    otherMaxBytes: int
    stripMetadata: bool
    compress: bool
    generateThumbnail: bool
    autoApprove: bool
    watermark: bool
    watermarkText: str
    outputFormat: str | None = None


class CreatorSettingsUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    allowed_extensions: list[str] | None = Field(default=None, alias="allowedExtensions")
    image_max_bytes: int | None = Field(default=None, ge=0, alias="imageMaxBytes")
    video_max_bytes: int | None = Field(default=None, ge=0, alias="videoMaxBytes")
    other_max_bytes: int | None = Field(default=None, ge=0, alias="otherMaxBytes")
    strip_metadata: bool | None = Field(default=None, alias="stripMetadata")
    compress: bool | None = None
    generate_thumbnail: bool | None = Field(default=None, alias="generateThumbnail")
    auto_approve: bool | None = Field(default=None, alias="autoApprove")
    watermark: bool | None = None
    watermark_text: str | None = Field(default=None, max_length=80, alias="watermarkText")
    output_format: str | None = Field(default=None, alias="outputFormat")

    def overrides(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_unset=True)
