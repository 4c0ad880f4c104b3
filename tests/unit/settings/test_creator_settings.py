import pytest

from src.studio.exceptions import InvalidField
from src.studio.media.media_types import MediaType


def test_defaults_come_from_pipeline_limits(harness) -> None:
    settings = harness.settings_repo.get("creator-1")

    assert settings.creator_id == "creator-1"
    assert settings.max_bytes_for(MediaType.VIDEO) == harness.config.pipeline_limits.video_max_bytes
    assert settings.strip_metadata and settings.compress and settings.generate_thumbnail
    assert not settings.auto_approve


def test_creator_row_overrides_shared_defaults(harness) -> None:
    harness.settings_repo.update("default", {"watermark": True, "watermarkText": "@studio"})
    harness.settings_repo.update("creator-1", {"watermarkText": "@creator", "allowedExtensions": ["JPG", ".png"]})

    creator = harness.settings_repo.get("creator-1")
    other = harness.settings_repo.get("creator-2")

    assert creator.watermark is True
    assert creator.watermark_text == "@creator"
    assert creator.allowed_extensions == ("jpg", "png")
    assert other.watermark_text == "@studio"


def test_update_persists_only_overridden_keys(harness) -> None:
    harness.settings_repo.update("creator-1", {"compress": False})

    assert harness.stores["creator-config"].get_json("creator-1") == {"compress": False}


def test_invalid_output_format_is_rejected(harness) -> None:
    with pytest.raises(InvalidField):
        harness.settings_repo.update("creator-1", {"outputFormat": "bmp"})

    assert harness.stores["creator-config"].get_json("creator-1") is None
