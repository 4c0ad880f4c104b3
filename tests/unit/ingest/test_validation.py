import pytest

from src.studio.config import MB, PipelineLimits
from src.studio.exceptions import FileTooLarge, InvalidField, InvalidFileType, MissingField, ValidationFailed
from src.studio.ingest.ingest_models import IngestRequest
from src.studio.ingest.validation import IngestValidator
from src.studio.media.media_types import MediaType
from src.studio.settings.settings_models import CreatorSettings

LIMITS = PipelineLimits(
    allowed_extensions=("jpg", "png", "mp4"),
    image_max_bytes=50 * MB,
    video_max_bytes=500 * MB,
    other_max_bytes=10 * MB,
)


def settings(**overrides) -> CreatorSettings:
    return CreatorSettings.defaults("creator-1", LIMITS).merged(overrides)


def test_validate_accepts_allowed_image() -> None:
    result = IngestValidator().validate(IngestRequest(filename="Photo.JPG", payload=b"x" * 100), settings())

    assert result.extension == "jpg"
    assert result.media_type is MediaType.IMAGE
    assert result.size_bytes == 100
    assert result.limit_bytes == 50 * MB


def test_validate_rejects_disallowed_extension() -> None:
    with pytest.raises(InvalidFileType) as exc_info:
        IngestValidator().validate(IngestRequest(filename="notes.exe", size_bytes=10), settings())

    assert exc_info.value.field == "filename"


def test_validate_rejects_file_without_extension() -> None:
    with pytest.raises(InvalidFileType):
        IngestValidator().validate(IngestRequest(filename="README", size_bytes=10), settings())


def test_validate_rejects_oversized_video() -> None:
    request = IngestRequest(filename="clip.mp4", size_bytes=600 * MB)

    with pytest.raises(FileTooLarge) as exc_info:
        IngestValidator().validate(request, settings())

    assert "524288000" in exc_info.value.message


def test_validate_uses_creator_override_for_ceiling() -> None:
    request = IngestRequest(filename="clip.mp4", size_bytes=600 * MB)

    result = IngestValidator().validate(request, settings(videoMaxBytes=1024 * MB))

    assert result.size_bytes == 600 * MB


def test_validate_reports_type_and_size_together() -> None:
    request = IngestRequest(filename="archive.zip", size_bytes=20 * MB)

    with pytest.raises(ValidationFailed) as exc_info:
        IngestValidator().validate(request, settings())

    reasons = [error.failure_reason for error in exc_info.value.errors]
    assert reasons == ["invalid_file_type", "file_too_large"]


def test_validate_requires_filename() -> None:
    with pytest.raises(MissingField):
        IngestValidator().validate(IngestRequest(filename="  ", size_bytes=1), settings())


def test_validate_requires_size_without_payload() -> None:
    with pytest.raises(MissingField) as exc_info:
        IngestValidator().validate(IngestRequest(filename="a.jpg"), settings())

    assert exc_info.value.field == "fileSize"


def test_validate_rejects_negative_size() -> None:
    with pytest.raises(InvalidField):
        IngestValidator().validate(IngestRequest(filename="a.jpg", size_bytes=-1), settings())


def test_validate_trusts_actual_payload_over_smaller_declared_size() -> None:
    request = IngestRequest(filename="a.png", size_bytes=1, payload=b"x" * (11 * MB))

    with pytest.raises(FileTooLarge):
        IngestValidator().validate(request, settings(imageMaxBytes=10 * MB))
