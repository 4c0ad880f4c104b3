from datetime import datetime, timezone

import pytest

from src.studio.exceptions import InvalidField, InvalidState
from src.studio.media.media_types import MediaType
from src.studio.pipeline.pipeline_models import PipelineItem, PipelineStatus, parse_timestamp

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_item(**kwargs) -> PipelineItem:
    defaults = dict(
        id="i1",
        creator_id="default",
        filename="a.jpg",
        media_type=MediaType.IMAGE,
        file_extension="jpg",
        file_size=1,
        stored_asset_key="i1.jpg",
        created_at=NOW,
    )
    defaults.update(kwargs)
    return PipelineItem(**defaults)


def test_published_without_content_key_is_unrepresentable() -> None:
    with pytest.raises(ValueError):
        make_item(status=PipelineStatus.PUBLISHED)

    document = make_item().to_document()
    document["status"] = "published"
    with pytest.raises(ValueError):
        PipelineItem.from_document(document)


def test_transition_table_blocks_skipping_steps() -> None:
    item = make_item()

    with pytest.raises(InvalidState):
        item.transition(PipelineStatus.QUEUED, NOW, action="approve")
    with pytest.raises(InvalidState):
        item.mark_published("content-1", NOW)


def test_transition_stamps_timestamps_once() -> None:
    item = make_item()
    item.transition(PipelineStatus.PROCESSED, NOW, action="process")
    first = item.processed_at

    item.mark_processed(datetime(2030, 1, 1, tzinfo=timezone.utc))

    assert item.processed_at == first


def test_document_round_trip_keeps_camel_case_fields() -> None:
    item = make_item(caption="c", tags=["t"], scheduled_at=NOW)

    document = item.to_document()

    assert document["storedAssetKey"] == "i1.jpg"
    assert document["checks"]["fileTypeValid"] is False
    assert document["scheduledAt"] == "2026-03-01T12:00:00+00:00"
    assert PipelineItem.from_document(document) == item


def test_parse_timestamp_normalizes_to_utc() -> None:
    assert parse_timestamp("2026-03-01T14:00:00+02:00") == NOW
    assert parse_timestamp("2026-03-01T12:00:00") == NOW
    assert parse_timestamp("") is None
    with pytest.raises(InvalidField):
        parse_timestamp("tomorrow")


def test_is_due_requires_queued_and_schedule() -> None:
    item = make_item(status=PipelineStatus.QUEUED, scheduled_at=NOW)

    assert item.is_due(NOW)
    assert not make_item(status=PipelineStatus.QUEUED).is_due(NOW)
    assert not make_item(scheduled_at=NOW).is_due(NOW)
