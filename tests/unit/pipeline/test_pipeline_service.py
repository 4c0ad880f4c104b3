import threading

import pytest

from src.studio.catalog.catalog_writer import CatalogDraft
from src.studio.exceptions import InvalidField, InvalidState, NotFoundError
from src.studio.notify.notifier import NotificationEvent
from src.studio.pipeline.pipeline_models import DEFAULT_REJECT_REASON, PipelineStatus, Tier
from src.studio.storage.asset_keys import AssetVariant, all_variant_keys

from tests.helpers.media import MODEL_TAG, exif_of, make_image, open_image


def test_happy_path_from_ingest_to_publish(harness) -> None:
    item = harness.ingest("beach.jpg", payload=make_image(size=(3000, 2000)), caption="Golden hour", tier="vip")

    processed = harness.pipeline.process(item.id)

    assert processed.status is PipelineStatus.PROCESSED
    assert processed.checks.exif_stripped
    assert processed.checks.compressed
    assert processed.checks.thumbnail_generated
    assert processed.processing["errors"] == []
    assert processed.processing["width"] == 1024
    primary = harness.assets.get(item.stored_asset_key)
    assert MODEL_TAG not in exif_of(primary.data)
    assert open_image(primary.data).size == (1024, 683)

    queued = harness.pipeline.approve(item.id)
    assert queued.status is PipelineStatus.QUEUED

    published = harness.pipeline.publish(item.id)

    assert published.status is PipelineStatus.PUBLISHED
    assert published.content_key
    entries = harness.catalog.entries_for_item(item.id)
    assert len(entries) == 1
    entry = entries[0]
    assert entry["title"] == "Golden hour"
    assert entry["tier"] == "vip"
    assert entry["type"] == "gallery"
    assert entry["imageUrl"] == f"/api/pipeline/asset/{item.stored_asset_key}"
    assert harness.notifier.of_type(NotificationEvent.PIPELINE_PUBLISH)[0]["contentKey"] == published.content_key
    assert harness.notifier.of_type(NotificationEvent.CONTENT_DROP) == [
        {"title": "Golden hour", "category": "", "tier": "vip"}
    ]
    actions = sorted(record["action"] for record in harness.activity.recent())
    assert actions == ["approve", "ingest", "process", "publish"]


def test_double_publish_creates_single_catalog_entry(harness) -> None:
    item = harness.queued()

    harness.pipeline.publish(item.id)
    with pytest.raises(InvalidState):
        harness.pipeline.publish(item.id)

    assert len(harness.catalog.entries_for_item(item.id)) == 1


def test_concurrent_publish_has_one_winner(harness) -> None:
    item = harness.queued()
    barrier = threading.Barrier(2)
    outcomes: list[str] = []

    def attempt() -> None:
        barrier.wait()
        try:
            harness.pipeline.publish(item.id)
            outcomes.append("published")
        except InvalidState:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["conflict", "published"]
    assert len(harness.catalog.entries_for_item(item.id)) == 1


def test_rejected_item_is_terminal(harness) -> None:
    item = harness.ingest()

    rejected = harness.pipeline.reject(item.id)

    assert rejected.status is PipelineStatus.REJECTED
    assert rejected.reject_reason == DEFAULT_REJECT_REASON
    for operation in (
        harness.pipeline.process,
        harness.pipeline.approve,
        harness.pipeline.publish,
        lambda item_id: harness.pipeline.update(item_id, {"caption": "again"}),
        lambda item_id: harness.pipeline.reject(item_id, "twice"),
    ):
        with pytest.raises(InvalidState):
            operation(item.id)
    assert harness.repo.get(item.id).to_document() == rejected.to_document()


def test_published_item_cannot_be_rejected(harness) -> None:
    item = harness.queued()
    harness.pipeline.publish(item.id)

    with pytest.raises(InvalidState):
        harness.pipeline.reject(item.id, "too late")

    assert harness.repo.get(item.id).status is PipelineStatus.PUBLISHED


def test_reject_keeps_custom_reason(harness) -> None:
    item = harness.ingest()

    rejected = harness.pipeline.reject(item.id, "  blurry  ")

    assert rejected.reject_reason == "blurry"


def test_corrupt_image_still_reaches_processed(harness) -> None:
    item = harness.ingest("broken.jpg", payload=b"\xff\xd8 not really a jpeg")

    processed = harness.pipeline.process(item.id)

    assert processed.status is PipelineStatus.PROCESSED
    assert not processed.checks.exif_stripped
    assert not processed.checks.compressed
    assert not processed.checks.thumbnail_generated
    assert processed.processing["errors"]
    errors = harness.notifier.of_type(NotificationEvent.PIPELINE_ERROR)
    assert errors and errors[0]["pipelineId"] == item.id
    process_record = next(r for r in harness.activity.recent() if r["action"] == "process")
    assert process_record["details"]["errors"] == processed.processing["errors"]


def test_video_is_processed_without_transform(harness) -> None:
    item = harness.ingest("clip.mp4", payload=b"\x00\x00\x00\x18ftypmp42")

    processed = harness.pipeline.process(item.id)

    assert processed.status is PipelineStatus.PROCESSED
    assert processed.processing["skipped"] is True
    assert not processed.checks.exif_stripped
    assert harness.notifier.of_type(NotificationEvent.PIPELINE_ERROR) == []


def test_approve_from_inbox_runs_lazy_transform(harness) -> None:
    item = harness.ingest("beach.jpg", payload=make_image(size=(2048, 1536)))

    queued = harness.pipeline.approve(
        item.id,
        {"caption": "Lazy", "tier": "elite", "tags": "a, b", "scheduled_at": "2026-03-05T10:00:00Z"},
    )

    assert queued.status is PipelineStatus.QUEUED
    assert queued.processed_at is not None
    assert queued.checks.exif_stripped and queued.checks.thumbnail_generated
    assert queued.caption == "Lazy"
    assert queued.tier is Tier.ELITE
    assert queued.tags == ["a", "b"]
    assert queued.scheduled_at.isoformat() == "2026-03-05T10:00:00+00:00"
    assert harness.assets.get_variant(item.stored_asset_key, AssetVariant.THUMBNAIL) is not None


def test_approve_after_process_does_not_transform_again(harness) -> None:
    item = harness.ingest()
    processed = harness.pipeline.process(item.id)
    harness.clock.advance(minutes=5)

    queued = harness.pipeline.approve(item.id)

    assert queued.processing["ranAt"] == processed.processing["ranAt"]
    assert queued.processed_at == processed.processed_at


def test_auto_approve_moves_processed_items_to_queue(harness) -> None:
    harness.settings_repo.update("default", {"autoApprove": True})
    item = harness.ingest()

    result = harness.pipeline.process(item.id)

    assert result.status is PipelineStatus.QUEUED
    assert result.queued_at is not None


def test_creator_settings_drive_transform_options(harness) -> None:
    harness.settings_repo.update("studio-9", {"compress": False, "generateThumbnail": False})
    item = harness.ingest("a.jpg", payload=make_image(size=(1500, 1000)), creator_id="studio-9")

    processed = harness.pipeline.process(item.id)

    assert processed.checks.exif_stripped
    assert not processed.checks.compressed
    assert not processed.checks.thumbnail_generated
    assert open_image(harness.assets.get(item.stored_asset_key).data).size == (1500, 1000)


def test_update_changes_metadata_only(harness) -> None:
    item = harness.queued()

    updated = harness.pipeline.update(item.id, {"caption": "New caption", "category": "travel"})

    assert updated.status is PipelineStatus.QUEUED
    assert updated.caption == "New caption"
    assert updated.category == "travel"


def test_update_rejects_unknown_fields(harness) -> None:
    item = harness.ingest()

    with pytest.raises(InvalidField):
        harness.pipeline.update(item.id, {"status": "published"})

    assert harness.repo.get(item.id).status is PipelineStatus.INBOX


def test_update_on_published_item_is_refused(harness) -> None:
    item = harness.queued()
    harness.pipeline.publish(item.id)

    with pytest.raises(InvalidState):
        harness.pipeline.update(item.id, {"caption": "edit"})


def test_delete_removes_item_and_every_variant(harness) -> None:
    item = harness.ingest()
    harness.pipeline.process(item.id)
    assert all(harness.assets.exists(key) for key in all_variant_keys(item.stored_asset_key))

    result = harness.pipeline.delete(item.id)

    assert sorted(result.removed_assets) == sorted(all_variant_keys(item.stored_asset_key))
    assert harness.repo.find(item.id) is None
    assert harness.stores["pipeline-assets"].list() == []
    with pytest.raises(NotFoundError):
        harness.pipeline.process(item.id)


def test_delete_video_without_derived_variants(harness) -> None:
    item = harness.ingest("clip.mp4", payload=b"\x00\x00\x00\x18ftypmp42")
    harness.pipeline.process(item.id)

    result = harness.pipeline.delete(item.id)

    assert result.removed_assets == [item.stored_asset_key]
    assert harness.stores["pipeline-assets"].list() == []


def test_delete_unknown_item_raises(harness) -> None:
    with pytest.raises(NotFoundError):
        harness.pipeline.delete("missing")


def test_process_all_isolates_bad_items(harness) -> None:
    good = [harness.ingest(f"p{index}.jpg") for index in range(3)]
    bad = harness.ingest("bad.jpg", payload=b"garbage")
    already = harness.queued()

    result = harness.pipeline.process_all()

    assert sorted(result.succeeded) == sorted([item.id for item in good] + [bad.id])
    assert result.failed == {}
    assert already.id not in result.succeeded
    assert harness.repo.get(bad.id).processing["errors"]
    assert all(harness.repo.get(item.id).checks.compressed for item in good)


def test_publish_all_reports_failures_per_item(harness, monkeypatch) -> None:
    first = harness.queued("one.jpg")
    second = harness.queued("two.jpg")
    writer = harness.pipeline.catalog
    original_write = writer.write

    def flaky_write(draft: CatalogDraft) -> str:
        if draft.pipeline_item_id == first.id:
            raise RuntimeError("catalog unavailable")
        return original_write(draft)

    monkeypatch.setattr(harness.pipeline, "catalog", type("Flaky", (), {"write": staticmethod(flaky_write)})())

    result = harness.pipeline.publish_all()

    assert result.succeeded == [second.id]
    assert result.failed == {first.id: "catalog unavailable"}
    assert harness.repo.get(first.id).status is PipelineStatus.QUEUED
    assert harness.repo.get(second.id).status is PipelineStatus.PUBLISHED


def test_publish_retry_after_failed_save_leaves_one_entry(harness, monkeypatch) -> None:
    item = harness.queued()
    original_save = harness.repo.save
    calls = {"count": 0}

    def save_once_broken(target) -> None:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("database unavailable")
        original_save(target)

    monkeypatch.setattr(harness.repo, "save", save_once_broken)

    with pytest.raises(RuntimeError):
        harness.pipeline.publish(item.id)

    assert harness.repo.get(item.id).status is PipelineStatus.QUEUED
    assert harness.catalog.entries_for_item(item.id) == []

    published = harness.pipeline.publish(item.id)

    assert published.status is PipelineStatus.PUBLISHED
    assert len(harness.catalog.entries_for_item(item.id)) == 1


def test_publish_all_retry_after_failed_save_publishes_once(harness, monkeypatch) -> None:
    item = harness.queued()
    original_save = harness.repo.save

    def broken_save(target) -> None:
        raise RuntimeError("down")

    monkeypatch.setattr(harness.repo, "save", broken_save)

    result = harness.pipeline.publish_all()
    assert result.failed == {item.id: "down"}

    monkeypatch.setattr(harness.repo, "save", original_save)
    retried = harness.pipeline.publish_all()

    assert retried.succeeded == [item.id]
    assert len(harness.catalog.entries_for_item(item.id)) == 1


def test_list_items_filters_and_counts(harness) -> None:
    inbox = harness.ingest("a.jpg")
    queued = harness.queued("b.jpg")
    rejected = harness.ingest("c.jpg")
    harness.pipeline.reject(rejected.id)

    listing = harness.pipeline.list_items()
    assert listing.counts == {"inbox": 1, "processed": 0, "queued": 1, "published": 0, "rejected": 1}
    assert {item.id for item in listing.items} == {inbox.id, queued.id, rejected.id}

    only_queued = harness.pipeline.list_items("queued")
    assert [item.id for item in only_queued.items] == [queued.id]
    assert only_queued.counts is None

    with pytest.raises(InvalidField):
        harness.pipeline.list_items("archived")


def test_stats_report_bytes_saved_and_schedule(harness) -> None:
    item = harness.ingest("big.jpg", payload=make_image(size=(3000, 2000)))
    harness.pipeline.approve(item.id, {"scheduled_at": "2026-03-01T18:00:00Z"})
    harness.ingest("other.jpg")

    stats = harness.pipeline.stats()

    assert stats["total"] == 2
    assert stats["counts"]["queued"] == 1
    assert stats["counts"]["inbox"] == 1
    processing = harness.repo.get(item.id).processing
    assert stats["bytesSaved"] == max(0, processing["originalBytes"] - processing["processedBytes"])
    assert stats["scheduledPending"] == 1
    assert stats["nextScheduledAt"] == "2026-03-01T18:00:00+00:00"
