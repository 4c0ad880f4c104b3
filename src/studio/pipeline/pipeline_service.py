"""Pipeline state machine: process, approve, reject, publish, update, delete.

Every operation reads the whole item document, mutates it and writes it back.
The store offers no version tokens, so metadata edits from concurrent writers
resolve last-writer-wins; correctness of the lifecycle relies on each
transition re-checking ``status`` right before it writes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..catalog.catalog_writer import CatalogDraft, CatalogWriter
from ..exceptions import AppError, InvalidField, NotFoundError, StateConflictError
from ..media.transform import MediaTransformEngine, TransformResult
from ..notify.notifier import NotificationEvent, Notifier, safe_notify
from ..settings.settings_models import CreatorSettings
from ..settings.settings_repository import CreatorSettingsRepository
from ..storage.asset_store import AssetStore
from .activity_log import ActivityLog
from .item_locks import ItemLocks
from .pipeline_models import (
    BatchResult,
    ItemListing,
    PipelineItem,
    PipelineStatus,
    utcnow,
)
from .pipeline_repository import PipelineRepository

logger = logging.getLogger(__name__)

PROCESSABLE = frozenset({PipelineStatus.INBOX})
APPROVABLE = frozenset({PipelineStatus.INBOX, PipelineStatus.PROCESSED})
PUBLISHABLE = frozenset({PipelineStatus.QUEUED})
EDITABLE = frozenset({PipelineStatus.INBOX, PipelineStatus.PROCESSED, PipelineStatus.QUEUED})


@dataclass(slots=True)
class DeleteResult:
    item_id: str
    removed_assets: list[str]

    def to_document(self) -> dict[str, Any]:
        return {"id": self.item_id, "removedAssets": list(self.removed_assets)}


class PipelineService:
    """Coordinates lifecycle transitions of pipeline items."""

    def __init__(
        self,
        *,
        repo: PipelineRepository,
        assets: AssetStore,
        activity: ActivityLog,
        engine: MediaTransformEngine,
        catalog: CatalogWriter,
        notifier: Notifier,
        settings_repo: CreatorSettingsRepository,
        clock: Callable[[], datetime] | None = None,
        batch_concurrency: int = 4,
        locks: ItemLocks | None = None,
    ) -> None:
        self.repo = repo
        self.assets = assets
        self.activity = activity
        self.engine = engine
        self.catalog = catalog
        self.notifier = notifier
        self.settings_repo = settings_repo
        self.clock = clock or utcnow
        self.batch_concurrency = max(1, batch_concurrency)
        self.locks = locks or ItemLocks()

    # -- single item transitions -------------------------------------------------

    def process(self, item_id: str) -> PipelineItem:
        """Transform an ``inbox`` item and mark it ``processed`` (or ``queued``)."""
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            item.ensure_status("process", PROCESSABLE)
            settings = self.settings_repo.get(item.creator_id)
            result = self._apply_transform(item, settings)
            now = self.clock()
            item.transition(PipelineStatus.PROCESSED, now, action="process")
            if settings.auto_approve:
                item.transition(PipelineStatus.QUEUED, now, action="auto-approve")
            self.repo.save(item)

        self.activity.append(
            "process",
            item.id,
            {
                "status": item.status.value,
                "autoApproved": settings.auto_approve,
                "checks": item.checks.to_document(),
                "errors": list(result.errors),
            },
        )
        logger.info(
            "pipeline.process.done",
            extra={"item_id": item.id, "status": item.status.value, "errors": len(result.errors)},
        )
        return item

    def approve(self, item_id: str, overrides: Mapping[str, Any] | None = None) -> PipelineItem:
        """Queue an ``inbox``/``processed`` item, transforming it first if it never was."""
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            item.ensure_status("approve", APPROVABLE)
            changed = item.apply_metadata(overrides or {})
            lazy_transform = item.processed_at is None
            errors: list[str] = []
            if lazy_transform:
                settings = self.settings_repo.get(item.creator_id)
                errors = self._apply_transform(item, settings).errors
            item.mark_processed(self.clock())
            item.transition(PipelineStatus.QUEUED, self.clock(), action="approve")
            self.repo.save(item)

        self.activity.append(
            "approve",
            item.id,
            {
                "changed": changed,
                "lazyTransform": lazy_transform,
                "errors": errors,
                "scheduledAt": item.scheduled_at.isoformat() if item.scheduled_at else None,
            },
        )
        logger.info(
            "pipeline.approve.done",
            extra={"item_id": item.id, "lazy_transform": lazy_transform, "tier": item.tier.value},
        )
        return item

    def reject(self, item_id: str, reason: str | None = None) -> PipelineItem:
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            item.reject(reason, self.clock())
            self.repo.save(item)

        self.activity.append("reject", item.id, {"reason": item.reject_reason})
        logger.info("pipeline.reject.done", extra={"item_id": item.id, "reason": item.reject_reason})
        return item

    def publish(self, item_id: str, *, broadcast: bool = True) -> PipelineItem:
        """Create the catalog entry for a ``queued`` item and mark it ``published``.

        The status is re-read under the item lock right before the catalog
        write; a caller that loses the race gets :class:`InvalidState` and
        creates nothing.
        """
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            item.ensure_status("publish", PUBLISHABLE)
            content_key = self.catalog.write(CatalogDraft.from_item(item))
            item.mark_published(content_key, self.clock())
            try:
                self.repo.save(item)
            except Exception:
                logger.exception(
                    "pipeline.publish.save_failed",
                    extra={"item_id": item.id, "content_key": content_key},
                )
                self._discard_entry(item.id, content_key)
                raise

        self.activity.append(
            "publish",
            item.id,
            {"contentKey": item.content_key, "tier": item.tier.value},
        )
        logger.info(
            "pipeline.publish.done",
            extra={"item_id": item.id, "content_key": item.content_key, "tier": item.tier.value},
        )
        safe_notify(
            self.notifier,
            NotificationEvent.PIPELINE_PUBLISH,
            {
                "filename": item.filename,
                "tier": item.tier.value,
                "contentKey": item.content_key,
                "pipelineId": item.id,
            },
        )
        if broadcast:
            safe_notify(
                self.notifier,
                NotificationEvent.CONTENT_DROP,
                {"title": item.title, "category": item.category, "tier": item.tier.value},
            )
        return item

    def update(self, item_id: str, fields: Mapping[str, Any]) -> PipelineItem:
        """Metadata-only edit; never changes ``status``."""
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            item.ensure_status("update", EDITABLE)
            changed = item.apply_metadata(fields)
            self.repo.save(item)

        self.activity.append("update", item.id, {"changed": changed})
        return item

    def delete(self, item_id: str) -> DeleteResult:
        """Remove the item document and every asset variant derived from it."""
        with self.locks.hold(item_id):
            item = self.repo.get(item_id)
            removed = self.assets.delete_variants(item.stored_asset_key) if item.stored_asset_key else []
            self.repo.delete(item_id)

        self.activity.append(
            "delete",
            item_id,
            {"status": item.status.value, "removedAssets": removed},
        )
        logger.info("pipeline.delete.done", extra={"item_id": item_id, "removed": removed})
        return DeleteResult(item_id=item_id, removed_assets=removed)

    # -- batch variants ----------------------------------------------------------

    def process_all(self) -> BatchResult:
        """Process every ``inbox`` item with bounded parallelism."""
        item_ids = [item.id for item in self.repo.list_items(PipelineStatus.INBOX)]
        result = BatchResult()
        if not item_ids:
            return result
        workers = min(self.batch_concurrency, len(item_ids))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pipeline-process") as pool:
            outcomes = list(pool.map(lambda item_id: self._attempt(self.process, item_id), item_ids))
        for item_id, outcome in zip(item_ids, outcomes):
            _record_outcome(result, item_id, outcome)
        self._log_batch("process_all", result)
        return result

    def publish_all(self) -> BatchResult:
        """Publish every ``queued`` item independently."""
        return self.publish_many(item.id for item in self.repo.list_items(PipelineStatus.QUEUED))

    def publish_many(self, item_ids: Iterable[str], *, broadcast: bool = True) -> BatchResult:
        result = BatchResult()
        for item_id in item_ids:
            outcome = self._attempt(lambda target: self.publish(target, broadcast=broadcast), item_id)
            _record_outcome(result, item_id, outcome)
        self._log_batch("publish_all", result)
        return result

    # -- read side ---------------------------------------------------------------

    def get(self, item_id: str) -> PipelineItem:
        return self.repo.get(item_id)

    def list_items(self, status: str | PipelineStatus | None = None) -> ItemListing:
        if status in (None, "", "all"):
            items = self.repo.list_items()
            counts = {value.value: 0 for value in PipelineStatus}
            for item in items:
                counts[item.status.value] += 1
            return ItemListing(items=items, counts=counts)
        try:
            wanted = PipelineStatus(status)
        except ValueError as exc:
            raise InvalidField(f"Unknown status '{status}'", field="status") from exc
        return ItemListing(items=self.repo.list_items(wanted))

    def stats(self) -> dict[str, Any]:
        items = self.repo.list_items()
        counts = {value.value: 0 for value in PipelineStatus}
        bytes_saved = 0
        processed_with_errors = 0
        now = self.clock()
        scheduled_pending = 0
        next_scheduled: datetime | None = None
        for item in items:
            counts[item.status.value] += 1
            summary = item.processing or {}
            original = summary.get("originalBytes")
            processed = summary.get("processedBytes")
            if isinstance(original, int) and isinstance(processed, int):
                bytes_saved += max(0, original - processed)
            if summary.get("errors"):
                processed_with_errors += 1
            if item.status is PipelineStatus.QUEUED and item.scheduled_at is not None:
                scheduled_pending += 1
                if item.scheduled_at > now and (next_scheduled is None or item.scheduled_at < next_scheduled):
                    next_scheduled = item.scheduled_at
        return {
            "total": len(items),
            "counts": counts,
            "bytesSaved": bytes_saved,
            "transformErrors": processed_with_errors,
            "scheduledPending": scheduled_pending,
            "nextScheduledAt": next_scheduled.isoformat() if next_scheduled else None,
        }

    # -- helpers -----------------------------------------------------------------

    def _apply_transform(self, item: PipelineItem, settings: CreatorSettings) -> TransformResult:
        """Run the engine and copy its outcome onto ``item``; never raises."""
        try:
            result = self.engine.transform(
                item.stored_asset_key,
                settings.transform_options(),
                item.media_type,
            )
        except Exception as exc:
            logger.exception("pipeline.transform.crashed", extra={"item_id": item.id})
            result = TransformResult(errors=[f"transform crashed: {exc}"])

        item.checks.exif_stripped = result.exif_stripped
        item.checks.compressed = result.compressed
        item.checks.thumbnail_generated = result.thumbnail_generated
        summary = result.to_summary()
        summary["ranAt"] = self.clock().isoformat()
        item.processing = summary

        if result.errors:
            logger.warning(
                "pipeline.transform.degraded",
                extra={"item_id": item.id, "errors": result.errors},
            )
            safe_notify(
                self.notifier,
                NotificationEvent.PIPELINE_ERROR,
                {
                    "error": result.errors[0],
                    "pipelineId": item.id,
                    "details": "; ".join(result.errors),
                },
            )
        return result

    def _discard_entry(self, item_id: str, content_key: str) -> None:
        try:
            self.catalog.remove(content_key)
        except Exception:
            logger.exception(
                "pipeline.publish.entry_cleanup_failed",
                extra={"item_id": item_id, "content_key": content_key},
            )

    @staticmethod
    def _attempt(operation: Callable[[str], PipelineItem], item_id: str) -> PipelineItem | AppError | Exception:
        try:
            return operation(item_id)
        except (StateConflictError, NotFoundError) as exc:
            return exc
        except Exception as exc:
            logger.exception("pipeline.batch.item_failed", extra={"item_id": item_id})
            return exc

    @staticmethod
    def _log_batch(action: str, result: BatchResult) -> None:
        logger.info(
            f"pipeline.{action}.done",
            extra={
                "succeeded": result.count,
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )


def _record_outcome(result: BatchResult, item_id: str, outcome: object) -> None:
    if isinstance(outcome, PipelineItem):
        result.succeeded.append(item_id)
    elif isinstance(outcome, (StateConflictError, NotFoundError)):
        # another caller already moved or removed the item
        result.skipped.append(item_id)
    else:
        result.failed[item_id] = str(outcome)
