"""Publish queued items whose scheduled time has arrived."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..exceptions import NotFoundError, StateConflictError
from ..logging import bind_item_context, clear_item_context
from ..notify.notifier import NotificationEvent, Notifier, safe_notify
from ..pipeline.pipeline_models import PipelineItem, PipelineStatus, utcnow
from ..pipeline.pipeline_repository import PipelineRepository
from ..pipeline.pipeline_service import PipelineService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SweepResult:
    checked_at: datetime
    published: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return len(self.published)

    def to_document(self) -> dict[str, Any]:
        return {
            "checkedAt": self.checked_at.isoformat(),
            "count": self.count,
            "published": list(self.published),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }


@dataclass(slots=True)
class ScheduledPublisher:
    """Sweep ``queued`` items with ``scheduled_at <= now`` through publish.

    Items without a schedule are never touched. A sweep that races a manual
    publish loses quietly: the item is reported as skipped.
    """

    repo: PipelineRepository
    pipeline: PipelineService
    notifier: Notifier
    clock: Callable[[], datetime] = field(default=utcnow)

    def due_items(self, now: datetime | None = None) -> list[PipelineItem]:
        current = now or self.clock()
        due = [item for item in self.repo.list_items(PipelineStatus.QUEUED) if item.is_due(current)]
        due.sort(key=lambda item: item.scheduled_at)
        return due

    def sweep(self, now: datetime | None = None) -> SweepResult:
        current = now or self.clock()
        result = SweepResult(checked_at=current)
        published_items: list[PipelineItem] = []
        for item in self.due_items(current):
            bind_item_context(item.id, "scheduled_publish")
            try:
                published_items.append(self.pipeline.publish(item.id, broadcast=False))
                result.published.append(item.id)
            except (StateConflictError, NotFoundError):
                result.skipped.append(item.id)
            except Exception as exc:
                logger.exception("scheduler.publish_failed", extra={"item_id": item.id})
                result.failed[item.id] = str(exc)
            finally:
                clear_item_context()

        if published_items:
            safe_notify(
                self.notifier,
                NotificationEvent.SCHEDULE_SWEEP,
                {"count": result.count, "items": [item.filename for item in published_items]},
            )
            safe_notify(
                self.notifier,
                NotificationEvent.CONTENT_DROP,
                {
                    "title": published_items[0].title,
                    "count": result.count,
                    "tiers": sorted({item.tier.value for item in published_items}),
                },
            )
        logger.info(
            "scheduler.sweep.done",
            extra={
                "published": result.count,
                "published_ids": list(result.published),
                "skipped": len(result.skipped),
                "failed": len(result.failed),
            },
        )
        return result

    def preview(self, now: datetime | None = None) -> list[str]:
        """Ids a sweep at ``now`` would attempt, without publishing anything."""
        return [item.id for item in self.due_items(now)]
