"""Append-only audit trail of pipeline mutations."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..storage.blob_store import BlobStore
from .pipeline_models import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    action: str
    item_id: str
    details: dict[str, Any]
    timestamp: datetime

    def to_document(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "itemId": self.item_id,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(slots=True)
class ActivityLog:
    """Writes immutable activity records under time-ordered keys."""

    store: BlobStore
    clock: Callable[[], datetime] = field(default=utcnow)

    def append(self, action: str, item_id: str, details: dict[str, Any] | None = None) -> ActivityRecord:
        record = ActivityRecord(
            action=action,
            item_id=item_id,
            details=dict(details or {}),
            timestamp=self.clock(),
        )
        key = f"{record.timestamp.strftime('%Y%m%dT%H%M%S%f')}-{uuid.uuid4().hex[:8]}"
        try:
            self.store.set_json(key, record.to_document())
        except Exception:
            # advisory log: a failed audit write never fails the owning operation
            logger.exception(
                "pipeline.activity.write_failed",
                extra={"action": action, "item_id": item_id},
            )
        return record

    def recent(self, limit: int = 50) -> list[dict[str, Any]]:
        documents = [document for _, document in self.store.documents()]
        return list(reversed(documents))[:limit]
