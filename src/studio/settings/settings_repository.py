"""Creator settings stored in the ``creator-config`` namespace."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..config import PipelineLimits
from ..storage.blob_store import BlobStore
from .settings_models import DEFAULT_CREATOR_ID, CreatorSettings

logger = logging.getLogger(__name__)


class CreatorSettingsRepository:
    """Resolve a creator's settings: defaults, then the shared row, then the creator's row."""

    def __init__(self, store: BlobStore, limits: PipelineLimits) -> None:
        self._store = store
        self._limits = limits

    def get(self, creator_id: str | None) -> CreatorSettings:
        creator = creator_id or DEFAULT_CREATOR_ID
        settings = CreatorSettings.defaults(creator, self._limits)
        shared = self._store.get_json(DEFAULT_CREATOR_ID)
        if shared:
            settings = settings.merged(shared)
        if creator != DEFAULT_CREATOR_ID:
            own = self._store.get_json(creator)
            if own:
                settings = settings.merged(own)
        return settings

    def update(self, creator_id: str, overrides: Mapping[str, Any]) -> CreatorSettings:
        """Validate and persist ``overrides`` on top of the creator's current settings."""
        current = self.get(creator_id)
        updated = current.merged(overrides)
        stored = dict(self._store.get_json(creator_id) or {})
        document = updated.to_document()
        stored.update({key: document[key] for key in overrides if key in document})
        self._store.set_json(creator_id, stored)
        logger.info(
            "settings.creator.updated",
            extra={"creator_id": creator_id, "fields": sorted(overrides)},
        )
        return updated
