"""Read side of stored assets for the serving routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..exceptions import NotFoundError
from ..storage.asset_keys import AssetVariant, is_derived_key
from ..storage.asset_store import AssetStore, StoredAsset
from .media_types import content_type_for

logger = logging.getLogger(__name__)

GENERIC_CONTENT_TYPE = "application/octet-stream"


@dataclass(slots=True)
class AssetService:
    """Resolve primary assets and thumbnails by their base key.

    Only base keys are addressable; the preserved ``-original`` upload still
    carries the creator's metadata and is never served.
    """

    assets: AssetStore

    def asset(self, key: str) -> StoredAsset:
        if not key or is_derived_key(key):
            raise NotFoundError(f"Asset '{key}' not found")
        stored = self.assets.get(key)
        if stored is None:
            raise NotFoundError(f"Asset '{key}' not found")
        return self._with_content_type(stored)

    def thumbnail(self, key: str) -> StoredAsset:
        """Thumbnail when one was generated, the primary asset otherwise."""
        if not key or is_derived_key(key):
            raise NotFoundError(f"Asset '{key}' not found")
        stored = self.assets.get_variant(key, AssetVariant.THUMBNAIL)
        if stored is None:
            logger.debug("assets.thumbnail_fallback", extra={"asset_key": key})
            return self.asset(key)
        return self._with_content_type(stored)

    @staticmethod
    def _with_content_type(stored: StoredAsset) -> StoredAsset:
        if stored.content_type and stored.content_type != GENERIC_CONTENT_TYPE:
            return stored
        return StoredAsset(key=stored.key, data=stored.data, content_type=content_type_for(stored.key))
