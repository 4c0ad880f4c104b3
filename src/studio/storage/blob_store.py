"""Namespaced key/value blob storage backed by SQLAlchemy.

Every logical store used by the pipeline (items, assets, activity log,
catalog, creator settings) is a :class:`SqlAlchemyBlobStore` bound to its own
namespace. Writes are plain upserts: there are no version tokens and no
cross-key transactions, so concurrent read-modify-write sequences on the same
key resolve as last-writer-wins.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.db_models import BlobModel

JSON_CONTENT_TYPE = "application/json"


class BlobNamespace:
    PIPELINE = "pipeline"
    ASSETS = "pipeline-assets"
    LOGS = "pipeline-logs"
    CONTENT = "content"
    CREATOR_CONFIG = "creator-config"


@dataclass(slots=True)
class BlobRecord:
    key: str
    payload: bytes
    content_type: str
    updated_at: datetime


class BlobStore(Protocol):
    namespace: str

    def get(self, key: str) -> BlobRecord | None: ...

    def get_json(self, key: str) -> Any | None: ...

    def set(self, key: str, payload: bytes, *, content_type: str = ...) -> None: ...

    def set_json(self, key: str, document: Any) -> None: ...

    def delete(self, key: str) -> bool: ...

    def list(self, prefix: str = "") -> list[str]: ...

    def documents(self, prefix: str = "") -> list[tuple[str, Any]]: ...


class SqlAlchemyBlobStore:
    """Blob store persisting payloads in the ``blob`` table."""

    def __init__(self, session_factory: Callable[[], Session], namespace: str) -> None:
        self._session_factory = session_factory
        self.namespace = namespace

    def get(self, key: str) -> BlobRecord | None:
        with self._session_factory() as session:
            row = session.get(BlobModel, (self.namespace, key))
            if row is None:
                return None
            return BlobRecord(
                key=row.key,
                payload=row.payload,
                content_type=row.content_type,
                updated_at=row.updated_at,
            )

    def get_json(self, key: str) -> Any | None:
        record = self.get(key)
        if record is None:
            return None
        return json.loads(record.payload.decode("utf-8"))

    def set(
        self,
        key: str,
        payload: bytes,
        *,
        content_type: str = "application/octet-stream",
    ) -> None:
        self._upsert(key, payload, content_type=content_type, is_json=False)

    def set_json(self, key: str, document: Any) -> None:
        encoded = json.dumps(document, separators=(",", ":"), ensure_ascii=False)
        self._upsert(key, encoded.encode("utf-8"), content_type=JSON_CONTENT_TYPE, is_json=True)

    def delete(self, key: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                delete(BlobModel).where(
                    BlobModel.namespace == self.namespace,
                    BlobModel.key == key,
                )
            )
            session.commit()
            return bool(result.rowcount)

    def list(self, prefix: str = "") -> list[str]:
        with self._session_factory() as session:
            stmt = select(BlobModel.key).where(BlobModel.namespace == self.namespace)
            if prefix:
                stmt = stmt.where(BlobModel.key.startswith(prefix, autoescape=True))
            return list(session.scalars(stmt.order_by(BlobModel.key)))

    def documents(self, prefix: str = "") -> list[tuple[str, Any]]:
        """Return ``(key, decoded JSON)`` pairs in a single query."""
        with self._session_factory() as session:
            stmt = select(BlobModel).where(
                BlobModel.namespace == self.namespace,
                BlobModel.is_json.is_(True),
            )
            if prefix:
                stmt = stmt.where(BlobModel.key.startswith(prefix, autoescape=True))
            rows = session.scalars(stmt.order_by(BlobModel.key)).all()
            return [(row.key, json.loads(row.payload.decode("utf-8"))) for row in rows]

    def _upsert(self, key: str, payload: bytes, *, content_type: str, is_json: bool) -> None:
        with self._session_factory() as session:
            row = session.get(BlobModel, (self.namespace, key))
            if row is None:
                row = BlobModel(namespace=self.namespace, key=key)
                session.add(row)
            row.payload = payload
            row.content_type = content_type
            row.is_json = is_json
            row.updated_at = datetime.now(timezone.utc)
            session.commit()


__all__ = [
    "BlobNamespace",
    "BlobRecord",
    "BlobStore",
    "JSON_CONTENT_TYPE",
    "SqlAlchemyBlobStore",
]
