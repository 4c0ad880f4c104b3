"""Create the blob table and report what each pipeline namespace holds."""

from __future__ import annotations

from sqlalchemy import func, select

from src.studio.config import AppConfig, load_config
from src.studio.db.db_models import BlobModel
from src.studio.storage.blob_store import BlobNamespace

NAMESPACES = (
    BlobNamespace.PIPELINE,
    BlobNamespace.ASSETS,
    BlobNamespace.LOGS,
    BlobNamespace.CONTENT,
    BlobNamespace.CREATOR_CONFIG,
)


def namespace_counts(config: AppConfig) -> dict[str, int]:
    counts = dict.fromkeys(NAMESPACES, 0)
    stmt = select(BlobModel.namespace, func.count()).group_by(BlobModel.namespace)
    with config.session_factory() as session:
        for namespace, count in session.execute(stmt):
            counts[namespace] = count
    return counts


def main(config: AppConfig | None = None) -> int:
    cfg = config or load_config()
    print(f"blob table ready at {cfg.database_url}")
    for namespace, count in namespace_counts(cfg).items():
        print(f"  {namespace}: {count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
