"""Cron entry point publishing queued items whose scheduled time has passed."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from datetime import datetime

from src.studio.catalog.catalog_writer import BlobCatalogWriter
from src.studio.config import load_config
from src.studio.logging import configure_logging
from src.studio.media.transform import MediaTransformEngine
from src.studio.notify.notifier import build_notifier
from src.studio.pipeline.activity_log import ActivityLog
from src.studio.pipeline.pipeline_models import parse_timestamp
from src.studio.pipeline.pipeline_repository import PipelineRepository
from src.studio.pipeline.pipeline_service import PipelineService
from src.studio.scheduler.scheduled_publisher import ScheduledPublisher
from src.studio.settings.settings_repository import CreatorSettingsRepository
from src.studio.storage.asset_store import AssetStore
from src.studio.storage.blob_store import BlobNamespace, SqlAlchemyBlobStore


@dataclass(slots=True)
class SweepSummary:
    published: list[str] = field(default_factory=list)
    failed: int = 0
    dry_run: bool = False


def build_publisher() -> ScheduledPublisher:
    config = load_config()

    def store(namespace: str) -> SqlAlchemyBlobStore:
        return SqlAlchemyBlobStore(config.session_factory, namespace)

    notifier = build_notifier(config.notifier)
    assets = AssetStore(store(BlobNamespace.ASSETS))
    repo = PipelineRepository(store(BlobNamespace.PIPELINE))
    pipeline = PipelineService(
        repo=repo,
        assets=assets,
        activity=ActivityLog(store(BlobNamespace.LOGS)),
        engine=MediaTransformEngine(assets, config.transform_limits),
        catalog=BlobCatalogWriter(store(BlobNamespace.CONTENT)),
        notifier=notifier,
        settings_repo=CreatorSettingsRepository(
            store(BlobNamespace.CREATOR_CONFIG), config.pipeline_limits
        ),
    )
    return ScheduledPublisher(repo=repo, pipeline=pipeline, notifier=notifier)


def perform_sweep(
    publisher: ScheduledPublisher,
    *,
    dry_run: bool,
    reference_time: datetime | None = None,
) -> SweepSummary:
    """Publish due items (or only list them) and return summary counters."""
    if dry_run:
        return SweepSummary(published=publisher.preview(reference_time), dry_run=True)
    result = publisher.sweep(reference_time)
    return SweepSummary(published=result.published, failed=len(result.failed))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Publish scheduled pipeline items.")
    parser.add_argument("--dry-run", action="store_true", help="Only list due items without publishing.")
    parser.add_argument("--now", default=None, help="ISO timestamp to evaluate schedules against.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None, publisher: ScheduledPublisher | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        summary = perform_sweep(
            publisher or build_publisher(),
            dry_run=args.dry_run,
            reference_time=parse_timestamp(args.now),
        )
    except Exception as exc:
        print(f"sweep failed: {exc}", file=sys.stderr)
        return 2

    if summary.dry_run:
        print(f"sweep dry-run, due={len(summary.published)}", file=sys.stdout)
        for item_id in summary.published:
            print(f"  {item_id}", file=sys.stdout)
    else:
        print(
            f"sweep done, published={len(summary.published)}, failed={summary.failed}",
            file=sys.stdout,
        )
    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
