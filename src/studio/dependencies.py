"""Dependency wiring helpers."""

from fastapi import FastAPI

from .catalog.catalog_writer import BlobCatalogWriter
from .config import AppConfig
from .ingest.ingest_api import router as ingest_router
from .ingest.ingest_service import IngestService
from .ingest.validation import IngestValidator
from .media.asset_service import AssetService
from .media.media_api import router as media_router
from .media.transform import MediaTransformEngine
from .notify.notifier import Notifier, build_notifier
from .pipeline.activity_log import ActivityLog
from .pipeline.item_locks import ItemLocks
from .pipeline.pipeline_api import router as pipeline_router
from .pipeline.pipeline_repository import PipelineRepository
from .pipeline.pipeline_service import PipelineService
from .scheduler.scheduled_publisher import ScheduledPublisher
from .settings.settings_api import router as settings_router
from .settings.settings_repository import CreatorSettingsRepository
from .storage.asset_store import AssetStore
from .storage.blob_store import BlobNamespace, SqlAlchemyBlobStore


def include_routers(app: FastAPI, config: AppConfig, *, notifier: Notifier | None = None) -> None:
    """Mount module routers and attach services."""

    def store(namespace: str) -> SqlAlchemyBlobStore:
        return SqlAlchemyBlobStore(config.session_factory, namespace)

    notifier = notifier or build_notifier(config.notifier)
    assets = AssetStore(store(BlobNamespace.ASSETS))
    repo = PipelineRepository(store(BlobNamespace.PIPELINE))
    activity = ActivityLog(store(BlobNamespace.LOGS))
    settings_repo = CreatorSettingsRepository(store(BlobNamespace.CREATOR_CONFIG), config.pipeline_limits)
    catalog = BlobCatalogWriter(store(BlobNamespace.CONTENT))

    ingest_service = IngestService(
        validator=IngestValidator(),
        settings_repo=settings_repo,
        repo=repo,
        assets=assets,
        activity=activity,
        notifier=notifier,
    )
    pipeline_service = PipelineService(
        repo=repo,
        assets=assets,
        activity=activity,
        engine=MediaTransformEngine(assets, config.transform_limits),
        catalog=catalog,
        notifier=notifier,
        settings_repo=settings_repo,
        batch_concurrency=config.transform_limits.batch_concurrency,
        locks=ItemLocks(),
    )
    scheduled_publisher = ScheduledPublisher(
        repo=repo,
        pipeline=pipeline_service,
        notifier=notifier,
    )

    app.state.config = config
    app.state.notifier = notifier
    app.state.ingest_service = ingest_service
    app.state.pipeline_service = pipeline_service
    app.state.scheduled_publisher = scheduled_publisher
    app.state.asset_service = AssetService(assets)
    app.state.activity_log = activity
    app.state.settings_repo = settings_repo
    app.state.catalog = catalog

    app.include_router(media_router)
    app.include_router(settings_router)
    app.include_router(ingest_router)
    app.include_router(pipeline_router)
