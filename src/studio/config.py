"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db

MB = 1024 * 1024


@dataclass(slots=True)
class PipelineLimits:
    """Defaults applied to every creator without an explicit override."""

    allowed_extensions: Sequence[str]
    image_max_bytes: int
    video_max_bytes: int
    other_max_bytes: int


@dataclass(slots=True)
class TransformLimits:
    max_dimension: int
    quality: int
    thumbnail_width: int
    thumbnail_height: int
    thumbnail_quality: int
    batch_concurrency: int


@dataclass(slots=True)
class SchedulerConfig:
    enabled: bool
    interval_seconds: int


@dataclass(slots=True)
class NotifierConfig:
    url: str
    internal_key: str
    timeout_seconds: float


@dataclass(slots=True)
class AppConfig:
    pipeline_limits: PipelineLimits
    transform_limits: TransformLimits
    scheduler: SchedulerConfig
    notifier: NotifierConfig
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: Sequence[str]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    return tuple(part.strip().lower().lstrip(".") for part in raw.split(",") if part.strip())


def build_session_factory(database_url: str) -> tuple[Engine, sessionmaker[Session]]:
    """Create engine + session factory and make sure tables exist."""
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, future=True, connect_args=connect_args)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)
    return engine, session_factory


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    pipeline_limits = PipelineLimits(
        allowed_extensions=_env_list(
            "PIPELINE_ALLOWED_EXTENSIONS",
            ("jpg", "jpeg", "png", "webp", "gif", "mp4", "mov", "webm"),
        ),
        image_max_bytes=int(os.getenv("PIPELINE_IMAGE_MAX_BYTES", 50 * MB)),
        video_max_bytes=int(os.getenv("PIPELINE_VIDEO_MAX_BYTES", 500 * MB)),
        other_max_bytes=int(os.getenv("PIPELINE_OTHER_MAX_BYTES", 25 * MB)),
    )

    transform_limits = TransformLimits(
        max_dimension=int(os.getenv("TRANSFORM_MAX_DIMENSION", 2048)),
        quality=int(os.getenv("TRANSFORM_QUALITY", 82)),
        thumbnail_width=int(os.getenv("TRANSFORM_THUMBNAIL_WIDTH", 400)),
        thumbnail_height=int(os.getenv("TRANSFORM_THUMBNAIL_HEIGHT", 400)),
        thumbnail_quality=int(os.getenv("TRANSFORM_THUMBNAIL_QUALITY", 70)),
        batch_concurrency=int(os.getenv("TRANSFORM_BATCH_CONCURRENCY", 4)),
    )

    scheduler = SchedulerConfig(
        enabled=_env_bool("SCHEDULER_ENABLED", True),
        interval_seconds=int(os.getenv("SCHEDULER_INTERVAL_SECONDS", 15 * 60)),
    )

    notifier = NotifierConfig(
        url=os.getenv("NOTIFY_URL", ""),
        internal_key=os.getenv("NOTIFY_INTERNAL_KEY", ""),
        timeout_seconds=float(os.getenv("NOTIFY_TIMEOUT_SECONDS", 5.0)),
    )

    database_url = os.getenv("DATABASE_URL", "sqlite:///creator_pipeline.db")
    engine, session_factory = build_session_factory(database_url)

    return AppConfig(
        pipeline_limits=pipeline_limits,
        transform_limits=transform_limits,
        scheduler=scheduler,
        notifier=notifier,
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
    )
