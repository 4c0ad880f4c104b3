"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .lifecycle import run_periodic_sweep
from .logging import configure_logging
from .notify.notifier import Notifier

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    config: AppConfig = app.state.config
    shutdown_event = asyncio.Event()
    task: asyncio.Task[None] | None = None
    if config.scheduler.enabled:
        task = asyncio.create_task(
            run_periodic_sweep(
                publisher=app.state.scheduled_publisher,
                shutdown_event=shutdown_event,
                interval_seconds=config.scheduler.interval_seconds,
            )
        )
        logger.info("scheduler.started", extra={"interval_seconds": config.scheduler.interval_seconds})
    try:
        yield
    finally:
        shutdown_event.set()
        if task is not None:
            await task
        close = getattr(app.state.notifier, "close", None)
        if close is not None:
            close(wait=False)


def create_app(config: AppConfig | None = None, *, notifier: Notifier | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="Creator Pipeline", lifespan=_lifespan)
    include_routers(app, cfg, notifier=notifier)
    return app


app = create_app()
