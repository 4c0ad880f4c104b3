"""Lifecycle helpers wiring background tasks for FastAPI startup."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable

from .pipeline.pipeline_models import utcnow
from .scheduler.scheduled_publisher import ScheduledPublisher, SweepResult


logger = logging.getLogger(__name__)


async def sweep_once(
    *,
    publisher: ScheduledPublisher,
    now: datetime | None = None,
) -> SweepResult:
    """Run one sweep off the event loop; the store calls are blocking."""

    return await asyncio.to_thread(publisher.sweep, now)


async def run_periodic_sweep(
    *,
    publisher: ScheduledPublisher,
    shutdown_event: asyncio.Event,
    interval_seconds: float = 900.0,
    clock: Callable[[], datetime] | None = None,
) -> None:
    """Execute scheduled publishing until ``shutdown_event`` is signalled."""

    interval = max(1.0, float(interval_seconds))
    tick = clock or utcnow
    try:
        while not shutdown_event.is_set():
            now = tick()
            try:
                result = await sweep_once(publisher=publisher, now=now)
            except Exception:  # pragma: no cover - keeps the loop alive
                logger.exception("Scheduled publish sweep failed")
            else:
                if result.count or result.failed:
                    logger.info(
                        "Published %s scheduled items (%s failed)",
                        result.count,
                        len(result.failed),
                    )
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
    except asyncio.CancelledError:  # pragma: no cover - shutdown path
        raise


__all__ = [
    "sweep_once",
    "run_periodic_sweep",
]
