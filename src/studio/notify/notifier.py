"""Outbound notification port.

Pipeline code calls :func:`safe_notify` at fixed points (ingest, process,
publish, schedule sweep). Delivery is fire-and-forget: the HTTP notifier hands
the request to a small thread pool and only logs failures.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from enum import StrEnum
from typing import Any, Mapping, Protocol

import httpx

from ..config import NotifierConfig
from ..exceptions import NotificationError

logger = logging.getLogger(__name__)


class NotificationEvent(StrEnum):
    PIPELINE_INGEST = "pipeline_ingest"
    PIPELINE_PUBLISH = "pipeline_publish"
    PIPELINE_ERROR = "pipeline_error"
    CONTENT_DROP = "content_drop"
    SCHEDULE_SWEEP = "pipeline_schedule_sweep"


class Notifier(Protocol):
    def notify(self, event_type: str, payload: Mapping[str, Any]) -> None: ...


class NullNotifier:
    """Used when no ``NOTIFY_URL`` is configured."""

    def notify(self, event_type: str, payload: Mapping[str, Any]) -> None:
        logger.info("notify.skipped", extra={"event_type": event_type})


class HttpNotifier:
    """POST ``{"type", "data"}`` to the notification endpoint off the caller's thread."""

    def __init__(
        self,
        url: str,
        *,
        internal_key: str = "",
        timeout_seconds: float = 5.0,
        max_workers: int = 2,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._headers = {"x-internal-key": internal_key} if internal_key else {}
        self._timeout = timeout_seconds
        self._transport = transport
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def notify(self, event_type: str, payload: Mapping[str, Any]) -> None:
        future = self._executor.submit(self._deliver, event_type, dict(payload))
        future.add_done_callback(self._log_outcome)

    def _deliver(self, event_type: str, payload: dict[str, Any]) -> str:
        body = {"type": event_type, "data": payload}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._url, json=body, headers=self._headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"{event_type}: {exc}") from exc
        return event_type

    @staticmethod
    def _log_outcome(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.warning("notify.failed", extra={"error": str(exc)})
        else:
            logger.info("notify.sent", extra={"event_type": future.result()})

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def build_notifier(config: NotifierConfig) -> Notifier:
    if not config.url:
        return NullNotifier()
    return HttpNotifier(
        config.url,
        internal_key=config.internal_key,
        timeout_seconds=config.timeout_seconds,
    )


def safe_notify(notifier: Notifier, event_type: str, payload: Mapping[str, Any]) -> None:
    """Invoke ``notifier`` and swallow any failure."""
    try:
        notifier.notify(event_type, payload)
    except Exception as exc:
        logger.warning(
            "notify.dispatch_failed",
            extra={"event_type": event_type, "error": str(exc)},
        )
