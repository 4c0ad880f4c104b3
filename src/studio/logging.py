"""Logging configuration for the creator pipeline."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: int = logging.INFO) -> None:
    """Configure stdlib logging and structlog JSON rendering."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def bind_item_context(item_id: str, action: str) -> None:
    """Attach pipeline item context to structlog events on this task/thread."""
    structlog.contextvars.bind_contextvars(item_id=item_id, action=action)


def clear_item_context() -> None:
    structlog.contextvars.clear_contextvars()
