"""
structlog setup for the API and both generation pipelines.

Every event carries the request's correlation id (from asgi-correlation-id)
when one exists, plus whatever run context a pipeline runner has bound
(``pipeline``, ``thread_id``). Development renders to the console, production
renders JSON lines.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from asgi_correlation_id import correlation_id

from pitchdeck.core.config import get_settings

# Libraries that log every request or query at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine", "google_genai")


def add_correlation_id(
    logger: structlog.types.WrappedLogger, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Copy the current HTTP request's correlation id onto the event."""
    request_id = correlation_id.get()
    if request_id is not None:
        event_dict.setdefault("correlation_id", request_id)
    return event_dict


def log_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        add_correlation_id,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging() -> None:
    settings = get_settings()

    if settings.app_env == "production":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[*log_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def run_context(pipeline: str, thread_id: str) -> Iterator[None]:
    """Bind the pipeline name and thread id to every event logged inside the block."""
    with structlog.contextvars.bound_contextvars(pipeline=pipeline, thread_id=thread_id):
        yield


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
