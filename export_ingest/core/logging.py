"""Structured logging with structlog and per-ingestion context.

Every event emitted while an ingestion runs carries the run id and the
export file name, so interleaved runs can be told apart in the log stream.
"""

import logging
import sys
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from export_ingest.core.config import get_settings

ingest_run_ctx: ContextVar[str | None] = ContextVar("ingest_run_id", default=None)
export_file_ctx: ContextVar[str | None] = ContextVar("export_file", default=None)


def add_ingest_context(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Add the running ingestion's id and export file to log events.

    Values passed explicitly to the log call win over the context.
    """
    run_id = ingest_run_ctx.get()
    if run_id:
        event_dict.setdefault("ingest_run_id", run_id)
    export_file = export_file_ctx.get()
    if export_file:
        event_dict.setdefault("export_file", export_file)
    return event_dict


@contextmanager
def ingest_log_context(export_file: str) -> Iterator[str]:
    """Scope log context to one ingestion.

    Args:
        export_file: Name of the export being ingested.

    Yields:
        The generated run id.
    """
    run_id = uuid.uuid4().hex[:12]
    run_token = ingest_run_ctx.set(run_id)
    file_token = export_file_ctx.set(export_file)
    try:
        yield run_id
    finally:
        export_file_ctx.reset(file_token)
        ingest_run_ctx.reset(run_token)


def configure_logging() -> None:
    """Configure structlog for the application."""
    settings = get_settings()

    shared_processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_ingest_context,
    ]

    if settings.log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(
            ensure_ascii=False
        )
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        context_class=dict,
        # Summary JSON owns stdout in the CLI
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a logger; ingestion context is added by the configured processors."""
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
