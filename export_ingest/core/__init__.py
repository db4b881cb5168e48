"""Core infrastructure: config, database, logging, exceptions."""

from export_ingest.core.config import Settings, get_settings
from export_ingest.core.database import Base, ensure_schema, get_engine, get_session_maker
from export_ingest.core.logging import get_logger, ingest_log_context, ingest_run_ctx

__all__ = [
    "Base",
    "Settings",
    "ensure_schema",
    "get_engine",
    "get_logger",
    "get_session_maker",
    "get_settings",
    "ingest_log_context",
    "ingest_run_ctx",
]
