"""Async SQLAlchemy 2.0 database setup for the SQLite datastore."""

from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from export_ingest.core.config import get_settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


def datastore_url(datastore_path: str | Path) -> str:
    """Build the aiosqlite URL for a datastore file.

    Args:
        datastore_path: Path to the SQLite file (created if missing).

    Returns:
        SQLAlchemy database URL.
    """
    return f"sqlite+aiosqlite:///{Path(datastore_path)}"


def get_engine(datastore_path: str | Path | None = None) -> AsyncEngine:
    """Create async engine for a datastore file.

    Args:
        datastore_path: SQLite file path. Defaults to the configured datastore.
    """
    settings = get_settings()
    engine: AsyncEngine = create_async_engine(
        datastore_url(datastore_path or settings.datastore_path),
        echo=settings.debug,
    )
    return engine


def get_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session maker bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def ensure_schema(conn: AsyncConnection) -> None:
    """Create every mapped table and index that does not exist yet.

    Safe to call on every ingestion: existing tables are left untouched and
    no data is modified.

    Args:
        conn: Open async connection to the datastore.
    """
    await conn.run_sync(Base.metadata.create_all, checkfirst=True)
