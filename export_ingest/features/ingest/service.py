"""Ingest service: one export file into one atomic, date-ranged batch.

Flow: detect format -> prepare datastore -> ensure schema -> insert batch ->
stream normalized rows in chunks -> commit.

CRITICAL: The batch and all of its rows are written in a single transaction.
Any failure rolls it back, so a batch is either fully visible or absent.
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterator
from contextlib import closing, contextmanager
from datetime import UTC, datetime
from itertools import islice
from pathlib import Path

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from export_ingest.core.config import get_settings
from export_ingest.core.database import ensure_schema, get_engine, get_session_maker
from export_ingest.core.exceptions import (
    FileSystemError,
    IngestError,
    InvalidInputError,
    WriteError,
)
from export_ingest.core.logging import get_logger, ingest_log_context
from export_ingest.features.ingest.adapters import (
    ExportReader,
    detect_export_format,
    reader_for_format,
)
from export_ingest.features.ingest.assembler import assemble_rows
from export_ingest.features.ingest.models import ExportRow, IngestBatch
from export_ingest.features.ingest.schemas import BatchSummary, RowDocument

logger = get_logger(__name__)


@contextmanager
def ingest_phase(phase: str) -> Iterator[None]:
    """Tag errors raised inside the block with the ingestion phase.

    IngestError subclasses keep their type. SQLAlchemy failures become
    WriteError and filesystem failures become FileSystemError, both chained
    to the original exception.

    Args:
        phase: Phase name recorded on the error.
    """
    try:
        yield
    except IngestError as exc:
        if exc.phase is None:
            exc.phase = phase
        raise
    except SQLAlchemyError as exc:
        raise WriteError(
            f"datastore write failed: {exc.__class__.__name__}",
            details={"error": str(exc.orig) if getattr(exc, "orig", None) else str(exc)},
            phase=phase,
        ) from exc
    except OSError as exc:
        raise FileSystemError(
            f"filesystem operation failed: {exc}",
            details={"filename": exc.filename} if exc.filename else None,
            phase=phase,
        ) from exc


def utc_timestamp() -> str:
    """Current UTC time as RFC 3339 with second precision."""
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def serialize_document(document: RowDocument) -> str:
    """Serialize a row document to JSON, keeping header order."""
    return json.dumps(document, ensure_ascii=False)


async def insert_row_chunk(
    session: AsyncSession,
    batch_id: int,
    chunk: list[tuple[int, RowDocument]],
) -> None:
    """Insert a chunk of numbered row documents for a batch.

    Args:
        session: Session holding the open write transaction.
        batch_id: Owning batch identifier.
        chunk: (ordinal_position, document) pairs.
    """
    await session.execute(
        insert(ExportRow),
        [
            {
                "batch_id": batch_id,
                "row_index": ordinal,
                "data_json": serialize_document(document),
            }
            for ordinal, document in chunk
        ],
    )


async def _insert_batch(
    session: AsyncSession,
    range_start: str,
    range_end: str,
    filename: str,
) -> int:
    batch = IngestBatch(
        range_start=range_start,
        range_end=range_end,
        filename=filename,
        created_at=utc_timestamp(),
    )
    with ingest_phase("insert_batch"):
        session.add(batch)
        await session.flush()
    return batch.id


async def _stream_rows(
    session: AsyncSession,
    batch_id: int,
    reader: ExportReader,
    export_path: Path,
    chunk_size: int,
) -> int:
    row_count = 0
    with closing(reader.iter_rows(export_path)) as cells:
        documents = assemble_rows(cells)
        while True:
            with ingest_phase("read_export"):
                chunk = list(islice(documents, chunk_size))
            if not chunk:
                break

            with ingest_phase("insert_rows"):
                await insert_row_chunk(session, batch_id, chunk)
            row_count += len(chunk)

            logger.debug(
                "ingest.rows_inserted",
                batch_id=batch_id,
                chunk_rows=len(chunk),
                total_rows=row_count,
            )
    return row_count


async def ingest_export(
    datastore_path: str | Path,
    export_path: str | Path,
    range_start: str,
    range_end: str,
    *,
    batch_size: int | None = None,
) -> BatchSummary:
    """Ingest an export file as one batch of normalized rows.

    The format is resolved from the extension before the datastore is
    touched, so unsupported files leave no trace. The range bounds are
    stored and echoed as given; no date arithmetic happens here.

    Args:
        datastore_path: SQLite file (created with its directory if missing).
        export_path: Export file (.xlsx, .xls or .csv).
        range_start: Reporting range start (YYYY-MM-DD).
        range_end: Reporting range end (YYYY-MM-DD).
        batch_size: Rows per bulk insert. Defaults to settings.ingest_batch_size.

    Returns:
        Summary of the committed batch.

    Raises:
        InvalidInputError: If batch_size is below 1.
        UnsupportedFormatError: If the extension is not supported.
        OpenError: If the export cannot be opened or decoded.
        NoSheetsError: If a workbook has no sheets.
        SheetAccessError: If a workbook's first sheet cannot be read.
        WriteError: If any datastore write or the commit fails.
        FileSystemError: If a filesystem operation fails.
    """
    export_path = Path(export_path)
    datastore_path = Path(datastore_path)
    started = time.perf_counter()

    with ingest_log_context(export_path.name):
        try:
            logger.info(
                "ingest.started",
                export_path=str(export_path),
                datastore=str(datastore_path),
                range_start=range_start,
                range_end=range_end,
            )

            with ingest_phase("validate_input"):
                chunk_size = _resolve_chunk_size(batch_size)

            with ingest_phase("detect_format"):
                export_format = detect_export_format(export_path)
            reader = reader_for_format(export_format)

            with ingest_phase("prepare_datastore"):
                datastore_path.parent.mkdir(parents=True, exist_ok=True)

            engine = get_engine(datastore_path)
            try:
                with ingest_phase("ensure_schema"):
                    async with engine.begin() as conn:
                        await ensure_schema(conn)
                logger.debug("ingest.schema_ready", datastore=str(datastore_path))

                session_maker = get_session_maker(engine)
                async with session_maker() as session:
                    try:
                        batch_id = await _insert_batch(
                            session, range_start, range_end, export_path.name
                        )
                        logger.info(
                            "ingest.batch_created",
                            batch_id=batch_id,
                            format=export_format.value,
                        )

                        row_count = await _stream_rows(
                            session, batch_id, reader, export_path, chunk_size
                        )

                        with ingest_phase("commit"):
                            await session.commit()
                    except Exception:
                        await session.rollback()
                        raise
            finally:
                await engine.dispose()

            logger.info(
                "ingest.completed",
                batch_id=batch_id,
                format=export_format.value,
                rows=row_count,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )

            return BatchSummary(
                id=batch_id,
                range_start=range_start,
                range_end=range_end,
                filename=export_path.name,
                rows=row_count,
            )

        except IngestError as exc:
            logger.error(
                "ingest.failed",
                error=exc.message,
                error_type=type(exc).__name__,
                error_code=exc.code,
                phase=exc.phase,
                details=exc.details,
            )
            raise
        except Exception as exc:
            logger.error(
                "ingest.failed",
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise


def _resolve_chunk_size(batch_size: int | None) -> int:
    if batch_size is None:
        return get_settings().ingest_batch_size
    if batch_size < 1:
        raise InvalidInputError(
            f"batch_size must be >= 1, got {batch_size}",
            details={"batch_size": batch_size},
        )
    return batch_size
