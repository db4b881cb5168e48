"""Ingest ORM models for batches and their normalized rows.

- IngestBatch: one committed ingestion run, scoped to a date range and file.
- ExportRow: one non-blank data row of a batch, stored as a JSON document.

Both relations are append-only: rows are written in the same transaction as
their batch and are never updated afterwards.
"""

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from export_ingest.core.database import Base


class IngestBatch(Base):
    """Ingestion batch table.

    Dates and timestamps are stored as text exactly as they are exchanged with
    callers (YYYY-MM-DD ranges, RFC 3339 UTC creation time).

    Attributes:
        id: Store-assigned primary key, never reused (AUTOINCREMENT).
        range_start: First day of the reporting range.
        range_end: Last day of the reporting range.
        filename: Basename of the ingested export file.
        created_at: UTC creation timestamp (e.g. "2024-05-10T08:30:00Z").
    """

    __tablename__ = "ingest_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    range_start: Mapped[str] = mapped_column(Text)
    range_end: Mapped[str] = mapped_column(Text)
    filename: Mapped[str] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(Text)

    rows: Mapped[list["ExportRow"]] = relationship(back_populates="batch")

    __table_args__ = {"sqlite_autoincrement": True}


class ExportRow(Base):
    """Normalized export row table.

    Attributes:
        id: Store-assigned primary key.
        batch_id: Owning batch (FK to ingest_batches).
        row_index: 1-based position among the batch's non-blank rows.
        data_json: JSON object mapping normalized column key to cell text.
    """

    __tablename__ = "export_rows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    batch_id: Mapped[int] = mapped_column(Integer, ForeignKey("ingest_batches.id"))
    row_index: Mapped[int] = mapped_column(Integer)
    data_json: Mapped[str] = mapped_column(Text)

    batch: Mapped["IngestBatch"] = relationship(back_populates="rows")

    __table_args__ = (
        Index("ix_export_rows_batch_id", "batch_id"),
        {"sqlite_autoincrement": True},
    )
