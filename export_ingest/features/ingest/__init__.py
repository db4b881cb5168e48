"""Ingest feature: export files into atomic, date-ranged batches."""

from export_ingest.features.ingest.adapters import (
    CsvExportReader,
    ExportFormat,
    ExportReader,
    XlsExportReader,
    XlsxExportReader,
    detect_export_format,
    reader_for_path,
)
from export_ingest.features.ingest.assembler import assemble_rows
from export_ingest.features.ingest.headers import normalize_header
from export_ingest.features.ingest.models import ExportRow, IngestBatch
from export_ingest.features.ingest.schemas import BatchSummary, RowDocument
from export_ingest.features.ingest.service import ingest_export

__all__ = [
    "BatchSummary",
    "CsvExportReader",
    "ExportFormat",
    "ExportReader",
    "ExportRow",
    "IngestBatch",
    "RowDocument",
    "XlsExportReader",
    "XlsxExportReader",
    "assemble_rows",
    "detect_export_format",
    "ingest_export",
    "normalize_header",
    "reader_for_path",
]
