"""Format adapters exposing export files as rows of cell text.

Each adapter turns one file format into the same shape: an iterator of rows,
each row an ordered list of cell text, the first row being the header.

- XlsxExportReader: modern spreadsheet container (openpyxl)
- XlsExportReader: legacy binary workbook (xlrd)
- CsvExportReader: delimited UTF-8 text (csv)

CRITICAL: Readers hold no state between calls and release their file handles
on every exit path, including when the consumer stops iterating early.
"""

from __future__ import annotations

import csv
import struct
from abc import ABC, abstractmethod
from collections.abc import Iterator
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

import openpyxl
import structlog
import xlrd
from xlrd.compdoc import CompDocError

from export_ingest.core.exceptions import (
    NoSheetsError,
    OpenError,
    SheetAccessError,
    UnsupportedFormatError,
)

logger = structlog.get_logger()


class ExportFormat(str, Enum):
    """Export file formats accepted for ingestion."""

    XLSX = "xlsx"
    XLS = "xls"
    CSV = "csv"


EXTENSION_FORMATS: dict[str, ExportFormat] = {
    ".xlsx": ExportFormat.XLSX,
    ".xls": ExportFormat.XLS,
    ".csv": ExportFormat.CSV,
}


def detect_export_format(path: str | Path) -> ExportFormat:
    """Resolve the export format from the file extension (case-insensitive).

    Args:
        path: Export file path. The file is not touched.

    Returns:
        Detected export format.

    Raises:
        UnsupportedFormatError: If the extension is not .xlsx, .xls or .csv.
    """
    extension = Path(path).suffix.lower()
    try:
        return EXTENSION_FORMATS[extension]
    except KeyError:
        raise UnsupportedFormatError(extension) from None


def cell_to_text(value: Any) -> str:
    """Render a decoded cell value as text.

    Shared by all readers so the same logical content yields the same text
    regardless of format: whole floats lose their ".0", booleans become
    TRUE/FALSE and midnight datetimes collapse to an ISO date.

    Args:
        value: Cell value as returned by the underlying library.

    Returns:
        Cell text (empty string for missing cells).
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    return str(value)


class ExportReader(ABC):
    """Abstract base class for export format adapters.

    CRITICAL: All adapters must yield the header row first, then data rows,
    each as a list of cell text.
    """

    format: ExportFormat

    @abstractmethod
    def iter_rows(self, path: Path) -> Iterator[list[str]]:
        """Iterate the rows of an export file.

        Args:
            path: Export file path.

        Yields:
            Ordered cell text of each row, header first.

        Raises:
            OpenError: If the file cannot be opened or decoded.
        """
        ...


class XlsxExportReader(ExportReader):
    """Reads the first worksheet of an .xlsx workbook.

    The stored sheet dimension is ignored: exporters often write a stale
    ``<dimension>`` tag and read-only mode would stop at it.
    """

    format = ExportFormat.XLSX

    def iter_rows(self, path: Path) -> Iterator[list[str]]:
        try:
            workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
        except Exception as exc:
            raise OpenError(
                f"cannot open xlsx workbook {path.name}: {exc}",
                details={"path": str(path)},
            ) from exc

        try:
            sheet_names = workbook.sheetnames
            if not sheet_names:
                raise NoSheetsError("xlsx has no sheets", details={"path": str(path)})

            sheet = workbook[sheet_names[0]]
            if not hasattr(sheet, "iter_rows"):
                raise SheetAccessError(
                    f"first xlsx sheet '{sheet_names[0]}' is not a worksheet",
                    details={"path": str(path), "sheet": sheet_names[0]},
                )
            sheet.reset_dimensions()

            logger.debug(
                "ingest.reader.opened",
                format=self.format.value,
                sheet=sheet_names[0],
                sheet_count=len(sheet_names),
            )

            try:
                for values in sheet.iter_rows(values_only=True):
                    yield _trim_trailing_empty([cell_to_text(v) for v in values])
            except Exception as exc:
                raise OpenError(
                    f"cannot read xlsx sheet '{sheet_names[0]}' of {path.name}: {exc}",
                    details={"path": str(path), "sheet": sheet_names[0]},
                ) from exc
        finally:
            workbook.close()


class XlsExportReader(ExportReader):
    """Reads the first sheet of a legacy .xls workbook.

    Rows without any cell record are skipped entirely and do not count as
    the header or as a data row.
    """

    format = ExportFormat.XLS
    encoding = "utf-8"

    def iter_rows(self, path: Path) -> Iterator[list[str]]:
        try:
            book = xlrd.open_workbook(
                str(path),
                encoding_override=self.encoding,
                on_demand=True,
                ragged_rows=True,
            )
        except Exception as exc:
            raise OpenError(
                f"cannot open xls workbook {path.name}: {exc}",
                details={"path": str(path)},
            ) from exc

        try:
            if book.nsheets == 0:
                raise NoSheetsError("xls has no sheets", details={"path": str(path)})

            try:
                sheet = book.sheet_by_index(0)
            except (IndexError, struct.error, xlrd.XLRDError, CompDocError) as exc:
                raise SheetAccessError(
                    "failed to open first xls sheet",
                    details={"path": str(path)},
                ) from exc

            logger.debug(
                "ingest.reader.opened",
                format=self.format.value,
                sheet=sheet.name,
                sheet_count=book.nsheets,
                max_row=sheet.nrows - 1,
            )

            try:
                for rowx in range(sheet.nrows):
                    if sheet.row_len(rowx) == 0:
                        continue
                    yield [self._cell_text(book, cell) for cell in sheet.row(rowx)]
            except Exception as exc:
                raise OpenError(
                    f"cannot read xls sheet '{sheet.name}' of {path.name}: {exc}",
                    details={"path": str(path), "sheet": sheet.name},
                ) from exc
        finally:
            book.release_resources()

    @staticmethod
    def _cell_text(book: xlrd.book.Book, cell: xlrd.sheet.Cell) -> str:
        """Render an xlrd cell, resolving dates, booleans and error codes."""
        if cell.ctype == xlrd.XL_CELL_DATE:
            try:
                return cell_to_text(xlrd.xldate_as_datetime(cell.value, book.datemode))
            except (ValueError, OverflowError):
                return cell_to_text(cell.value)
        if cell.ctype == xlrd.XL_CELL_BOOLEAN:
            return cell_to_text(bool(cell.value))
        if cell.ctype == xlrd.XL_CELL_ERROR:
            return xlrd.error_text_from_code.get(cell.value, f"#ERR{cell.value}")
        return cell_to_text(cell.value)


class CsvExportReader(ExportReader):
    """Reads comma-delimited UTF-8 text; ragged records are allowed."""

    format = ExportFormat.CSV
    encoding = "utf-8-sig"

    def iter_rows(self, path: Path) -> Iterator[list[str]]:
        try:
            handle = path.open(newline="", encoding=self.encoding)
        except OSError as exc:
            raise OpenError(
                f"cannot open csv file {path.name}: {exc}",
                details={"path": str(path)},
            ) from exc

        with handle:
            logger.debug("ingest.reader.opened", format=self.format.value)
            reader = csv.reader(handle)
            try:
                for record in reader:
                    # Empty physical lines carry no record
                    if not record:
                        continue
                    yield record
            except (csv.Error, UnicodeDecodeError) as exc:
                raise OpenError(
                    f"cannot parse csv file {path.name} near line {reader.line_num}: {exc}",
                    details={"path": str(path), "line": reader.line_num},
                ) from exc


_READERS: dict[ExportFormat, type[ExportReader]] = {
    ExportFormat.XLSX: XlsxExportReader,
    ExportFormat.XLS: XlsExportReader,
    ExportFormat.CSV: CsvExportReader,
}


def reader_for_format(export_format: ExportFormat) -> ExportReader:
    """Instantiate the adapter for a detected format."""
    return _READERS[export_format]()


def reader_for_path(path: str | Path) -> ExportReader:
    """Instantiate the adapter matching a file's extension.

    Raises:
        UnsupportedFormatError: If the extension is not supported.
    """
    return reader_for_format(detect_export_format(path))


def _trim_trailing_empty(cells: list[str]) -> list[str]:
    end = len(cells)
    while end and cells[end - 1] == "":
        end -= 1
    return cells[:end]
