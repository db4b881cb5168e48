"""Tests for the ingestion exception hierarchy."""

import pytest

from export_ingest.core.exceptions import (
    ExportPathError,
    InvalidInputError,
    FileSystemError,
    IngestError,
    NoSheetsError,
    OpenError,
    SheetAccessError,
    UnsupportedFormatError,
    WriteError,
)


@pytest.mark.parametrize(
    ("exc_class", "code"),
    [
        (NoSheetsError, "NO_SHEETS"),
        (SheetAccessError, "SHEET_ACCESS"),
        (OpenError, "OPEN_ERROR"),
        (WriteError, "WRITE_ERROR"),
        (FileSystemError, "IO_ERROR"),
        (ExportPathError, "EXPORT_PATH"),
        (InvalidInputError, "INVALID_INPUT"),
    ],
)
def test_default_codes(exc_class, code):
    """Each subclass carries its own machine-readable code."""
    exc = exc_class("boom")
    assert isinstance(exc, IngestError)
    assert exc.code == code
    assert exc.details == {}
    assert exc.phase is None


def test_explicit_code_overrides_default():
    exc = OpenError("boom", code="CUSTOM")
    assert exc.code == "CUSTOM"


def test_str_includes_phase():
    exc = WriteError("datastore write failed", phase="commit")
    assert str(exc) == "datastore write failed (phase: commit)"


def test_str_without_phase():
    assert str(OpenError("bad file")) == "bad file"


def test_title_from_code():
    assert SheetAccessError("x").title == "Sheet Access"


def test_unsupported_format_records_extension():
    exc = UnsupportedFormatError(".pdf")
    assert exc.extension == ".pdf"
    assert exc.details == {"extension": ".pdf"}
    assert exc.message == "unsupported export extension: .pdf"


def test_unsupported_format_without_extension():
    assert "<none>" in UnsupportedFormatError("").message
