"""Exception hierarchy for export ingestion.

Every error carries a machine-readable code, a details mapping, and the
ingestion phase it was raised in, so callers can report failures without
parsing messages.
"""

from typing import Any


class IngestError(Exception):
    """Base exception for ExportIngest errors.

    All application-specific exceptions should inherit from this class.
    """

    default_code: str = "INGEST_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        phase: str | None = None,
    ) -> None:
        """Initialize ingestion error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code (defaults to the class code).
            details: Additional error context.
            phase: Ingestion phase that failed, if known.
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.phase = phase

    @property
    def title(self) -> str:
        """Short summary of the problem type."""
        return self.code.replace("_", " ").title()

    def __str__(self) -> str:
        if self.phase:
            return f"{self.message} (phase: {self.phase})"
        return self.message


class UnsupportedFormatError(IngestError):
    """Export file extension is not one of .xlsx, .xls or .csv."""

    default_code = "UNSUPPORTED_FORMAT"

    def __init__(self, extension: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=f"unsupported export extension: {extension or '<none>'}",
            details={"extension": extension, **(details or {})},
        )
        self.extension = extension


class NoSheetsError(IngestError):
    """Workbook contains no sheets."""

    default_code = "NO_SHEETS"


class SheetAccessError(IngestError):
    """First sheet of a workbook exists but cannot be read."""

    default_code = "SHEET_ACCESS"


class OpenError(IngestError):
    """Export file cannot be opened or decoded in its expected format."""

    default_code = "OPEN_ERROR"


class WriteError(IngestError):
    """A datastore write (schema, batch, rows, commit) failed."""

    default_code = "WRITE_ERROR"


class FileSystemError(IngestError):
    """Filesystem-level failure such as directory creation or file reads."""

    default_code = "IO_ERROR"


class ExportPathError(IngestError):
    """Export path resolves outside the allowed downloads directory."""

    default_code = "EXPORT_PATH"


class InvalidInputError(IngestError):
    """Caller-supplied argument is out of range."""

    default_code = "INVALID_INPUT"
