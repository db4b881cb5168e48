"""Helpers at the boundary with the export job runner and HTTP layer.

The automation job writes its export into the downloads directory and prints
a line such as::

    [DOWNLOAD] saved to: /srv/downloads/ventas_2024-05-01_a_2024-05-09.xlsx (12345 bytes)

These helpers turn that output into a validated file path and compute the
reporting range the ingestion is tagged with.
"""

from __future__ import annotations

from datetime import date, timedelta
from pathlib import Path

import structlog

from export_ingest.core.exceptions import ExportPathError

logger = structlog.get_logger()

DOWNLOAD_MARKER = "[DOWNLOAD] saved to:"

CONTENT_TYPES: dict[str, str] = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".csv": "text/csv",
}


def parse_query_date(value: str | None) -> date | None:
    """Parse a YYYY-MM-DD query date.

    Args:
        value: Date string, possibly empty.

    Returns:
        Parsed date, or None when the value is empty or malformed.
    """
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        logger.warning("ingest.query_date_invalid", value=value)
        return None


def compute_report_range(
    query_date: date | None,
    today: date | None = None,
) -> tuple[str, str]:
    """Compute the reporting range for a consultation date.

    The range starts on the first day of the query date's month and ends the
    day before the query date. On the first of a month the end is clamped to
    the start, so the range is never inverted.

    Args:
        query_date: Consultation date; None means today.
        today: Reference date used when query_date is None.

    Returns:
        Tuple of (range_start, range_end) as YYYY-MM-DD strings.
    """
    base = query_date or today or date.today()
    start = base.replace(day=1)
    end = max(base - timedelta(days=1), start)
    return start.isoformat(), end.isoformat()


def extract_download_path(stdout: str) -> str | None:
    """Find the saved export path in the automation job's output.

    Args:
        stdout: Captured standard output of the job.

    Returns:
        The reported path without its trailing size, or None if absent.
    """
    for line in stdout.splitlines():
        line = line.strip()
        if not line.startswith(DOWNLOAD_MARKER):
            continue
        rest = line[len(DOWNLOAD_MARKER) :].strip()
        size_at = rest.rfind(" (")
        if size_at != -1:
            rest = rest[:size_at].strip()
        return rest or None
    return None


def resolve_export_path(path: str | Path, downloads_dir: str | Path) -> Path:
    """Resolve an export path and check it lives under the downloads directory.

    CRITICAL: Prevents ingesting (or streaming back) files outside the
    directory the automation job writes to.

    Args:
        path: Reported export path.
        downloads_dir: Allowed root directory.

    Returns:
        Absolute, resolved export path.

    Raises:
        ExportPathError: If the path escapes the downloads directory.
    """
    root = Path(downloads_dir).resolve()
    resolved = Path(path).resolve()
    try:
        resolved.relative_to(root)
    except ValueError:
        logger.warning(
            "ingest.export_path_rejected",
            path=str(path),
            downloads_dir=str(root),
        )
        raise ExportPathError(
            "download path outside allowed directory",
            details={"path": str(path), "downloads_dir": str(root)},
        ) from None
    return resolved


def content_type_for(path: str | Path) -> str:
    """Return the MIME type used when handing an export file back to clients."""
    return CONTENT_TYPES.get(Path(path).suffix.lower(), "application/octet-stream")
