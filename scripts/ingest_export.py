#!/usr/bin/env python
"""Ingest an ERP export file into the SQLite datastore.

Usage:
    # Ingest a file, range computed from today
    uv run python scripts/ingest_export.py downloads/ventas.xlsx

    # Range computed from a consultation date
    uv run python scripts/ingest_export.py downloads/ventas.csv --date 2024-05-10

    # Explicit range and datastore
    uv run python scripts/ingest_export.py downloads/ventas.xls \
        --range-start 2024-05-01 --range-end 2024-05-09 --db data/erp.sqlite

    # Take the export path from the automation job's captured output
    uv run python scripts/ingest_export.py --job-output logs/export_job.log --date 2024-05-10
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from pathlib import Path

from export_ingest.core.config import get_settings
from export_ingest.core.exceptions import ExportPathError, IngestError
from export_ingest.core.logging import configure_logging
from export_ingest.features.ingest.exports import (
    compute_report_range,
    extract_download_path,
    resolve_export_path,
)
from export_ingest.features.ingest.service import ingest_export


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format.

    Raises:
        argparse.ArgumentTypeError: If date format is invalid.
    """
    try:
        return date.fromisoformat(date_str)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD") from e


def positive_int(value: str) -> int:
    """Parse a strictly positive integer.

    Raises:
        argparse.ArgumentTypeError: If the value is not an integer >= 1.
    """
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from e
    if number < 1:
        raise argparse.ArgumentTypeError(f"Must be >= 1, got {number}")
    return number


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Ingest an ERP export (.xlsx, .xls, .csv) as one dated batch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument(
        "export_path",
        nargs="?",
        type=Path,
        help="Export file to ingest",
    )
    source_group.add_argument(
        "--job-output",
        type=Path,
        help="Captured output of the export job containing a [DOWNLOAD] line",
    )

    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite datastore path (default: DATASTORE_PATH setting)",
    )
    parser.add_argument(
        "--date",
        type=parse_date,
        default=None,
        help="Consultation date; range is month start to the day before",
    )
    parser.add_argument(
        "--range-start",
        type=parse_date,
        default=None,
        help="Explicit range start (requires --range-end)",
    )
    parser.add_argument(
        "--range-end",
        type=parse_date,
        default=None,
        help="Explicit range end (requires --range-start)",
    )
    parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=None,
        help="Rows per bulk insert (default: INGEST_BATCH_SIZE setting)",
    )
    return parser


def resolve_range(args: argparse.Namespace) -> tuple[str, str]:
    """Pick the explicit range when given, otherwise compute it from --date."""
    if args.range_start and args.range_end:
        return args.range_start.isoformat(), args.range_end.isoformat()
    return compute_report_range(args.date)


def export_path_from_job_output(job_output: Path, downloads_dir: str) -> Path:
    """Read the job output and return the validated export path.

    Raises:
        ExportPathError: If no download line is present or it escapes downloads_dir.
    """
    reported = extract_download_path(job_output.read_text(encoding="utf-8"))
    if reported is None:
        raise ExportPathError(
            "download path not found in job output",
            details={"job_output": str(job_output)},
        )
    return resolve_export_path(reported, downloads_dir)


async def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if (args.range_start is None) != (args.range_end is None):
        parser.error("--range-start and --range-end must be given together")
    if args.range_start and args.date:
        parser.error("--date cannot be combined with an explicit range")

    configure_logging()
    settings = get_settings()

    try:
        if args.job_output:
            export_path = export_path_from_job_output(args.job_output, settings.downloads_dir)
        else:
            export_path = args.export_path

        range_start, range_end = resolve_range(args)
        summary = await ingest_export(
            args.db or settings.datastore_path,
            export_path,
            range_start,
            range_end,
            batch_size=args.batch_size,
        )
    except IngestError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"ERROR: cannot read job output: {e}", file=sys.stderr)
        return 1

    print(json.dumps(summary.to_payload(), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
