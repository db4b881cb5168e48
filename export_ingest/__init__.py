"""Ingestion engine for spreadsheet and CSV exports into a SQLite datastore."""

__version__ = "0.1.0"
