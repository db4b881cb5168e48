"""Feature-specific test fixtures for ingest module."""

import json
import zipfile
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import pytest
import xlwt
from openpyxl import Workbook
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from export_ingest.core.database import datastore_url
from export_ingest.features.ingest.models import ExportRow, IngestBatch

# Logical content shared by the per-format fixtures
SAMPLE_ROWS: list[list[Any]] = [
    ["Sucursal", "Producto", "Cantidad Vendida"],
    ["Centro", "Aspirina 500mg", 3],
    [None, None, None],
    ["Norte", "Paracetamol", 0, "extra"],
    ["Sur"],
]


class DatastoreReader:
    """Reads committed batches and rows back from a datastore file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def batches(self) -> list[dict[str, Any]]:
        engine = create_async_engine(datastore_url(self.path))
        try:
            async with engine.connect() as conn:
                result = await conn.execute(select(IngestBatch.__table__).order_by(IngestBatch.id))
                return [dict(row._mapping) for row in result]
        finally:
            await engine.dispose()

    async def rows(self, batch_id: int | None = None) -> list[dict[str, Any]]:
        engine = create_async_engine(datastore_url(self.path))
        try:
            async with engine.connect() as conn:
                stmt = select(ExportRow.__table__).order_by(ExportRow.id)
                if batch_id is not None:
                    stmt = stmt.where(ExportRow.batch_id == batch_id)
                result = await conn.execute(stmt)
                return [
                    {**dict(row._mapping), "data": json.loads(row.data_json)}
                    for row in result
                ]
        finally:
            await engine.dispose()


@pytest.fixture
def datastore_path(tmp_path: Path) -> Path:
    """Datastore file inside a directory that does not exist yet."""
    return tmp_path / "data" / "erp.sqlite"


@pytest.fixture
def datastore(datastore_path: Path) -> DatastoreReader:
    """Reader for the test datastore."""
    return DatastoreReader(datastore_path)


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write CSV text to a file in the temp directory."""

    def _write(content: str, name: str = "export.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_xlsx(tmp_path: Path) -> Callable[..., Path]:
    """Write rows into the first sheet of a new .xlsx workbook."""

    def _write(
        rows: list[list[Any]],
        name: str = "export.xlsx",
        extra_sheets: dict[str, list[list[Any]]] | None = None,
    ) -> Path:
        wb = Workbook()
        ws = wb.active
        ws.title = "Reporte"
        for row in rows:
            ws.append(row)
        for title, sheet_rows in (extra_sheets or {}).items():
            extra = wb.create_sheet(title)
            for row in sheet_rows:
                extra.append(row)
        path = tmp_path / name
        wb.save(path)
        return path

    return _write


@pytest.fixture
def sample_csv(write_csv: Callable[[str, str], Path]) -> Path:
    """CSV rendition of SAMPLE_ROWS."""
    return write_csv(
        "Sucursal,Producto,Cantidad Vendida\n"
        "Centro,Aspirina 500mg,3\n"
        ",,\n"
        "Norte,Paracetamol,0,extra\n"
        "Sur\n"
    )


@pytest.fixture
def sample_xlsx(write_xlsx: Callable[..., Path]) -> Path:
    """XLSX rendition of SAMPLE_ROWS."""
    return write_xlsx(SAMPLE_ROWS)


@pytest.fixture
def write_xls(tmp_path: Path) -> Callable[..., Path]:
    """Write rows into the first sheet of a new legacy .xls workbook.

    None cells are not written, so an all-None row has no cell records.
    """

    def _write(
        rows: list[list[Any]],
        name: str = "export.xls",
        extra_sheets: dict[str, list[list[Any]]] | None = None,
    ) -> Path:
        wb = xlwt.Workbook(encoding="utf-8")
        date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
        sheets = {"Hoja1": rows, **(extra_sheets or {})}
        for title, sheet_rows in sheets.items():
            ws = wb.add_sheet(title)
            for rowx, row in enumerate(sheet_rows):
                for colx, value in enumerate(row):
                    if value is None:
                        continue
                    if isinstance(value, date):
                        ws.write(rowx, colx, value, date_style)
                    else:
                        ws.write(rowx, colx, value)
        path = tmp_path / name
        wb.save(str(path))
        return path

    return _write


@pytest.fixture
def sample_xls(write_xls: Callable[..., Path]) -> Path:
    """XLS rendition of SAMPLE_ROWS."""
    return write_xls(SAMPLE_ROWS)


@pytest.fixture
def rewrite_xlsx_sheet() -> Callable[[Path, Callable[[bytes], bytes]], None]:
    """Rewrite the first worksheet XML of an .xlsx file in place."""

    def _rewrite(path: Path, transform: Callable[[bytes], bytes]) -> None:
        member = "xl/worksheets/sheet1.xml"
        with zipfile.ZipFile(path) as source:
            entries = [(info, source.read(info.filename)) for info in source.infolist()]
        with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as target:
            for info, payload in entries:
                if info.filename == member:
                    payload = transform(payload)
                target.writestr(info, payload)

    return _rewrite
