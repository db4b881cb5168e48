"""Row assembly: header keys plus data rows into ordered row documents."""

from collections.abc import Callable, Iterable, Iterator

from export_ingest.features.ingest.headers import normalize_header
from export_ingest.features.ingest.schemas import RowDocument


def build_header(cells: list[str], normalize: Callable[[str, int], str] = normalize_header) -> list[str]:
    """Normalize a header row into column keys by position."""
    return [normalize(cell, position) for position, cell in enumerate(cells)]


def build_document(header: list[str], cells: list[str]) -> RowDocument:
    """Map a data row onto header keys.

    Missing trailing cells become empty text and cells beyond the header are
    dropped. Duplicate keys keep their first position and the last value.
    """
    document: RowDocument = {}
    for position, key in enumerate(header):
        document[key] = cells[position].strip() if position < len(cells) else ""
    return document


def is_blank(document: RowDocument) -> bool:
    """Return True when every value of the document is empty after trimming."""
    return all(not value.strip() for value in document.values())


def assemble_rows(
    rows: Iterable[list[str]],
    normalize: Callable[[str, int], str] = normalize_header,
) -> Iterator[tuple[int, RowDocument]]:
    """Turn an adapter's row stream into numbered row documents.

    The first row is the header and is never emitted. Blank rows are dropped
    without consuming a position, so positions run 1, 2, 3... over emitted
    rows only.

    Args:
        rows: Rows of cell text, header first.
        normalize: Header normalizer (raw text, position) -> key.

    Yields:
        (ordinal_position, document) pairs.
    """
    header: list[str] | None = None
    ordinal = 0
    for cells in rows:
        if header is None:
            header = build_header(cells, normalize)
            continue

        document = build_document(header, cells)
        if is_blank(document):
            continue

        ordinal += 1
        yield ordinal, document
