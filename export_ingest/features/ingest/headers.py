"""Header normalization for export column keys."""

import string

_KEY_CHARS = frozenset(string.ascii_lowercase + string.digits)


def normalize_header(raw: str, position: int) -> str:
    """Convert a raw header cell into a stable column key.

    Empty or whitespace-only headers get a positional key ``col_<n>`` (1-based).
    Otherwise the trimmed text is lower-cased and every character outside
    ``[a-z0-9]`` is replaced by ``_`` one-for-one, so "Total $" becomes
    "total__".

    Args:
        raw: Header cell text.
        position: Zero-based column position.

    Returns:
        Normalized column key.
    """
    text = raw.strip()
    if not text:
        return f"col_{position + 1}"
    return "".join(ch if ch in _KEY_CHARS else "_" for ch in text.lower())
