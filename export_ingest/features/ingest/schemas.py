"""Pydantic schemas for ingest results."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Opaque per-row document: normalized column key -> trimmed cell text
RowDocument = dict[str, str]


class BatchSummary(BaseModel):
    """Summary of one committed ingestion batch.

    Serializes with camelCase aliases ({id, rangeStart, rangeEnd, filename, rows})
    for the HTTP layer; attribute access stays snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: int = Field(..., ge=1, description="Store-assigned batch identifier")
    range_start: str = Field(..., description="Range start as supplied (YYYY-MM-DD)")
    range_end: str = Field(..., description="Range end as supplied (YYYY-MM-DD)")
    filename: str = Field(..., min_length=1, description="Basename of the export file")
    rows: int = Field(..., ge=0, description="Number of persisted (non-blank) rows")

    def to_payload(self) -> dict[str, int | str]:
        """Return the camelCase mapping consumed by the HTTP layer."""
        return self.model_dump(by_alias=True)
