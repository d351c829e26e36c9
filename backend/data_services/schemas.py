"""
Request and response schemas for the row service handlers.

Requests are pydantic models so the HTTP layer validates them for free.
Responses are plain dataclasses because they carry ORM row instances.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ColumnSelection(str, Enum):
    """Granularity of the default column set for a listing."""

    KEY_ONLY = "keyonly"
    LOOKUP = "lookup"
    LIST = "list"
    DETAILS = "details"


class SortBy(BaseModel):
    """One sort term. Accepts "name" or "name DESC" strings as well."""

    field: str = Field(min_length=1)
    descending: bool = False

    @classmethod
    def parse(cls, value: str) -> "SortBy":
        parts = value.strip().split()
        if len(parts) == 2 and parts[1].lower() in ("asc", "desc"):
            return cls(field=parts[0], descending=parts[1].lower() == "desc")
        return cls(field=value.strip())


# =============================================================================
# Listing
# =============================================================================


class ListRequest(BaseModel):
    """Declarative listing request."""

    include_columns: set[str] | None = None
    exclude_columns: set[str] | None = None
    column_selection: ColumnSelection = ColumnSelection.LIST
    contains_text: str | None = None
    sort: list[SortBy] | None = None
    skip: int = Field(default=0, ge=0)
    take: int = Field(default=0, ge=0)  # 0 = no limit
    exclude_total_count: bool = False
    include_deleted: bool = False
    equality_filter: dict[str, Any] | None = None

    @field_validator("sort", mode="before")
    @classmethod
    def _parse_sort_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        if isinstance(value, list):
            return [SortBy.parse(item) if isinstance(item, str) else item for item in value]
        return value


@dataclass
class ListResponse:
    """
    Listing result.

    total_count is None when the request excluded it.
    """

    entities: list[Any] = field(default_factory=list)
    total_count: int | None = None
    skip: int = 0
    take: int = 0

    def set_skip_take_total(self, skip: int, take: int, total_count: int | None) -> None:
        self.skip = skip
        self.take = take
        self.total_count = total_count


# =============================================================================
# Undelete
# =============================================================================


class UndeleteRequest(BaseModel):
    """Restore a soft-deleted row."""

    entity_id: int | str | None = None


@dataclass
class UndeleteResponse:
    """was_not_deleted is True when the row was already active (no-op)."""

    was_not_deleted: bool = False
