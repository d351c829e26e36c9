"""
Field descriptors for row types.

A Field is read from a mapped SQLAlchemy column. Selection metadata lives in
the column's `info` dict and is declared with `field_info()`:

    name: Mapped[str] = mapped_column(
        String(100), info=field_info(SelectLevel.LOOKUP)
    )
    notes: Mapped[str | None] = mapped_column(
        Text, info=field_info(SelectLevel.DETAILS)
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Any

from sqlalchemy import Column
from sqlalchemy.orm import Mapper

INFO_SELECT_LEVEL = "select_level"
INFO_FLAGS = "field_flags"


class SelectLevel(IntEnum):
    """
    Minimum column selection at which a field is loaded.

    DEFAULT is a placeholder resolved per field (LIST, or DETAILS for foreign
    fields). EXPLICIT fields rank above every granularity, so they are only
    loaded when a request names them.
    """

    DEFAULT = 0
    ALWAYS = 1
    LOOKUP = 2
    LIST = 3
    DETAILS = 4
    EXPLICIT = 5
    NEVER = 6


class FieldFlags(IntFlag):
    NONE = 0
    PRIMARY_KEY = 1
    FOREIGN = 2  # joined from another table
    CLIENT_SIDE = 4  # never read from the database


def field_info(
    select_level: SelectLevel = SelectLevel.DEFAULT,
    flags: FieldFlags = FieldFlags.NONE,
) -> dict[str, Any]:
    """Build the `info` dict for a mapped column."""
    return {INFO_SELECT_LEVEL: select_level, INFO_FLAGS: flags}


@dataclass(frozen=True)
class Field:
    """Column descriptor with selection metadata."""

    name: str
    property_name: str
    flags: FieldFlags = FieldFlags.NONE
    min_select_level: SelectLevel = SelectLevel.DEFAULT
    foreign_table: str | None = None

    @property
    def is_primary_key(self) -> bool:
        return FieldFlags.PRIMARY_KEY in self.flags

    @property
    def is_foreign(self) -> bool:
        return FieldFlags.FOREIGN in self.flags

    @property
    def is_client_side(self) -> bool:
        return FieldFlags.CLIENT_SIDE in self.flags

    def matches(self, token: str) -> bool:
        """True when token is this field's column name or property name."""
        return token == self.name or token == self.property_name

    @classmethod
    def from_column(cls, column: Column, property_name: str) -> "Field":
        flags = FieldFlags(column.info.get(INFO_FLAGS, FieldFlags.NONE))
        if column.primary_key:
            flags |= FieldFlags.PRIMARY_KEY

        foreign_table = None
        for fk in column.foreign_keys:
            # "schema.table.column" -> "schema.table"
            foreign_table = fk.target_fullname.rsplit(".", 1)[0]
            break

        return cls(
            name=column.name,
            property_name=property_name,
            flags=flags,
            min_select_level=SelectLevel(column.info.get(INFO_SELECT_LEVEL, SelectLevel.DEFAULT)),
            foreign_table=foreign_table,
        )


def fields_from_mapper(mapper: Mapper) -> tuple[Field, ...]:
    """
    Build the ordered field set of a mapped class.

    Only column attributes backed by a table column are fields; relationships
    and SQL expressions are skipped.
    """
    fields = []
    for prop in mapper.column_attrs:
        column = prop.columns[0]
        if not isinstance(column, Column):
            continue
        fields.append(Field.from_column(column, prop.key))
    return tuple(fields)
