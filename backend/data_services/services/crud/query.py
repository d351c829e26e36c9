"""
Mutable select query used by the list handler.

Wraps a SQLAlchemy Select over the row's table aliased as `t0`. Each pipeline
stage mutates the query; `for_each` builds the statement and runs it.

Usage:
    query = SqlSelect(descriptor.table)
    query.select(name_field)
    query.order_by(id_field)
    query.apply_skip_take_and_count(skip=20, take=10, exclude_total_count=False)
    total = query.for_each(db, lambda values: print(values))
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

from sqlalchemy import ColumnElement, Select, Table, false, func, or_, select
from sqlalchemy.orm import Session

from data_services.rows.fields import Field
from shared.config.constants import Limits
from shared.config.logging import get_logger

logger = get_logger(__name__)

RowCallback = Callable[[dict[Field, Any]], None]


def parse_id_value(column: ColumnElement, value: Any) -> Any:
    """
    Convert a value to the python type of an id column.

    Returns None when the value does not parse, or is an integer the column
    cannot hold. Columns without a known python type take the value as is.
    """
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    try:
        parsed = python_type(value)
    except (TypeError, ValueError):
        return None
    if isinstance(parsed, int) and not Limits.MIN_INTEGER_ID <= parsed <= Limits.MAX_INTEGER_ID:
        return None
    return parsed


class SqlSelect:
    def __init__(self, table: Table, alias: str = "t0"):
        self._source = table.alias(alias)
        self._fields: list[Field] = []
        self._where: list[ColumnElement] = []
        self._order_by: list[tuple[str, bool]] = []
        self.skip = 0
        self.take = 0
        self.count_records = False

    @property
    def source(self):
        return self._source

    @property
    def selected_fields(self) -> list[Field]:
        return list(self._fields)

    @property
    def criteria(self) -> list[ColumnElement]:
        return list(self._where)

    @property
    def order(self) -> list[tuple[str, bool]]:
        """Order terms as (column name, descending)."""
        return list(self._order_by)

    def column(self, field: Field) -> ColumnElement:
        return self._source.c[field.name]

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def select(self, field: Field) -> "SqlSelect":
        if field not in self._fields:
            self._fields.append(field)
        return self

    def where(self, *criteria: ColumnElement) -> "SqlSelect":
        self._where.extend(criteria)
        return self

    def where_equal(self, field: Field, value: Any) -> "SqlSelect":
        column = self.column(field)
        return self.where(column.is_(None) if value is None else column == value)

    def order_by(self, field: Field, descending: bool = False) -> "SqlSelect":
        self._order_by.append((field.name, descending))
        return self

    def order_by_first(self, field: Field, descending: bool = False) -> "SqlSelect":
        """Put a term in front of the current order, dropping any earlier term on the same column."""
        self._order_by = [term for term in self._order_by if term[0] != field.name]
        self._order_by.insert(0, (field.name, descending))
        return self

    def apply_skip_take_and_count(self, skip: int, take: int, exclude_total_count: bool) -> "SqlSelect":
        self.skip = max(skip, 0)
        self.take = max(take, 0)
        self.count_records = not exclude_total_count
        return self

    def apply_contains_text(
        self,
        contains_text: str | None,
        id_field: Field | None = None,
        name_fields: Sequence[Field] = (),
    ) -> "SqlSelect":
        """
        Restrict to rows whose name fields contain the text (case insensitive)
        or whose id equals the text, when it parses as an id value.

        With an id field but no name field, text that is not a valid id
        matches nothing. Without either the text is ignored.
        """
        text = (contains_text or "").strip()
        if not text or (id_field is None and not name_fields):
            return self

        criteria = [self.column(f).icontains(text, autoescape=True) for f in name_fields]
        if id_field is not None:
            id_value = self._parse_id(id_field, text)
            if id_value is not None:
                criteria.append(self.column(id_field) == id_value)

        return self.where(or_(*criteria) if criteria else false())

    def apply_sort(
        self,
        sort: Sequence[tuple[Field, bool]] | None,
        native_sort: Sequence[tuple[Field, bool]] | None = None,
    ) -> "SqlSelect":
        """
        Caller sort wins over the native sort. Either goes in front of the
        existing order, which stays as the tie-break.
        """
        terms = sort or native_sort or ()
        for field, descending in reversed(list(terms)):
            self.order_by_first(field, descending)
        return self

    def _parse_id(self, id_field: Field, text: str) -> Any:
        return parse_id_value(self.column(id_field), text)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def to_statement(self) -> Select:
        stmt = select(*(self.column(f) for f in self._fields)).select_from(self._source)
        if self._where:
            stmt = stmt.where(*self._where)
        if self._order_by:
            stmt = stmt.order_by(
                *(
                    self._source.c[name].desc() if descending else self._source.c[name].asc()
                    for name, descending in self._order_by
                )
            )
        if self.skip:
            stmt = stmt.offset(self.skip)
        if self.take:
            stmt = stmt.limit(self.take)
        return stmt

    def count_statement(self) -> Select:
        stmt = select(func.count()).select_from(self._source)
        if self._where:
            stmt = stmt.where(*self._where)
        return stmt

    def for_each(self, session: Session, callback: RowCallback) -> int | None:
        """
        Execute the query, calling back with {field: value} for each row.

        Returns:
            Total number of rows matching the criteria (ignoring skip/take),
            or None when the count was excluded. A separate count query only
            runs when the fetched page cannot tell the total.
        """
        if not self._fields:
            raise ValueError("No fields selected")

        fetched = 0
        for row in session.execute(self.to_statement()):
            fetched += 1
            callback(dict(zip(self._fields, row)))

        if not self.count_records:
            return None

        page_is_last = self.take == 0 or fetched < self.take
        if page_is_last and (fetched > 0 or self.skip == 0):
            return self.skip + fetched

        total = session.scalar(self.count_statement()) or 0
        logger.debug("Count query executed", total=total, skip=self.skip, take=self.take)
        return total
