"""
Field selection policy for listings.

Decides per field whether it is part of the projection, given the request's
include / exclude columns and column selection granularity.
"""

from __future__ import annotations

from data_services.rows.fields import Field, SelectLevel
from data_services.schemas import ColumnSelection, ListRequest

# Highest select level admitted by each granularity
_GRANULARITY_LIMITS: dict[ColumnSelection, SelectLevel] = {
    ColumnSelection.LOOKUP: SelectLevel.LOOKUP,
    ColumnSelection.LIST: SelectLevel.LIST,
    ColumnSelection.DETAILS: SelectLevel.DETAILS,
}


def is_included(field: Field | str, request: ListRequest) -> bool:
    """True when the request's include columns name this field (or column token)."""
    if not request.include_columns:
        return False
    if isinstance(field, str):
        return field in request.include_columns
    return any(field.matches(token) for token in request.include_columns)


def is_excluded(field: Field, request: ListRequest) -> bool:
    if not request.exclude_columns:
        return False
    return any(field.matches(token) for token in request.exclude_columns)


def should_select_field(field: Field, request: ListRequest) -> bool:
    """
    Apply the selection rules in order, first match wins.

    NEVER / client side fields are never selected and ALWAYS fields always
    are, whatever the request says. Primary keys are selected unless their
    level is EXPLICIT, in which case only an explicit include selects them.
    Explicit exclusion beats explicit inclusion; otherwise the field's level
    is compared to the requested granularity.
    """
    level = field.min_select_level

    if level == SelectLevel.NEVER or field.is_client_side:
        return False

    if level == SelectLevel.ALWAYS:
        return True

    if field.is_primary_key and level != SelectLevel.EXPLICIT:
        return True

    if level == SelectLevel.DEFAULT:
        level = SelectLevel.DETAILS if field.is_foreign else SelectLevel.LIST

    explicitly_excluded = is_excluded(field, request)
    explicitly_included = not explicitly_excluded and is_included(field, request)

    if field.is_primary_key:
        return explicitly_included

    if explicitly_excluded:
        return False

    if explicitly_included:
        return True

    limit = _GRANULARITY_LIMITS.get(request.column_selection)
    if limit is None:
        return False
    return level <= limit
