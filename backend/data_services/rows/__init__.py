"""
Row metadata: field descriptors and the row type registry.
"""

from .fields import Field, FieldFlags, SelectLevel, field_info, fields_from_mapper
from .registry import (
    AuditStrategy,
    RowDescriptor,
    RowRegistry,
    TwoLevelCached,
    row_registry,
)

__all__ = [
    # Fields
    "Field",
    "FieldFlags",
    "SelectLevel",
    "field_info",
    "fields_from_mapper",
    # Registry
    "AuditStrategy",
    "RowDescriptor",
    "RowRegistry",
    "TwoLevelCached",
    "row_registry",
]
