"""
Row registry.

Every row type served by the handlers is registered once at startup. The
registry resolves its fields and capabilities up front and stores them in an
immutable RowDescriptor, so handlers never inspect model classes per call.

Usage:
    registry = RowRegistry()
    registry.register(
        Product,
        name_field="name",
        is_active_field="is_active",
        parent_id_field="category_id",
        modify_permission="Catalog:Modify",
        cache=TwoLevelCached(generation_keys=("catalog",)),
        capture_log=ProductLog,
    )

    descriptor = registry.get("products")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator

from sqlalchemy import Table, inspect

from data_services.rows.fields import Field, fields_from_mapper
from shared.config.logging import get_logger

logger = get_logger(__name__)


class AuditStrategy(str, Enum):
    """How restorations of a row type are audited."""

    CAPTURE_LOG = "capture_log"  # field-level change capture into a log table
    GENERIC = "generic"  # generic audit event in audit_log


@dataclass(frozen=True)
class TwoLevelCached:
    """
    Marks a row type as cached behind generation keys.

    The row's own generation key is always bumped; `generation_keys` lists
    additional cache groups that depend on the row.
    """

    generation_keys: tuple[str, ...] = ()


@dataclass(frozen=True)
class RowDescriptor:
    """Immutable description of a registered row type and its capabilities."""

    model: type
    entity_type: str
    table: Table
    fields: tuple[Field, ...]
    factory: Callable[[], Any]
    id_field: Field | None = None
    name_field: Field | None = None
    is_active_field: Field | None = None
    parent_id_field: Field | None = None
    read_permission: str | None = None
    modify_permission: str | None = None
    cache: TwoLevelCached | None = None
    capture_log: type | None = None
    audit_strategy: AuditStrategy = AuditStrategy.GENERIC
    _by_token: dict[str, Field] = field(default_factory=dict, repr=False, compare=False)

    @property
    def generation_key(self) -> str:
        """Generation key of the row's own cache group (its table name)."""
        return self.table.fullname

    @property
    def has_identity(self) -> bool:
        return self.id_field is not None

    def find_field(self, token: str) -> Field | None:
        """Find a field by column name or property name."""
        return self._by_token.get(token)

    def get_value(self, row: Any, field: Field) -> Any:
        return getattr(row, field.property_name, None)

    def set_value(self, row: Any, field: Field, value: Any) -> None:
        setattr(row, field.property_name, value)


class RowRegistry:
    """Maps row types (by model class or entity type name) to descriptors."""

    def __init__(self):
        self._by_model: dict[type, RowDescriptor] = {}
        self._by_name: dict[str, RowDescriptor] = {}

    def register(
        self,
        model: type,
        *,
        entity_type: str | None = None,
        id_field: str | None = None,
        name_field: str | None = None,
        is_active_field: str | None = None,
        parent_id_field: str | None = None,
        read_permission: str | None = None,
        modify_permission: str | None = None,
        cache: TwoLevelCached | None = None,
        capture_log: type | None = None,
        factory: Callable[[], Any] | None = None,
    ) -> RowDescriptor:
        """
        Register a row type.

        Args:
            model: SQLAlchemy mapped class.
            entity_type: Public name; defaults to the table name.
            id_field: Identity field; defaults to the single-column primary key.
            name_field: Display name field (enables text search and native sort).
            is_active_field: Tri-state active flag (enables soft delete filtering).
            parent_id_field: Foreign key to the parent entity (audit context).
            read_permission: Token required to list; "" means logged in only.
            modify_permission: Token required to restore; "" means logged in only.
            cache: Generation keys to bump when a row changes.
            capture_log: Log model receiving field-level change records.
            factory: Builds empty row instances; defaults to the model class.

        Returns:
            The registered descriptor.

        Raises:
            ValueError: If a named field does not exist or the type is already registered.
        """
        mapper = inspect(model)
        table = mapper.local_table
        fields = fields_from_mapper(mapper)
        by_token: dict[str, Field] = {}
        for f in fields:
            by_token.setdefault(f.name, f)
            by_token.setdefault(f.property_name, f)

        def resolve(token: str | None, role: str) -> Field | None:
            if token is None:
                return None
            resolved = by_token.get(token)
            if resolved is None:
                raise ValueError(f"{model.__name__} has no field '{token}' to use as {role}")
            return resolved

        if id_field is None:
            primary_keys = [f for f in fields if f.is_primary_key]
            resolved_id = primary_keys[0] if len(primary_keys) == 1 else None
        else:
            resolved_id = resolve(id_field, "id field")

        descriptor = RowDescriptor(
            model=model,
            entity_type=(entity_type or table.name).lower(),
            table=table,
            fields=fields,
            factory=factory or model,
            id_field=resolved_id,
            name_field=resolve(name_field, "name field"),
            is_active_field=resolve(is_active_field, "active-state field"),
            parent_id_field=resolve(parent_id_field, "parent id field"),
            read_permission=read_permission,
            modify_permission=modify_permission,
            cache=cache,
            capture_log=capture_log,
            audit_strategy=AuditStrategy.CAPTURE_LOG if capture_log is not None else AuditStrategy.GENERIC,
            _by_token=by_token,
        )

        if model in self._by_model or descriptor.entity_type in self._by_name:
            raise ValueError(f"Row type {descriptor.entity_type} is already registered")

        self._by_model[model] = descriptor
        self._by_name[descriptor.entity_type] = descriptor

        logger.debug(
            "Row type registered",
            entity_type=descriptor.entity_type,
            fields=len(fields),
            audit_strategy=descriptor.audit_strategy.value,
        )
        return descriptor

    def get(self, model_or_name: type | str) -> RowDescriptor | None:
        """Look up a descriptor by model class or entity type name."""
        if isinstance(model_or_name, str):
            return self._by_name.get(model_or_name.lower())
        return self._by_model.get(model_or_name)

    def __contains__(self, model_or_name: type | str) -> bool:
        return self.get(model_or_name) is not None

    def __iter__(self) -> Iterator[RowDescriptor]:
        return iter(self._by_model.values())

    def __len__(self) -> int:
        return len(self._by_model)


# Process-wide registry used by the HTTP routers
row_registry = RowRegistry()
