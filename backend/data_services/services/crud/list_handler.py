"""
Generic list request handler.

Turns a ListRequest into a query against a registered row type and returns
the matching rows as fresh (session independent) instances.

Usage:
    handler = ListRequestHandler(registry.get(Product), PermissionContext(user))
    response = handler.process(db, ListRequest(contains_text="burger", take=20))

Subclasses customize the pipeline by overriding its hooks:
    class ActiveProductsHandler(ListRequestHandler):
        def process_entity(self, row):
            return row if row.price_cents else None
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from data_services.rows.fields import Field
from data_services.rows.registry import RowDescriptor
from data_services.schemas import ListRequest, ListResponse
from data_services.services.crud.query import SqlSelect
from data_services.services.crud.selection import should_select_field
from data_services.services.permissions import PermissionContext
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.utils.exceptions import ValidationError

logger = get_logger(__name__)


class ListRequestHandler:
    response_class: type[ListResponse] = ListResponse

    def __init__(self, row: RowDescriptor, permissions: PermissionContext | None = None):
        self.row = row
        self.permissions = permissions or PermissionContext.anonymous()
        self.session: Session | None = None
        self.request: ListRequest | None = None
        self.response: ListResponse | None = None

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def validate_permissions(self) -> None:
        """Enforce the row's read permission, if it declares one."""
        self.permissions.require(self.row.read_permission)

    def create_query(self) -> SqlSelect:
        return SqlSelect(self.row.table)

    def should_select_field(self, field: Field) -> bool:
        return should_select_field(field, self.request)

    def select_field(self, query: SqlSelect, field: Field) -> None:
        query.select(field)

    def select_fields(self, query: SqlSelect) -> None:
        for field in self.row.fields:
            if self.should_select_field(field):
                self.select_field(query, field)

    def prepare_query(self, query: SqlSelect) -> None:
        self.select_fields(query)

    def apply_key_order(self, query: SqlSelect) -> None:
        if self.row.id_field is not None:
            query.order_by(self.row.id_field)

    def apply_contains_text(self, query: SqlSelect, contains_text: str | None) -> None:
        if contains_text and len(contains_text) > Limits.MAX_CONTAINS_TEXT_LENGTH:
            raise ValidationError(
                "Search text is too long",
                max_length=Limits.MAX_CONTAINS_TEXT_LENGTH,
            )
        name_fields = [self.row.name_field] if self.row.name_field is not None else []
        query.apply_contains_text(contains_text, self.row.id_field, name_fields)

    def get_native_sort(self) -> list[tuple[Field, bool]] | None:
        """Default order when the request has none: name ascending."""
        if self.row.name_field is not None:
            return [(self.row.name_field, False)]
        return None

    def apply_sort(self, query: SqlSelect) -> None:
        sort = []
        for term in self.request.sort or []:
            field = self.row.find_field(term.field)
            if field is None or field.is_client_side:
                raise ValidationError(f"Unknown sort field '{term.field}'", field=term.field)
            sort.append((field, term.descending))
        query.apply_sort(sort, self.get_native_sort())

    def apply_filters(self, query: SqlSelect) -> None:
        if not self.request.include_deleted and self.row.is_active_field is not None:
            query.where(query.column(self.row.is_active_field) > 0)

        for token, value in (self.request.equality_filter or {}).items():
            field = self.row.find_field(token)
            if field is None or field.is_client_side:
                raise ValidationError(f"Unknown filter field '{token}'", field=token)
            query.where_equal(field, value)

    def on_before_execute_query(self) -> None:
        pass

    def on_after_execute_query(self) -> None:
        pass

    def process_entity(self, row: Any) -> Any | None:
        """Transform a listed row; return None to leave it out of the response."""
        return row

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _materialize(self, values: dict[Field, Any]) -> Any:
        row = self.row.factory()
        for field, value in values.items():
            self.row.set_value(row, field, value)
        return row

    def _on_row(self, values: dict[Field, Any]) -> None:
        entity = self.process_entity(self._materialize(values))
        if entity is not None:
            self.response.entities.append(entity)

    def process(self, session: Session, request: ListRequest) -> ListResponse:
        """
        Run the listing pipeline.

        Raises:
            ValueError: If session is None.
            UnauthorizedError: If the read permission check fails.
            ValidationError: If the request references unknown fields or selects none.
        """
        if session is None:
            raise ValueError("session is required")

        self.session = session
        self.request = request
        self.response = self.response_class()

        self.validate_permissions()

        query = self.create_query()
        self.prepare_query(query)
        if not query.selected_fields:
            raise ValidationError("Request selects no columns", entity_type=self.row.entity_type)

        self.apply_key_order(query)
        query.apply_skip_take_and_count(request.skip, request.take, request.exclude_total_count)
        self.apply_contains_text(query, request.contains_text)
        self.apply_sort(query)
        self.apply_filters(query)

        self.on_before_execute_query()

        total_count = query.for_each(session, self._on_row)
        self.response.set_skip_take_total(query.skip, query.take, total_count)

        self.on_after_execute_query()

        logger.debug(
            "List request processed",
            entity_type=self.row.entity_type,
            returned=len(self.response.entities),
            total_count=total_count,
        )
        return self.response
