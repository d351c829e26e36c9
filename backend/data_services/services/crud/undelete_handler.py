"""
Generic undelete (restore) request handler.

Restores a soft-deleted row of a registered type:

    load -> already active? -> conditional update -> cache + audit

The update only matches rows still carrying the DELETED sentinel, so when
two restores race exactly one of them updates the row; the other raises
EntityNotFoundError(concurrent=True).

Usage:
    with UnitOfWork(db) as uow:
        response = UndeleteRequestHandler(descriptor, ctx).process(
            uow, UndeleteRequest(entity_id=42)
        )
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update

from data_services.rows.registry import RowDescriptor
from data_services.schemas import UndeleteRequest, UndeleteResponse
from data_services.services.crud.audit import AuditCoordinator
from data_services.services.crud.cache import CacheInvalidationCoordinator
from data_services.services.crud.unit_of_work import UnitOfWork
from data_services.services.permissions import PermissionContext
from shared.config.constants import ActiveState
from shared.config.logging import get_logger
from data_services.services.crud.query import parse_id_value
from shared.utils.exceptions import (
    EntityNotFoundError,
    NotSupportedError,
    RequiredFieldError,
    ValidationError,
)

logger = get_logger(__name__)


class UndeleteRequestHandler:
    response_class: type[UndeleteResponse] = UndeleteResponse

    def __init__(
        self,
        row: RowDescriptor,
        permissions: PermissionContext | None = None,
        *,
        cache: CacheInvalidationCoordinator | None = None,
        audit: AuditCoordinator | None = None,
    ):
        if row.id_field is None:
            raise NotSupportedError(row.entity_type, "restore without an id field")
        self.row = row
        self.permissions = permissions or PermissionContext.anonymous()
        self._cache = cache
        self.audit = audit or AuditCoordinator(row)
        self.uow: UnitOfWork | None = None
        self.request: UndeleteRequest | None = None
        self.response: UndeleteResponse | None = None
        self.entity: Any = None

    @property
    def cache(self) -> CacheInvalidationCoordinator:
        # Built lazily so rows without a cache declaration never touch redis
        if self._cache is None:
            self._cache = CacheInvalidationCoordinator()
        return self._cache

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------

    def validate_permissions(self) -> None:
        """Enforce the row's modify permission, if it declares one."""
        self.permissions.require(self.row.modify_permission)

    def validate_request(self) -> None:
        pass

    def on_before_undelete(self) -> None:
        pass

    def on_after_undelete(self) -> None:
        pass

    def on_return(self) -> None:
        pass

    def load_entity(self) -> Any:
        """
        Load every table field of the target row into a fresh instance.

        Raises:
            EntityNotFoundError: If no row has the requested id.
        """
        table = self.row.table.alias("t0")
        columns = [table.c[field.name] for field in self.row.fields if not field.is_client_side]
        stmt = select(*columns).where(table.c[self.row.id_field.name] == self.request.entity_id)

        values = self.uow.session.execute(stmt).first()
        if values is None:
            raise EntityNotFoundError(self.row.entity_type, self.request.entity_id)

        entity = self.row.factory()
        for column, value in zip(columns, values):
            self.row.set_value(entity, self.row.find_field(column.name), value)
        return entity

    def invalidate_cache_on_commit(self) -> None:
        if self.row.cache is not None:
            self.cache.invalidate_on_commit(self.uow, self.row)

    def do_audit(self) -> None:
        self.audit.audit_undelete(self.uow, self.entity, self.permissions)

    def restore(self) -> int:
        """Flip DELETED to ACTIVE for the target row; returns the affected row count."""
        model = self.row.model
        id_attr = getattr(model, self.row.id_field.property_name)
        active_attr = getattr(model, self.row.is_active_field.property_name)
        stmt = (
            update(model)
            .where(id_attr == self.request.entity_id, active_attr == ActiveState.DELETED)
            .values({active_attr: ActiveState.ACTIVE})
            .execution_options(synchronize_session=False)
        )
        return self.uow.session.execute(stmt).rowcount

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def process(self, uow: UnitOfWork, request: UndeleteRequest) -> UndeleteResponse:
        """
        Restore the row named by request.entity_id.

        Raises:
            ValueError: If uow is None.
            RequiredFieldError: If entity_id is missing.
            UnauthorizedError: If the modify permission check fails.
            NotSupportedError: If the row type has no active-state field.
            ValidationError: If entity_id does not fit the id column.
            EntityNotFoundError: If the row does not exist, or another
                transaction changed its state before the update.
        """
        if uow is None:
            raise ValueError("uow is required")
        if request.entity_id is None:
            raise RequiredFieldError("entity_id")

        self.validate_permissions()

        if self.row.is_active_field is None:
            raise NotSupportedError(self.row.entity_type, "soft delete")

        entity_id = parse_id_value(self.row.table.c[self.row.id_field.name], request.entity_id)
        if entity_id is None:
            raise ValidationError(
                f"Invalid {self.row.entity_type} id '{request.entity_id}'",
                entity_type=self.row.entity_type,
                field="entity_id",
            )

        self.uow = uow
        self.request = request.model_copy(update={"entity_id": entity_id})
        self.response = self.response_class()

        self.entity = self.load_entity()

        self.validate_request()

        if self.row.get_value(self.entity, self.row.is_active_field) > 0:
            self.response.was_not_deleted = True
            logger.info(
                "Restore skipped, entity is active",
                entity_type=self.row.entity_type,
                entity_id=request.entity_id,
            )
        else:
            self.on_before_undelete()

            if self.restore() != 1:
                raise EntityNotFoundError(self.row.entity_type, request.entity_id, concurrent=True)

            self.invalidate_cache_on_commit()
            self.on_after_undelete()
            self.do_audit()

            logger.info(
                "Entity restored",
                entity_type=self.row.entity_type,
                entity_id=request.entity_id,
                user_id=self.permissions.user_id,
            )

        self.on_return()
        return self.response
