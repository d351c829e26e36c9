"""
Audit logging for row changes.

Two strategies exist per row type, chosen once at registration:
- capture log: a field-level copy of the row goes to the row's log table
- generic: one AuditLog entry naming the entity (and its parent)

Entries are added to the caller's session and committed with it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from data_services.models import AuditLog
from data_services.rows.registry import AuditStrategy, RowDescriptor
from shared.config.constants import ActiveState, AuditAction
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from data_services.services.crud.unit_of_work import UnitOfWork
    from data_services.services.permissions import PermissionContext

logger = get_logger(__name__)

CAPTURE_LOG_COLUMNS = ("change_type", "change_user_id", "change_date")


def log_change(
    db: Session,
    *,
    user_id: Optional[int],
    user_email: Optional[str],
    entity_type: str,
    entity_id: Any,
    action: str,
    parent_type: Optional[str] = None,
    parent_id: Any = None,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> AuditLog:
    """
    Log a change to an entity.

    Args:
        db: Database session
        user_id: User who made the change
        user_email: Email of user who made the change
        entity_type: Type of entity (e.g., "products")
        entity_id: ID of the entity
        action: Action performed (CREATE, UPDATE, DELETE, RESTORE)
        parent_type: Table of the parent entity, if any
        parent_id: ID of the parent entity, if any
        old_values: Previous state of the changed fields
        new_values: New state of the changed fields

    Returns:
        Created AuditLog entry
    """
    audit_entry = AuditLog(
        user_id=user_id,
        user_email=user_email,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        parent_type=parent_type,
        parent_id=str(parent_id) if parent_id is not None else None,
        old_values=json.dumps(old_values, default=str) if old_values else None,
        new_values=json.dumps(new_values, default=str) if new_values else None,
    )

    db.add(audit_entry)
    # Don't commit here - let the caller handle the transaction
    return audit_entry


@dataclass
class AuditUndeleteRequest:
    """What a generic restore audit entry records."""

    entity_type: str
    entity_id: Any
    parent_type: str | None = None
    parent_id: Any = None


def record_generic_event(
    db: Session,
    request: AuditUndeleteRequest,
    *,
    user_id: Optional[int],
    user_email: Optional[str],
    active_field: str | None = None,
) -> AuditLog:
    """Record a RESTORE event in the generic audit log."""
    state_change = None
    if active_field:
        state_change = ({active_field: ActiveState.DELETED}, {active_field: ActiveState.ACTIVE})
    return log_change(
        db,
        user_id=user_id,
        user_email=user_email,
        entity_type=request.entity_type,
        entity_id=request.entity_id,
        action=AuditAction.RESTORE,
        parent_type=request.parent_type,
        parent_id=request.parent_id,
        old_values=state_change[0] if state_change else None,
        new_values=state_change[1] if state_change else None,
    )


class CaptureLogHandler:
    """
    Writes field-level change records for a row type into its log model.

    Every row field whose property name is also a column of the log model is
    copied; the log model's own primary key is left to the database.
    """

    def __init__(self, row: RowDescriptor):
        if row.capture_log is None:
            raise ValueError(f"Row type {row.entity_type} has no capture log model")
        self.row = row
        self.log_model = row.capture_log

        mapper = inspect(self.log_model)
        log_columns = {prop.key for prop in mapper.column_attrs}
        missing = [name for name in CAPTURE_LOG_COLUMNS if name not in log_columns]
        if missing:
            raise ValueError(f"{self.log_model.__name__} lacks capture log columns: {', '.join(missing)}")

        log_keys = {prop.key for prop in mapper.column_attrs if prop.columns[0].primary_key}
        self._copied = [
            field for field in row.fields
            if field.property_name in log_columns and field.property_name not in log_keys
        ]

    def log(self, uow: "UnitOfWork", row: Any, user_id: Optional[int], is_delete: bool = False) -> Any:
        entry = self.log_model()
        for field in self._copied:
            setattr(entry, field.property_name, self.row.get_value(row, field))
        entry.change_type = AuditAction.DELETE if is_delete else AuditAction.UPDATE
        entry.change_user_id = user_id
        entry.change_date = datetime.now(timezone.utc)
        uow.session.add(entry)
        return entry


class AuditCoordinator:
    """Audits restorations of one row type with the strategy its descriptor carries."""

    def __init__(self, row: RowDescriptor):
        self.row = row
        self.strategy = row.audit_strategy
        self._capture_log = CaptureLogHandler(row) if self.strategy == AuditStrategy.CAPTURE_LOG else None

    def get_audit_request(self, entity: Any) -> AuditUndeleteRequest:
        request = AuditUndeleteRequest(
            entity_type=self.row.entity_type,
            entity_id=self.row.get_value(entity, self.row.id_field),
        )
        parent_field = self.row.parent_id_field
        if parent_field is not None and parent_field.foreign_table:
            request.parent_type = parent_field.foreign_table
            request.parent_id = self.row.get_value(entity, parent_field)
        return request

    def audit_undelete(self, uow: "UnitOfWork", entity: Any, actor: "PermissionContext") -> Any:
        """
        Audit a restored row.

        With capture log the row's active field is set to ACTIVE first so the
        log records the state after the restore.
        """
        if self._capture_log is not None:
            self.row.set_value(entity, self.row.is_active_field, ActiveState.ACTIVE)
            return self._capture_log.log(uow, entity, actor.user_id, is_delete=False)

        active = self.row.is_active_field
        return record_generic_event(
            uow.session,
            self.get_audit_request(entity),
            user_id=actor.user_id,
            user_email=actor.user_email,
            active_field=active.property_name if active is not None else None,
        )
