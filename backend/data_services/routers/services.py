"""
Row service endpoints: listing and restore for every registered row type.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from data_services.routers.dependencies import (
    get_cache_coordinator,
    get_permission_context,
    get_row_descriptor,
)
from data_services.rows.registry import RowDescriptor
from data_services.schemas import ListRequest, UndeleteRequest
from data_services.services.crud import (
    CacheInvalidationCoordinator,
    ListRequestHandler,
    UndeleteRequestHandler,
    UnitOfWork,
)
from data_services.services.permissions import PermissionContext
from shared.infrastructure.db import get_db


router = APIRouter(prefix="/services", tags=["services"])


def serialize_entity(row: RowDescriptor, entity: Any) -> dict[str, Any]:
    """Loaded attributes of a listed row, keyed by property name."""
    loaded = inspect(entity).dict
    return {
        field.property_name: loaded[field.property_name]
        for field in row.fields
        if field.property_name in loaded
    }


@router.post("/{entity_type}/list")
def list_entities(
    list_request: ListRequest,
    descriptor: RowDescriptor = Depends(get_row_descriptor),
    db: Session = Depends(get_db),
    permissions: PermissionContext = Depends(get_permission_context),
) -> dict[str, Any]:
    """List rows of a registered type."""
    response = ListRequestHandler(descriptor, permissions).process(db, list_request)
    return {
        "entities": [serialize_entity(descriptor, entity) for entity in response.entities],
        "total_count": response.total_count,
        "skip": response.skip,
        "take": response.take,
    }


@router.post("/{entity_type}/undelete")
def undelete_entity(
    undelete_request: UndeleteRequest,
    descriptor: RowDescriptor = Depends(get_row_descriptor),
    db: Session = Depends(get_db),
    permissions: PermissionContext = Depends(get_permission_context),
    cache: CacheInvalidationCoordinator = Depends(get_cache_coordinator),
) -> dict[str, bool]:
    """Restore a soft-deleted row. Commits on success."""
    handler = UndeleteRequestHandler(descriptor, permissions, cache=cache)
    with UnitOfWork(db) as uow:
        response = handler.process(uow, undelete_request)
    return {"was_not_deleted": response.was_not_deleted}
