"""
FastAPI dependencies shared by the service routers.

Applications override these with `app.dependency_overrides`, most notably
`get_permission_context` to plug in their authentication.
"""

from functools import lru_cache

from fastapi import Depends

from data_services.rows.registry import RowDescriptor, RowRegistry, row_registry
from data_services.services.crud.cache import CacheInvalidationCoordinator
from data_services.services.permissions import PermissionContext
from shared.utils.exceptions import NotFoundError


def get_permission_context() -> PermissionContext:
    """Current user's permissions. Anonymous unless overridden."""
    return PermissionContext.anonymous()


def get_row_registry() -> RowRegistry:
    return row_registry


@lru_cache
def _default_cache_coordinator() -> CacheInvalidationCoordinator:
    return CacheInvalidationCoordinator()


def get_cache_coordinator() -> CacheInvalidationCoordinator:
    return _default_cache_coordinator()


def get_row_descriptor(
    entity_type: str,
    registry: RowRegistry = Depends(get_row_registry),
) -> RowDescriptor:
    """Resolve the {entity_type} path parameter to a registered row type."""
    descriptor = registry.get(entity_type)
    if descriptor is None:
        raise NotFoundError("Row type", entity_type)
    return descriptor
