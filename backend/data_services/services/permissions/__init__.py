"""
Permission checks used by the row service handlers.

Usage:
    from data_services.services.permissions import PermissionContext

    ctx = PermissionContext(user)
    ctx.require(descriptor.read_permission)
"""

from .context import ADMIN_ROLE, PermissionContext

__all__ = [
    "ADMIN_ROLE",
    "PermissionContext",
]
