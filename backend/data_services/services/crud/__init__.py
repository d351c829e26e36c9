"""
CRUD Services - generic request handlers for registered row types.

Provides:
- ListRequestHandler: listing pipeline (projection, paging, search, sort, filters)
- UndeleteRequestHandler: guarded restore of soft-deleted rows
- should_select_field: per field projection policy
- SqlSelect: mutable select query used by the list pipeline
- UnitOfWork: transaction context with commit-scoped callbacks
- CacheInvalidationCoordinator: generation bumps on commit
- AuditCoordinator / log_change: audit trail
"""

from .selection import should_select_field, is_included
from .query import SqlSelect
from .unit_of_work import UnitOfWork
from .cache import (
    CacheInvalidationCoordinator,
    GenerationStore,
    RedisGenerationStore,
)
from .audit import (
    AuditCoordinator,
    AuditUndeleteRequest,
    CaptureLogHandler,
    log_change,
    record_generic_event,
)
from .list_handler import ListRequestHandler
from .undelete_handler import UndeleteRequestHandler

__all__ = [
    # Selection
    "should_select_field",
    "is_included",
    # Query
    "SqlSelect",
    # Transaction
    "UnitOfWork",
    # Cache
    "CacheInvalidationCoordinator",
    "GenerationStore",
    "RedisGenerationStore",
    # Audit
    "AuditCoordinator",
    "AuditUndeleteRequest",
    "CaptureLogHandler",
    "log_change",
    "record_generic_event",
    # Handlers
    "ListRequestHandler",
    "UndeleteRequestHandler",
]
