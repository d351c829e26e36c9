"""
Row services: generic list and undelete request handlers over registered
SQLAlchemy row types.

IMPORT EXAMPLES:
    from data_services.rows import RowRegistry, SelectLevel, field_info
    from data_services.schemas import ListRequest, UndeleteRequest
    from data_services.services.crud import ListRequestHandler, UndeleteRequestHandler, UnitOfWork
    from data_services.services.permissions import PermissionContext
"""
