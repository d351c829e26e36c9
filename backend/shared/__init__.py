"""
Shared module for the ambient concerns of the row services.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Active-state sentinels, audit actions

- shared.infrastructure: Database and cache stores
  - db.py: SQLAlchemy engine and sessions
  - redis/: Redis connection pool and key constants
  - correlation.py: Request correlation IDs

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db
    from shared.config.settings import settings
    from shared.config.constants import ActiveState
    from shared.utils.exceptions import NotFoundError, ValidationError
"""
