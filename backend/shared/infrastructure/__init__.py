"""
Infrastructure module: Database and Redis.

Provides:
- Database engine and sessions (db.py)
- Redis connection pool for the cache generation store (redis/)
"""

from shared.infrastructure.db import (
    get_engine,
    SessionLocal,
    get_db,
)
from shared.infrastructure.redis import (
    get_redis_sync_client,
    close_redis_sync_client,
)

__all__ = [
    # db
    "get_engine",
    "SessionLocal",
    "get_db",
    # redis
    "get_redis_sync_client",
    "close_redis_sync_client",
]
