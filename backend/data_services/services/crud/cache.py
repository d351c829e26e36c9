"""
Commit-scoped cache invalidation.

Cached data is grouped under generation keys. Bumping a key's generation
counter invalidates every cached value built against the old generation.
Bumps are queued on the unit of work and only reach redis after commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from shared.config.logging import get_logger
from shared.infrastructure.redis import get_generation_cache_key, get_redis_sync_client

if TYPE_CHECKING:
    import redis

    from data_services.rows.registry import RowDescriptor
    from data_services.services.crud.unit_of_work import UnitOfWork

logger = get_logger(__name__)

PENDING_KEYS_ITEM = "cache.pending_generation_keys"


class GenerationStore(Protocol):
    def bump(self, generation_key: str) -> int: ...


class RedisGenerationStore:
    """Generation counters kept in redis, one INCR per bump."""

    def __init__(self, client: "redis.Redis | None" = None):
        self._client = client

    @property
    def client(self) -> "redis.Redis":
        if self._client is None:
            self._client = get_redis_sync_client()
        return self._client

    def bump(self, generation_key: str) -> int:
        generation = self.client.incr(get_generation_cache_key(generation_key))
        logger.debug("Cache generation bumped", key=generation_key, generation=generation)
        return generation

    def get(self, generation_key: str) -> int:
        value = self.client.get(get_generation_cache_key(generation_key))
        return int(value) if value is not None else 0


class CacheInvalidationCoordinator:
    """
    Registers generation bumps that run when the unit of work commits.

    The same key registered twice in one unit of work is bumped once.
    """

    def __init__(self, store: GenerationStore | None = None):
        self._store = store if store is not None else RedisGenerationStore()

    @property
    def store(self) -> GenerationStore:
        return self._store

    def register(self, uow: "UnitOfWork", generation_key: str) -> None:
        pending: set[str] = uow.items.setdefault(PENDING_KEYS_ITEM, set())
        if generation_key in pending:
            return
        pending.add(generation_key)
        uow.on_commit(lambda: self._store.bump(generation_key))

    def invalidate_on_commit(self, uow: "UnitOfWork", row: "RowDescriptor") -> list[str]:
        """
        Register the row's own key plus its declared keys.

        Rows without a cache declaration register nothing.
        """
        if row.cache is None:
            return []
        keys = [row.generation_key, *row.cache.generation_keys]
        for key in keys:
            self.register(uow, key)
        return keys
