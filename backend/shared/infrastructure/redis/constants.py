"""
Redis constants and configuration.
Centralizes key prefixes for better visibility and management.
"""

from shared.config.settings import settings


# =============================================================================
# Key Prefixes
# =============================================================================

PREFIX_CACHE_GENERATION = settings.cache_generation_prefix


def get_generation_cache_key(generation_key: str) -> str:
    """Generate the redis key holding the generation counter of a cache group."""
    return f"{PREFIX_CACHE_GENERATION}{generation_key}"
