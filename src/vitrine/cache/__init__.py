"""Tag-invalidated query cache."""

from vitrine.cache.query_cache import (
    CacheEntry,
    CacheStatus,
    PatchResult,
    QueryCache,
    cache_key,
)
from vitrine.cache.tags import Tag, resolve_tags

__all__ = [
    "CacheEntry",
    "CacheStatus",
    "PatchResult",
    "QueryCache",
    "Tag",
    "cache_key",
    "resolve_tags",
]
