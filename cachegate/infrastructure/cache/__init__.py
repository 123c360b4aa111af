"""
Cache Module

Namespace-versioned cache-aside on top of a StoreAdapter.
"""

from .keys import VersionedKeyBuilder, canonicalize, short_hash
from .versioned_cache import (
    CACHE_MISS,
    CacheHit,
    CacheLookup,
    CacheMiss,
    CacheObserver,
    VersionedCache,
)

__all__ = [
    "CACHE_MISS",
    "CacheHit",
    "CacheLookup",
    "CacheMiss",
    "CacheObserver",
    "VersionedCache",
    "VersionedKeyBuilder",
    "canonicalize",
    "short_hash",
]
