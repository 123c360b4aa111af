"""
Versioned Cache-Aside Engine

Architecture:
    VersionedCache (Public API)
        ├── VersionedKeyBuilder (namespace version + fingerprint hash)
        ├── StoreAdapter (shared key-value store, optional)
        └── CacheObserver (metrics & logging)

Pattern: cache-aside. The cache is a disposable view of canonical state,
populated lazily on read-miss; TTLs bound staleness and ``bump`` invalidates
a whole namespace on mutation.

Degradation:
    - No store configured: every ``wrap_json`` computes, ``peek`` misses.
    - Store error on any call: that call computes fresh and skips the write.
    - Value not JSON-serializable: returned to the caller, never stored.

Concurrent misses on one key all compute and all write (last writer wins).
Callers with expensive compute functions should coalesce in-flight requests
above this class.
"""

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import orjson

from cachegate.core.config.constants import (
    DEFAULT_KEY_PREFIX,
    ENVELOPE_TAG,
    ENVELOPE_TAG_FIELD,
    ENVELOPE_VALUE_FIELD,
    Stage,
)
from cachegate.core.exceptions import CacheError, CacheSerializationError
from cachegate.core.interfaces.store import StoreAdapter
from cachegate.core.logging.logger import get_logger, log_stage
from cachegate.infrastructure.cache.keys import VersionedKeyBuilder

logger = get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# LOOKUP RESULT
# =============================================================================


@dataclass(frozen=True)
class CacheHit:
    """A stored entry; ``value`` may legitimately be None."""

    value: Any

    @property
    def hit(self) -> bool:
        return True


@dataclass(frozen=True)
class CacheMiss:
    """No usable entry for the key."""

    @property
    def hit(self) -> bool:
        return False


CACHE_MISS = CacheMiss()

CacheLookup = CacheHit | CacheMiss


def encode_entry(value: Any) -> str:
    """
    Wrap ``value`` in the entry envelope and serialize it.

    Raises:
        CacheSerializationError: If the value is not JSON-serializable
    """
    try:
        return orjson.dumps({ENVELOPE_TAG_FIELD: ENVELOPE_TAG, ENVELOPE_VALUE_FIELD: value}).decode("utf-8")
    except (orjson.JSONEncodeError, TypeError) as e:
        raise CacheSerializationError.from_exception(e, value_type=type(value).__name__) from e


def decode_entry(raw: str | None) -> CacheLookup:
    """
    Turn a stored string back into a lookup result.

    Enveloped values unwrap to their payload. A bare JSON value written
    without an envelope is returned as-is, except bare ``null`` which cannot
    be told apart from "nothing stored". Undecodable data is a miss.
    """
    if not raw:
        return CACHE_MISS

    try:
        decoded = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return CACHE_MISS

    if decoded is None:
        return CACHE_MISS

    if (
        isinstance(decoded, dict)
        and decoded.get(ENVELOPE_TAG_FIELD) == ENVELOPE_TAG
        and ENVELOPE_VALUE_FIELD in decoded
    ):
        return CacheHit(decoded[ENVELOPE_VALUE_FIELD])

    return CacheHit(decoded)


# =============================================================================
# OBSERVABILITY
# =============================================================================


class CacheObserver:
    """
    Tracks cache outcomes and logs them.

    Metrics Tracked:
    - hits, misses
    - stale hits (served by ``peek`` to rate-limited clients)
    - store errors (calls degraded to compute-fresh)
    - skipped writes (serialization failures)
    """

    def __init__(self, logger_instance=None):
        self._logger = logger_instance or logger
        self._hits = 0
        self._misses = 0
        self._stale_hits = 0
        self._store_errors = 0
        self._skipped_writes = 0

    def record_lookup(self, lookup: CacheLookup, key: str, stale: bool = False) -> None:
        if lookup.hit:
            if stale:
                self._stale_hits += 1
                log_stage(self._logger, Stage.CACHE_LOOKUP, "Stale cache hit", level="debug", cache_key=key)
            else:
                self._hits += 1
                log_stage(self._logger, Stage.CACHE_LOOKUP, "Cache hit", level="debug", cache_key=key)
        else:
            self._misses += 1
            log_stage(self._logger, Stage.CACHE_LOOKUP, "Cache miss", level="debug", cache_key=key)

    def record_store_error(self, operation: str, error: CacheError, **context) -> None:
        self._store_errors += 1
        log_stage(
            self._logger,
            Stage.CACHE_LOOKUP,
            "Cache store unavailable, computing fresh",
            level="warning",
            operation=operation,
            error=error.message,
            **context,
        )

    def record_skipped_write(self, key: str, error: CacheSerializationError) -> None:
        self._skipped_writes += 1
        log_stage(
            self._logger,
            Stage.CACHE_WRITE,
            "Cache write skipped, value not serializable",
            level="warning",
            cache_key=key,
            **error.details,
        )

    def get_stats(self) -> dict[str, Any]:
        lookups = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "stale_hits": self._stale_hits,
            "store_errors": self._store_errors,
            "skipped_writes": self._skipped_writes,
            "hit_rate": round(self._hits / lookups, 3) if lookups > 0 else 0.0,
        }


# =============================================================================
# PUBLIC API
# =============================================================================


class VersionedCache:
    """
    Namespace-versioned cache-aside engine.

    Usage:
        cache = VersionedCache(store, key_prefix="cachegate:cache:")

        post = await cache.wrap_json("posts", {"slug": slug}, 60, load_post)
        await cache.bump("posts")  # after editing a post

        stale = await cache.peek("posts", {"slug": slug})
        if stale.hit:
            return stale.value

    Passing ``store=None`` builds the No-Op variant.
    """

    def __init__(
        self,
        store: StoreAdapter | None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        default_ttl: int = 60,
    ):
        self._store = store
        self._keys = VersionedKeyBuilder(store, key_prefix) if store is not None else None
        self._noop_keys = VersionedKeyBuilder(store, key_prefix)
        self._default_ttl = default_ttl
        self._observer = CacheObserver()

    @property
    def enabled(self) -> bool:
        return self._store is not None

    # -------------------------------------------------------------------------
    # Versions and keys
    # -------------------------------------------------------------------------

    async def get_version(self, namespace: str) -> int:
        """Current namespace version (1 when the store is unavailable)."""
        if self._keys is None:
            return 1
        try:
            return await self._keys.get_version(namespace)
        except CacheError as e:
            self._observer.record_store_error("get_version", e, namespace=namespace)
            return 1

    async def bump(self, namespace: str) -> int:
        """
        Invalidate every entry of ``namespace`` by incrementing its version.

        Returns the new version, or 1 when the store is unavailable.
        """
        if self._keys is None:
            return 1
        try:
            return await self._keys.bump(namespace)
        except CacheError as e:
            self._observer.record_store_error("bump", e, namespace=namespace)
            return 1

    async def key(self, namespace: str, fingerprint: Any) -> str:
        """Cache key for ``fingerprint`` under the namespace's current version."""
        if self._keys is None:
            return self._noop_keys.noop_key(fingerprint)
        try:
            return await self._keys.build_key(namespace, fingerprint)
        except CacheError as e:
            self._observer.record_store_error("key", e, namespace=namespace)
            return self._noop_keys.noop_key(fingerprint)

    # -------------------------------------------------------------------------
    # Raw entry access
    # -------------------------------------------------------------------------

    async def get_json(self, key: str) -> CacheLookup:
        """Read and decode the entry stored under ``key``."""
        if self._store is None:
            return CACHE_MISS
        try:
            raw = await self._store.get_string(key)
        except CacheError as e:
            self._observer.record_store_error("get_json", e, cache_key=key)
            return CACHE_MISS
        return decode_entry(raw)

    async def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        """
        Store ``value`` under ``key`` in the entry envelope.

        Returns:
            bool: True if written; False when skipped or the store failed
        """
        if self._store is None:
            return False
        try:
            payload = encode_entry(value)
        except CacheSerializationError as e:
            self._observer.record_skipped_write(key, e)
            return False
        try:
            await self._store.set_string(key, payload, ttl_seconds or self._default_ttl)
        except CacheError as e:
            self._observer.record_store_error("set_json", e, cache_key=key)
            return False
        log_stage(logger, Stage.CACHE_WRITE, "Cache set", level="debug", cache_key=key)
        return True

    # -------------------------------------------------------------------------
    # Cache-aside
    # -------------------------------------------------------------------------

    async def wrap_json(
        self,
        namespace: str,
        fingerprint: Any,
        ttl_seconds: int | None,
        compute_fn: Callable[[], T | Awaitable[T]],
    ) -> T:
        """
        Return the cached value for ``fingerprint`` or compute and store it.

        ``compute_fn`` may be sync or async. Exceptions raised by it
        propagate unchanged; store failures never do.
        """
        if self._keys is None:
            return await _compute(compute_fn)

        try:
            key = await self._keys.build_key(namespace, fingerprint)
        except CacheError as e:
            self._observer.record_store_error("wrap_json", e, namespace=namespace)
            return await _compute(compute_fn)

        lookup = await self.get_json(key)
        self._observer.record_lookup(lookup, key)
        if isinstance(lookup, CacheHit):
            return lookup.value

        log_stage(logger, Stage.CACHE_COMPUTE, "Computing cache entry", level="debug", cache_key=key)
        value = await _compute(compute_fn)
        await self.set_json(key, value, ttl_seconds)
        return value

    async def peek(self, namespace: str, fingerprint: Any) -> CacheLookup:
        """
        Read the last stored value without computing or writing.

        Used to serve stale data to rate-limited clients.
        """
        if self._keys is None:
            return CACHE_MISS

        try:
            key = await self._keys.build_key(namespace, fingerprint, read_only=True)
        except CacheError as e:
            self._observer.record_store_error("peek", e, namespace=namespace)
            return CACHE_MISS

        lookup = await self.get_json(key)
        self._observer.record_lookup(lookup, key, stale=True)
        return lookup

    def stats(self) -> dict[str, Any]:
        """Cache performance statistics."""
        return {**self._observer.get_stats(), "enabled": self.enabled}


async def _compute(compute_fn: Callable[[], Any]) -> Any:
    result = compute_fn()
    if inspect.isawaitable(result):
        return await result
    return result
