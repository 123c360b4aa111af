"""
Versioned Cache Keys

Cache keys embed a per-namespace version counter:

    <prefix><namespace>:v<version>:<sha1(canonical fingerprint)[:16]>

Bumping the counter invalidates every entry of the namespace in O(1): old
entries are never deleted, they simply stop being addressed and expire on
their own TTL.
"""

import hashlib
from typing import Any

import orjson

from cachegate.core.config.constants import (
    DEFAULT_KEY_PREFIX,
    FINGERPRINT_HASH_LENGTH,
    REDIS_KEY_NOOP,
    REDIS_KEY_VERSION,
    Stage,
)
from cachegate.core.interfaces.store import StoreAdapter
from cachegate.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


def canonicalize(fingerprint: Any) -> str:
    """
    Serialize a request fingerprint to a stable string.

    Mapping keys are sorted at every depth, so ``{"a": 1, "b": 2}`` and
    ``{"b": 2, "a": 1}`` canonicalize identically. Values orjson cannot
    encode are rendered with ``str()``; if the value still cannot be encoded
    (e.g. a circular structure) the whole fingerprint falls back to ``str()``.
    """
    try:
        return orjson.dumps(
            fingerprint,
            default=_fallback,
            option=orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS,
        ).decode("utf-8")
    except (orjson.JSONEncodeError, TypeError):
        return str(fingerprint)


def _fallback(value: Any) -> Any:
    # Sets have no stable iteration order across processes
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    return str(value)


def short_hash(payload: str) -> str:
    """Truncated SHA-1 hex digest; stable across processes (no seed)."""
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()[:FINGERPRINT_HASH_LENGTH]


class VersionedKeyBuilder:
    """
    Derives cache keys from a namespace version and a request fingerprint.

    Store errors propagate as ``CacheError``: a key must never be built from a
    guessed version, or a read could land on an entry invalidated by a bump.
    """

    def __init__(self, store: StoreAdapter, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._store = store
        self._prefix = key_prefix

    def version_key(self, namespace: str) -> str:
        """Store key holding the namespace's version counter."""
        return f"{self._prefix}{REDIS_KEY_VERSION}:{namespace}"

    async def get_version(self, namespace: str) -> int:
        """
        Read the namespace version, initializing it to 1 on first use.

        Initialization uses SET NX so a concurrent ``bump`` is never
        overwritten; when another writer wins, its value is read back.
        """
        key = self.version_key(namespace)
        stored = await self._store.get_string(key)
        if stored:
            return _parse_version(stored)

        if await self._store.set_string(key, "1", nx=True):
            return 1

        stored = await self._store.get_string(key)
        return _parse_version(stored) if stored else 1

    async def read_version(self, namespace: str) -> int:
        """Read the namespace version without initializing it; absent reads as 1."""
        stored = await self._store.get_string(self.version_key(namespace))
        return _parse_version(stored) if stored else 1

    async def bump(self, namespace: str) -> int:
        """Atomically increment the namespace version and return it."""
        version = await self._store.increment(self.version_key(namespace))
        log_stage(logger, Stage.CACHE_BUMP, "Namespace version bumped", namespace=namespace, version=version)
        return version or 1

    async def build_key(self, namespace: str, fingerprint: Any, read_only: bool = False) -> str:
        """
        Build the cache key for ``fingerprint`` under the current version.

        With ``read_only=True`` an uninitialized namespace is not written.
        """
        if read_only:
            version = await self.read_version(namespace)
        else:
            version = await self.get_version(namespace)
        key = self.format_key(namespace, version, fingerprint)
        log_stage(logger, Stage.CACHE_KEY, "Cache key built", level="debug", namespace=namespace, cache_key=key)
        return key

    def format_key(self, namespace: str, version: int, fingerprint: Any) -> str:
        """Build a key for an explicit version (no store access)."""
        return f"{self._prefix}{namespace}:v{version}:{short_hash(canonicalize(fingerprint))}"

    def noop_key(self, fingerprint: Any) -> str:
        """Key reported when no store is available; never written."""
        return f"{self._prefix}{REDIS_KEY_NOOP}:{short_hash(canonicalize(fingerprint))}"


def _parse_version(stored: str) -> int:
    try:
        return int(stored) or 1
    except ValueError:
        return 1
