"""
Cache Gate Facade

Single entry point bundling the versioned cache, rate limiter and abuse
tracker around one injected store adapter.

Startup never fails because of the store: with no REDIS_URL, or when the
first PING does not answer, the gate is built disabled (No-Op mode) and
every operation returns its safe default.

Usage:
    gate = await create_cache_gate()

    post = await gate.wrap_json("posts", {"slug": slug}, 60, load_post)
    result = await gate.rate_limit("search", client_ip, limit=120, window_seconds=60)
    await gate.record_suspicious(client_ip, bucket="search", kind="rate_limit")

    await gate.aclose()
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from cachegate.abuse.tracker import AbuseTracker, SuspiciousClient
from cachegate.core.config.constants import Stage
from cachegate.core.config.settings import Settings, get_settings
from cachegate.core.exceptions import CacheConnectionError
from cachegate.core.interfaces.store import StoreAdapter
from cachegate.core.logging.logger import get_logger, log_stage
from cachegate.infrastructure.cache.versioned_cache import CacheLookup, VersionedCache
from cachegate.infrastructure.store.redis_store import RedisStore
from cachegate.rate_limiting.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitResult,
    RateLimitRule,
)

logger = get_logger(__name__)

T = TypeVar("T")

GLOBAL_CLIENT_KEY = "global"


class CacheGate:
    """
    Versioned cache + rate limiter + abuse tracker sharing one store.

    ``store=None`` builds the disabled gate. ``owns_store`` controls whether
    ``aclose`` disconnects the store.
    """

    def __init__(
        self,
        store: StoreAdapter | None,
        settings: Settings | None = None,
        owns_store: bool = False,
    ):
        self._store = store
        self._settings = settings or get_settings()
        self._owns_store = owns_store

        prefix = self._settings.cache.CACHE_KEY_PREFIX
        abuse = self._settings.abuse

        self.cache = VersionedCache(
            store, key_prefix=prefix, default_ttl=self._settings.cache.CACHE_DEFAULT_TTL
        )
        self.limiter = FixedWindowRateLimiter(store, key_prefix=prefix)
        self.abuse = AbuseTracker(
            store,
            key_prefix=prefix,
            max_tracked=abuse.ABUSE_MAX_TRACKED,
            detail_ttl=abuse.ABUSE_DETAIL_TTL,
            list_default=abuse.ABUSE_LIST_DEFAULT,
            list_max=abuse.ABUSE_LIST_MAX,
        )

    @classmethod
    def disabled(cls, settings: Settings | None = None) -> "CacheGate":
        """No-Op gate: always compute, always allow, track nothing."""
        return cls(None, settings=settings)

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def settings(self) -> Settings:
        return self._settings

    # -------------------------------------------------------------------------
    # Versioned cache
    # -------------------------------------------------------------------------

    async def wrap_json(
        self,
        namespace: str,
        fingerprint: Any,
        ttl_seconds: int | None,
        compute_fn: Callable[[], T | Awaitable[T]],
    ) -> T:
        return await self.cache.wrap_json(namespace, fingerprint, ttl_seconds, compute_fn)

    async def peek(self, namespace: str, fingerprint: Any) -> CacheLookup:
        return await self.cache.peek(namespace, fingerprint)

    async def bump(self, namespace: str) -> int:
        return await self.cache.bump(namespace)

    async def get_version(self, namespace: str) -> int:
        return await self.cache.get_version(namespace)

    async def key(self, namespace: str, fingerprint: Any) -> str:
        return await self.cache.key(namespace, fingerprint)

    # -------------------------------------------------------------------------
    # Rate limiting
    # -------------------------------------------------------------------------

    async def rate_limit(
        self, bucket: str, client_key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        return await self.limiter.rate_limit(bucket, client_key, limit, window_seconds)

    async def check_rules(self, rules: list[RateLimitRule]) -> RateLimitDecision:
        return await self.limiter.check_rules(rules)

    def default_rules(
        self,
        bucket: str,
        client_key: str,
        per_client_limit: int | None = None,
        global_limit: int | None = None,
        window_seconds: int | None = None,
    ) -> list[RateLimitRule]:
        """Per-client and global rules for ``bucket`` from configured defaults."""
        rl = self._settings.rate_limit
        window = window_seconds or rl.RATE_LIMIT_WINDOW_SECONDS
        return [
            RateLimitRule(bucket, client_key, per_client_limit or rl.RATE_LIMIT_PER_CLIENT, window),
            RateLimitRule(bucket, GLOBAL_CLIENT_KEY, global_limit or rl.RATE_LIMIT_GLOBAL, window),
        ]

    # -------------------------------------------------------------------------
    # Abuse tracking
    # -------------------------------------------------------------------------

    async def record_suspicious(self, client_id: str, bucket: str, kind: str) -> None:
        await self.abuse.record_suspicious(client_id, bucket, kind)

    async def list_suspicious_ips(self, limit: int | None = None) -> list[SuspiciousClient]:
        return await self.abuse.list_suspicious_ips(limit)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Store health plus cache statistics."""
        if self._store is None:
            return {"status": "disabled", "enabled": False, "cache": self.cache.stats()}

        store_health = await self._store.health_check()
        return {**store_health, "enabled": True, "cache": self.cache.stats()}

    async def aclose(self) -> None:
        """Disconnect the store if this gate created it."""
        if self._store is not None and self._owns_store:
            await self._store.disconnect()


async def create_cache_gate(
    settings: Settings | None = None,
    store: StoreAdapter | None = None,
) -> CacheGate:
    """
    Build a gate, connecting to Redis when REDIS_URL is configured.

    An explicitly passed ``store`` is used as-is and is not closed by the gate.
    A missing URL or failed connection yields a disabled gate; neither is
    raised.
    """
    settings = settings or get_settings()

    if store is not None:
        log_stage(logger, Stage.GATE_INIT, "Cache gate using injected store")
        return CacheGate(store, settings=settings)

    if not settings.redis.REDIS_URL:
        log_stage(
            logger,
            Stage.GATE_INIT,
            "REDIS_URL not configured, cache gate disabled",
            level="warning",
        )
        return CacheGate.disabled(settings)

    redis_store = RedisStore(settings.redis)
    try:
        await redis_store.connect()
    except CacheConnectionError as e:
        log_stage(
            logger,
            Stage.GATE_INIT,
            "Store unreachable, cache gate disabled",
            level="warning",
            error=e.message,
        )
        return CacheGate.disabled(settings)

    log_stage(logger, Stage.GATE_INIT, "Cache gate ready", key_prefix=settings.cache.CACHE_KEY_PREFIX)
    return CacheGate(redis_store, settings=settings, owns_store=True)
