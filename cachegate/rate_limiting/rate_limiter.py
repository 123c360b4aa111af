"""
Rate Limiter

Fixed-window request counting on the shared store.

Algorithm (per bucket + client key):
1. INCR the window counter
2. If this request created the window (count == 1), EXPIRE it to the window
3. Read the TTL; a missing TTL reports the full window and re-arms the expiry
   so a lost EXPIRE cannot pin the counter forever
4. allowed = count <= limit, remaining = max(0, limit - count)

Windows are fixed, not sliding: up to 2x the limit can pass across a window
boundary. Store failures fail open: the request is allowed and the
degradation is logged.
"""

from dataclasses import dataclass

from cachegate.core.config.constants import DEFAULT_KEY_PREFIX, REDIS_KEY_RATE_LIMIT, Stage
from cachegate.core.exceptions import CacheError
from cachegate.core.interfaces.store import StoreAdapter
from cachegate.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """
    Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request is within the limit
        count: Requests counted in the current window (0 when not tracked)
        remaining: Requests left in the window, never negative
        reset_seconds: Seconds until the window resets
        limit: Configured limit
        bucket: Logical bucket checked
    """

    allowed: bool
    count: int
    remaining: int
    reset_seconds: int
    limit: int
    bucket: str


@dataclass(frozen=True)
class RateLimitRule:
    """One bucket to check; ``client_key`` is the IP, user id, or a global key."""

    bucket: str
    client_key: str
    limit: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Combined outcome of several rules."""

    results: tuple[RateLimitResult, ...]

    @property
    def allowed(self) -> bool:
        return all(result.allowed for result in self.results)

    @property
    def exceeded(self) -> tuple[RateLimitResult, ...]:
        return tuple(result for result in self.results if not result.allowed)

    @property
    def retry_after(self) -> int:
        """Largest reset among exceeded rules (0 when allowed)."""
        return max((result.reset_seconds for result in self.exceeded), default=0)


class FixedWindowRateLimiter:
    """
    Fixed-window rate limiter backed by INCR/EXPIRE.

    Usage:
        limiter = FixedWindowRateLimiter(store)
        result = await limiter.rate_limit("search", client_ip, limit=120, window_seconds=60)
        if not result.allowed:
            ...

    With ``store=None`` every request is allowed and nothing is counted.
    """

    def __init__(self, store: StoreAdapter | None, key_prefix: str = DEFAULT_KEY_PREFIX):
        self._store = store
        self._prefix = key_prefix

    @property
    def enabled(self) -> bool:
        return self._store is not None

    def window_key(self, bucket: str, client_key: str) -> str:
        return f"{self._prefix}{REDIS_KEY_RATE_LIMIT}:{bucket}:{client_key}"

    async def rate_limit(
        self, bucket: str, client_key: str, limit: int, window_seconds: int
    ) -> RateLimitResult:
        """
        Count this request against ``bucket`` for ``client_key``.

        Never raises on store failure; the request is allowed instead.
        """
        if self._store is None:
            return _allow_untracked(bucket, limit, window_seconds)

        key = self.window_key(bucket, client_key)
        try:
            count = await self._store.increment(key)
            if count == 1:
                await self._store.expire(key, window_seconds)

            ttl = await self._store.ttl(key)
            if ttl <= 0:
                if ttl == -1:
                    await self._store.expire(key, window_seconds)
                ttl = window_seconds

        except CacheError as e:
            log_stage(
                logger,
                Stage.RATE_LIMIT_DEGRADED,
                "Rate limit store unavailable, allowing request",
                level="warning",
                bucket=bucket,
                error=e.message,
            )
            return _allow_untracked(bucket, limit, window_seconds)

        allowed = count <= limit
        result = RateLimitResult(
            allowed=allowed,
            count=count,
            remaining=max(0, limit - count),
            reset_seconds=ttl,
            limit=limit,
            bucket=bucket,
        )

        if not allowed:
            log_stage(
                logger,
                Stage.RATE_LIMIT_CHECK,
                "Rate limit exceeded",
                bucket=bucket,
                client_key=client_key,
                count=count,
                limit=limit,
                reset_seconds=ttl,
            )

        return result

    async def check_rules(self, rules: list[RateLimitRule]) -> RateLimitDecision:
        """
        Check every rule; every counter is incremented even once one is exceeded.
        """
        results = []
        for rule in rules:
            results.append(
                await self.rate_limit(rule.bucket, rule.client_key, rule.limit, rule.window_seconds)
            )
        return RateLimitDecision(results=tuple(results))


def _allow_untracked(bucket: str, limit: int, window_seconds: int) -> RateLimitResult:
    return RateLimitResult(
        allowed=True,
        count=0,
        remaining=limit,
        reset_seconds=window_seconds,
        limit=limit,
        bucket=bucket,
    )
