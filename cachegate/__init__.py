"""
cachegate

Versioned cache-aside, fixed-window rate limiting and abuse tracking on a
shared Redis store, degrading to safe defaults when the store is absent or
failing.
"""

from cachegate.abuse.tracker import AbuseTracker, SuspiciousClient
from cachegate.core.config.constants import HEADER_CACHE, HEADER_RATE_LIMITED, HEADER_RETRY_AFTER
from cachegate.gate import CacheGate, create_cache_gate
from cachegate.infrastructure.cache.versioned_cache import CACHE_MISS, CacheHit, CacheMiss, VersionedCache
from cachegate.rate_limiting.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitResult,
    RateLimitRule,
)

__version__ = "1.0.0"

__all__ = [
    "CacheGate",
    "create_cache_gate",
    "VersionedCache",
    "CacheHit",
    "CacheMiss",
    "CACHE_MISS",
    "FixedWindowRateLimiter",
    "RateLimitResult",
    "RateLimitRule",
    "RateLimitDecision",
    "AbuseTracker",
    "SuspiciousClient",
    "HEADER_RATE_LIMITED",
    "HEADER_CACHE",
    "HEADER_RETRY_AFTER",
]
