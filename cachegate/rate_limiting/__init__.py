"""
Rate Limiting Module

Fixed-window rate limiting on the shared store, failing open.
"""

from .rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitResult,
    RateLimitRule,
)

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitResult",
    "RateLimitRule",
]
