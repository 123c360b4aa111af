"""
Unit Tests for FixedWindowRateLimiter

Tests counting, window expiry and reset, TTL self-healing, multi-rule
decisions and fail-open behavior.
"""

from unittest.mock import AsyncMock

import pytest

from cachegate.rate_limiting.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitResult,
    RateLimitRule,
)

PREFIX = "cachegate:cache:"


@pytest.fixture
def limiter(memory_store):
    return FixedWindowRateLimiter(memory_store, key_prefix=PREFIX)


@pytest.mark.unit
class TestRateLimit:
    """Fixed-window counting."""

    async def test_third_request_over_limit_of_two(self, limiter):
        results = [await limiter.rate_limit("search", "ip1", 2, 60) for _ in range(3)]

        assert [r.allowed for r in results] == [True, True, False]
        assert [r.remaining for r in results] == [1, 0, 0]
        assert [r.count for r in results] == [1, 2, 3]

    async def test_result_fields(self, limiter):
        result = await limiter.rate_limit("search", "ip1", 5, 60)

        assert result == RateLimitResult(
            allowed=True, count=1, remaining=4, reset_seconds=60, limit=5, bucket="search"
        )

    async def test_window_key_layout(self, limiter, memory_store):
        await limiter.rate_limit("search", "1.2.3.4", 5, 60)

        assert memory_store.strings[f"{PREFIX}rl:search:1.2.3.4"] == "1"

    async def test_expire_only_set_when_window_created(self, limiter, memory_store):
        for _ in range(3):
            await limiter.rate_limit("search", "ip1", 5, 60)

        assert memory_store.call_count("expire") == 1

    async def test_reset_seconds_counts_down(self, limiter, clock):
        await limiter.rate_limit("search", "ip1", 5, 60)
        clock.advance(20)

        result = await limiter.rate_limit("search", "ip1", 5, 60)

        assert result.reset_seconds == 40

    async def test_window_resets_after_expiry(self, limiter, clock):
        for _ in range(3):
            await limiter.rate_limit("search", "ip1", 2, 60)

        clock.advance(61)
        result = await limiter.rate_limit("search", "ip1", 2, 60)

        assert result.allowed is True
        assert result.count == 1

    async def test_counts_are_monotonic_within_window(self, limiter):
        counts = [(await limiter.rate_limit("search", "ip1", 100, 60)).count for _ in range(10)]

        assert counts == sorted(counts)
        assert len(set(counts)) == 10

    async def test_clients_and_buckets_are_independent(self, limiter):
        await limiter.rate_limit("search", "ip1", 1, 60)

        assert (await limiter.rate_limit("search", "ip2", 1, 60)).allowed is True
        assert (await limiter.rate_limit("posts", "ip1", 1, 60)).allowed is True

    async def test_missing_ttl_is_rearmed(self, limiter, memory_store):
        key = f"{PREFIX}rl:search:ip1"
        memory_store.strings[key] = "4"  # counter left without TTL

        result = await limiter.rate_limit("search", "ip1", 10, 60)

        assert result.count == 5
        assert result.reset_seconds == 60
        assert key in memory_store.expiry


@pytest.mark.unit
class TestRateLimitDegradation:
    """Store failures fail open."""

    async def test_noop_allows_with_full_remaining(self):
        limiter = FixedWindowRateLimiter(None)

        result = await limiter.rate_limit("search", "ip1", 2, 60)

        assert result == RateLimitResult(
            allowed=True, count=0, remaining=2, reset_seconds=60, limit=2, bucket="search"
        )
        assert limiter.enabled is False

    async def test_failing_store_allows(self, failing_store):
        limiter = FixedWindowRateLimiter(failing_store)

        results = [await limiter.rate_limit("search", "ip1", 1, 60) for _ in range(5)]

        assert all(r.allowed for r in results)
        assert all(r.count == 0 for r in results)

    async def test_ttl_failure_after_increment_allows(self, memory_store):
        memory_store.fail_operations = {"ttl"}
        limiter = FixedWindowRateLimiter(memory_store)

        result = await limiter.rate_limit("search", "ip1", 1, 60)

        assert result.allowed is True
        assert result.remaining == 1


@pytest.mark.unit
class TestCheckRules:
    """Multi-rule decisions."""

    async def test_allowed_when_all_rules_pass(self, limiter):
        decision = await limiter.check_rules(
            [RateLimitRule("posts", "ip1", 5, 60), RateLimitRule("posts", "global", 100, 60)]
        )

        assert decision.allowed is True
        assert decision.retry_after == 0
        assert len(decision.results) == 2

    async def test_limited_when_any_rule_exceeded(self, limiter):
        rules = [RateLimitRule("posts", "ip1", 100, 60), RateLimitRule("posts", "global", 1, 30)]

        await limiter.check_rules(rules)
        decision = await limiter.check_rules(rules)

        assert decision.allowed is False
        assert [r.bucket for r in decision.exceeded] == ["posts"]
        assert decision.retry_after == 30

    async def test_every_rule_is_counted(self, limiter, memory_store):
        rules = [RateLimitRule("posts", "ip1", 1, 60), RateLimitRule("posts", "global", 100, 60)]

        await limiter.check_rules(rules)
        await limiter.check_rules(rules)

        assert memory_store.strings[f"{PREFIX}rl:posts:global"] == "2"

    def test_retry_after_is_largest_exceeded_reset(self):
        decision = RateLimitDecision(
            results=(
                RateLimitResult(False, 3, 0, 12, 2, "posts"),
                RateLimitResult(False, 9, 0, 45, 8, "posts"),
                RateLimitResult(True, 1, 4, 59, 5, "posts"),
            )
        )

        assert decision.retry_after == 45

    async def test_interaction_with_store(self):
        store = AsyncMock()
        store.increment.return_value = 1
        store.ttl.return_value = 60
        limiter = FixedWindowRateLimiter(store, key_prefix=PREFIX)

        await limiter.rate_limit("search", "ip1", 5, 60)

        store.increment.assert_awaited_once_with(f"{PREFIX}rl:search:ip1")
        store.expire.assert_awaited_once_with(f"{PREFIX}rl:search:ip1", 60)
