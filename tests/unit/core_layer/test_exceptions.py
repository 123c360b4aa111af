"""
Unit Tests for Exception Hierarchy

Tests the base error contract and the cache / rate limit specializations.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cachegate.core.exceptions import (
    CacheConnectionError,
    CacheError,
    CacheGateError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    RateLimitError,
    RateLimitExceededError,
)


@pytest.mark.unit
class TestCacheGateError:
    """Test the base exception."""

    def test_to_dict_contains_all_fields(self):
        error = CacheGateError("boom", request_id="req-1", details={"key": "k"})

        assert error.to_dict() == {
            "error_type": "CacheGateError",
            "message": "boom",
            "request_id": "req-1",
            "details": {"key": "k"},
        }

    def test_details_are_copied(self):
        details = {"key": "k"}
        error = CacheGateError("boom", details=details)
        error.with_context(extra=1)

        assert details == {"key": "k"}
        assert error.details == {"key": "k", "extra": 1}

    def test_with_context_is_chainable(self):
        error = CacheKeyError("failed").with_context(key="a").with_context(op="get")

        assert isinstance(error, CacheKeyError)
        assert error.details == {"key": "a", "op": "get"}

    def test_from_exception_keeps_original(self):
        original = RedisConnectionError("connection refused")
        error = CacheConnectionError.from_exception(original, url="redis://localhost")

        assert isinstance(error, CacheConnectionError)
        assert error.message == "connection refused"
        assert error.details["original_error"] == "ConnectionError"
        assert error.details["url"] == "redis://localhost"

    def test_repr_includes_request_id(self):
        error = CacheGateError("boom", request_id="req-1")
        assert "request_id='req-1'" in repr(error)


@pytest.mark.unit
class TestExceptionHierarchy:
    """Components catch CacheError; everything is a CacheGateError."""

    @pytest.mark.parametrize(
        "error_class", [CacheConnectionError, CacheKeyError, CacheSerializationError]
    )
    def test_store_errors_are_cache_errors(self, error_class):
        assert issubclass(error_class, CacheError)
        assert issubclass(error_class, CacheGateError)

    def test_configuration_error_is_not_a_cache_error(self):
        assert not issubclass(ConfigurationError, CacheError)

    def test_rate_limit_exceeded_carries_retry_after(self):
        error = RateLimitExceededError("limited", retry_after=42, details={"bucket": "posts"})

        assert isinstance(error, RateLimitError)
        assert error.retry_after == 42
        assert error.details == {"bucket": "posts", "retry_after": 42}
