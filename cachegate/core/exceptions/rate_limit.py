"""
Rate Limiting Exceptions

Exceeding a limit is a normal outcome of ``rate_limit`` (``allowed=False``).
``RateLimitExceededError`` is only raised by the request guard when no stale
value exists to serve, and is rendered as HTTP 429.
"""

from typing import Any

from cachegate.core.exceptions.base import CacheGateError


class RateLimitError(CacheGateError):
    """Base exception for rate limiting errors."""
    pass


class RateLimitExceededError(RateLimitError):
    """
    Raised when a request is rate limited and nothing stale can be served.

    Attributes:
        retry_after: Seconds until the exceeded window resets
    """

    def __init__(
        self,
        message: str,
        retry_after: int,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, request_id=request_id, details=details)
        self.retry_after = retry_after
        self.details.setdefault("retry_after", retry_after)
