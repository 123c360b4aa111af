"""
Cache-Related Exceptions

Raised by the store adapter; the cache, rate limiter and abuse tracker catch
``CacheError`` and fall back to their safe defaults.
"""

from cachegate.core.exceptions.base import CacheGateError


class CacheError(CacheGateError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the store (Redis).

    Common causes:
    - Redis server is down
    - Network connectivity issues
    - Incorrect URL
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a store operation fails.

    Common causes:
    - Operation timeout
    - Connection dropped mid-command
    - Wrong type stored under the key
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be serialized to JSON for storage."""
    pass
