"""
Exception Module

- **base.py**: CacheGateError base class + ConfigurationError
- **cache.py**: Store/cache exceptions
- **rate_limit.py**: Rate limiting exceptions

Usage:
------
```python
from cachegate.core.exceptions import CacheError, RateLimitExceededError
```
"""

from cachegate.core.exceptions.base import CacheGateError, ConfigurationError
from cachegate.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from cachegate.core.exceptions.rate_limit import RateLimitError, RateLimitExceededError

__all__ = [
    # Base
    "CacheGateError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    # Rate Limit
    "RateLimitError",
    "RateLimitExceededError",
]
