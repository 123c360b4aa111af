"""
Configuration Module

- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Store key segments, header names, stage identifiers

Usage:
------
```python
from cachegate.core.config import get_settings

settings = get_settings()
redis_url = settings.redis.REDIS_URL      # None -> No-Op mode
prefix = settings.cache.CACHE_KEY_PREFIX
```

Testing:
-------
```python
import os
from cachegate.core.config import reload_settings

os.environ["REDIS_URL"] = "redis://localhost:6379/0"
settings = reload_settings()
```
"""

from cachegate.core.config.constants import (
    ABUSE_DETAIL_TTL,
    ABUSE_LIST_DEFAULT,
    ABUSE_LIST_MAX,
    ABUSE_MAX_TRACKED,
    DEFAULT_KEY_PREFIX,
    ENVELOPE_TAG,
    FINGERPRINT_HASH_LENGTH,
    HEADER_CACHE,
    HEADER_RATE_LIMITED,
    HEADER_RETRY_AFTER,
    Stage,
)
from cachegate.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    # Cache
    "DEFAULT_KEY_PREFIX",
    "ENVELOPE_TAG",
    "FINGERPRINT_HASH_LENGTH",
    # Abuse
    "ABUSE_MAX_TRACKED",
    "ABUSE_DETAIL_TTL",
    "ABUSE_LIST_DEFAULT",
    "ABUSE_LIST_MAX",
    # HTTP headers
    "HEADER_RATE_LIMITED",
    "HEADER_CACHE",
    "HEADER_RETRY_AFTER",
]
