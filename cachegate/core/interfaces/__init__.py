"""
Core Interfaces Module

- **store.py**: StoreAdapter protocol for key-value store implementations

Usage:
------
```python
from cachegate.core.interfaces import StoreAdapter

def build_limiter(store: StoreAdapter | None) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(store, key_prefix="cachegate:cache:")
```
"""

from cachegate.core.interfaces.store import StoreAdapter, StoreCommand

__all__ = [
    "StoreAdapter",
    "StoreCommand",
]
