"""
API Module

FastAPI integration: dependencies, the request guard and admin routes.
"""

from .dependencies import (
    CacheGateDep,
    RequestGuardDep,
    SettingsDep,
    get_cache_gate,
    get_request_guard,
)
from .guard import RequestGuard, get_client_identifier, rate_limit_exception_handler

__all__ = [
    "CacheGateDep",
    "RequestGuardDep",
    "SettingsDep",
    "get_cache_gate",
    "get_request_guard",
    "RequestGuard",
    "get_client_identifier",
    "rate_limit_exception_handler",
]
