from .admin import CacheHealthResponse, SuspiciousClientModel, SuspiciousIpsResponse

__all__ = [
    "CacheHealthResponse",
    "SuspiciousClientModel",
    "SuspiciousIpsResponse",
]
