"""
Abuse Tracking Module

Bounded leaderboard of clients that keep getting rate limited or blocked.
"""

from .tracker import AbuseTracker, SuspiciousClient

__all__ = [
    "AbuseTracker",
    "SuspiciousClient",
]
