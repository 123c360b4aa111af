"""
System Constants and Enumerations

Store key segments, envelope format, HTTP header names and stage identifiers
shared by the cache, rate limiter and abuse tracker.

Every store key is built as ``<prefix><segment>...`` where the prefix comes
from settings (``CACHE_KEY_PREFIX``) so several deployments can share one
Redis database.
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage`` field of log events.

    Format: {COMPONENT}.{STEP}_{DESCRIPTIVE_NAME}
    """

    STORE_CONNECT = "STORE.1_CONNECT"
    STORE_OPERATION = "STORE.2_OPERATION"
    STORE_DISCONNECT = "STORE.3_DISCONNECT"

    CACHE_KEY = "CACHE.1_KEY_BUILD"
    CACHE_LOOKUP = "CACHE.2_LOOKUP"
    CACHE_COMPUTE = "CACHE.3_COMPUTE"
    CACHE_WRITE = "CACHE.4_WRITE"
    CACHE_BUMP = "CACHE.5_VERSION_BUMP"

    RATE_LIMIT_CHECK = "RL.1_CHECK"
    RATE_LIMIT_DEGRADED = "RL.2_DEGRADED"

    ABUSE_RECORD = "ABUSE.1_RECORD"
    ABUSE_TRIM = "ABUSE.2_TRIM"
    ABUSE_LIST = "ABUSE.3_LIST"

    GATE_INIT = "GATE.0_INITIALIZATION"


# ============================================================================
# Store Key Segments
# ============================================================================

DEFAULT_KEY_PREFIX = "cachegate:cache:"

REDIS_KEY_VERSION = "v"
REDIS_KEY_RATE_LIMIT = "rl"
REDIS_KEY_ABUSE_SCORES = "abuse:z"
REDIS_KEY_ABUSE_DETAIL = "abuse:h"
REDIS_KEY_NOOP = "noop"

# ============================================================================
# Cache Entry Format
# ============================================================================

# Stored value is {"tag": ENVELOPE_TAG, "value": <payload>}
ENVELOPE_TAG_FIELD = "tag"
ENVELOPE_VALUE_FIELD = "value"
ENVELOPE_TAG = 1

# Hex characters of the SHA-1 fingerprint digest kept in the key
FINGERPRINT_HASH_LENGTH = 16

# ============================================================================
# Abuse Tracking
# ============================================================================

ABUSE_FIELD_LAST_SEEN = "lastSeen"
ABUSE_FIELD_BUCKET_PREFIX = "b:"
ABUSE_FIELD_KIND_PREFIX = "k:"
ABUSE_UNKNOWN_CLIENT = "unknown"

ABUSE_MAX_TRACKED = 5000
ABUSE_DETAIL_TTL = 60 * 60 * 24 * 30  # 30 days
ABUSE_LIST_DEFAULT = 200
ABUSE_LIST_MAX = 1000

# Offense kind recorded by the request guard when a client is rate limited
ABUSE_KIND_RATE_LIMIT = "rate_limit"

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_RATE_LIMITED = "x-rate-limited"
HEADER_CACHE = "x-cache"
HEADER_RETRY_AFTER = "retry-after"
HEADER_FORWARDED_FOR = "x-forwarded-for"
HEADER_REQUEST_ID = "x-request-id"

CACHE_HIT = "hit"

# Error code returned with HTTP 429 when no stale value can be served
ERROR_CODE_RATE_LIMITED = "rate_limited"
