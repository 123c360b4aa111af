"""
Abuse Tracker

Keeps a bounded leaderboard of suspicious clients:

    <prefix>abuse:z          sorted set, member = client id, score = offenses
    <prefix>abuse:h:<id>     hash: lastSeen (epoch ms), b:<bucket>, k:<kind>

The score and detail hash have independent lifecycles: the hash expires after
ABUSE_DETAIL_TTL while the score lives until trimmed. A listed client may
therefore have empty details.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from cachegate.core.config.constants import (
    ABUSE_DETAIL_TTL,
    ABUSE_FIELD_BUCKET_PREFIX,
    ABUSE_FIELD_KIND_PREFIX,
    ABUSE_FIELD_LAST_SEEN,
    ABUSE_LIST_DEFAULT,
    ABUSE_LIST_MAX,
    ABUSE_MAX_TRACKED,
    ABUSE_UNKNOWN_CLIENT,
    DEFAULT_KEY_PREFIX,
    REDIS_KEY_ABUSE_DETAIL,
    REDIS_KEY_ABUSE_SCORES,
    Stage,
)
from cachegate.core.exceptions import CacheError
from cachegate.core.interfaces.store import StoreAdapter, StoreCommand
from cachegate.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


@dataclass(frozen=True)
class SuspiciousClient:
    """One leaderboard entry, flattened for display."""

    id: str
    score: float
    last_seen: str
    counts: dict[str, int | float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "score": self.score,
            "lastSeen": self.last_seen,
            "counts": dict(self.counts),
        }


class AbuseTracker:
    """
    Records offenses per client and lists the worst offenders.

    Usage:
        tracker = AbuseTracker(store)
        await tracker.record_suspicious("1.2.3.4", bucket="posts", kind="ip_block")
        top = await tracker.list_suspicious_ips(limit=50)

    With ``store=None`` recording is a no-op and listings are empty.
    """

    def __init__(
        self,
        store: StoreAdapter | None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        max_tracked: int = ABUSE_MAX_TRACKED,
        detail_ttl: int = ABUSE_DETAIL_TTL,
        list_default: int = ABUSE_LIST_DEFAULT,
        list_max: int = ABUSE_LIST_MAX,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._prefix = key_prefix
        self._max_tracked = max_tracked
        self._detail_ttl = detail_ttl
        self._list_default = list_default
        self._list_max = list_max
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self._store is not None

    @property
    def scores_key(self) -> str:
        return f"{self._prefix}{REDIS_KEY_ABUSE_SCORES}"

    def detail_key(self, client_id: str) -> str:
        return f"{self._prefix}{REDIS_KEY_ABUSE_DETAIL}:{client_id}"

    async def record_suspicious(self, client_id: str, bucket: str, kind: str) -> None:
        """
        Add one offense for ``client_id``.

        The score and detail updates go out as one MULTI/EXEC batch. The
        leaderboard trim that follows is best effort and never undoes them.
        """
        if self._store is None:
            return

        client_id = client_id or ABUSE_UNKNOWN_CLIENT
        detail_key = self.detail_key(client_id)
        now_ms = int(self._clock() * 1000)

        commands = [
            StoreCommand("sorted_set_increment", (self.scores_key, client_id, 1)),
            StoreCommand("hash_set", (detail_key, {ABUSE_FIELD_LAST_SEEN: str(now_ms)})),
            StoreCommand("hash_increment", (detail_key, f"{ABUSE_FIELD_BUCKET_PREFIX}{bucket}", 1)),
            StoreCommand("hash_increment", (detail_key, f"{ABUSE_FIELD_KIND_PREFIX}{kind}", 1)),
            StoreCommand("expire", (detail_key, self._detail_ttl)),
        ]

        try:
            await self._store.pipeline(commands)
        except CacheError as e:
            log_stage(
                logger,
                Stage.ABUSE_RECORD,
                "Abuse record dropped, store unavailable",
                level="warning",
                client_id=client_id,
                bucket=bucket,
                kind=kind,
                error=e.message,
            )
            return

        log_stage(
            logger, Stage.ABUSE_RECORD, "Suspicious request recorded",
            level="debug", client_id=client_id, bucket=bucket, kind=kind,
        )

        await self._trim()

    async def _trim(self) -> None:
        """Drop the lowest scores so at most ``max_tracked`` remain."""
        try:
            removed = await self._store.sorted_set_keep_highest(self.scores_key, self._max_tracked)
            if removed:
                log_stage(
                    logger, Stage.ABUSE_TRIM, "Abuse leaderboard trimmed",
                    level="debug", removed=removed, max_tracked=self._max_tracked,
                )
        except CacheError as e:
            log_stage(
                logger,
                Stage.ABUSE_TRIM,
                "Abuse leaderboard trim failed",
                level="warning",
                error=e.message,
            )

    async def list_suspicious_ips(self, limit: int | None = None) -> list[SuspiciousClient]:
        """
        Top offenders by score, highest first.

        ``limit`` is clamped to ``[1, list_max]``; a missing or zero limit
        uses the default.
        """
        if self._store is None:
            return []

        limit = min(self._list_max, max(1, limit or self._list_default))

        try:
            pairs = await self._store.sorted_set_range_desc(self.scores_key, 0, limit - 1)
        except CacheError as e:
            log_stage(
                logger,
                Stage.ABUSE_LIST,
                "Abuse leaderboard unavailable",
                level="warning",
                error=e.message,
            )
            return []

        details = await self._read_details([str(member) for member, _ in pairs])

        return [
            _flatten(str(member), score, fields)
            for (member, score), fields in zip(pairs, details)
        ]

    async def _read_details(self, client_ids: list[str]) -> list[dict[str, str]]:
        """
        Detail hashes for ``client_ids``, in order, read as one batch.

        An entry whose read fails gets ``{}``; so does every entry when the
        batch itself fails.
        """
        if not client_ids:
            return []

        commands = [
            StoreCommand("hash_get_all", (self.detail_key(client_id),)) for client_id in client_ids
        ]
        try:
            results = await self._store.pipeline(commands, raise_on_error=False)
        except CacheError as e:
            log_stage(
                logger,
                Stage.ABUSE_LIST,
                "Abuse details unavailable",
                level="warning",
                entries=len(client_ids),
                error=e.message,
            )
            return [{} for _ in client_ids]

        details = []
        for client_id, result in zip(client_ids, results):
            if isinstance(result, dict):
                details.append(result)
                continue
            log_stage(
                logger,
                Stage.ABUSE_LIST,
                "Abuse detail unavailable",
                level="warning",
                client_id=client_id,
                error=str(result),
            )
            details.append({})
        return details


def _flatten(client_id: str, score: Any, fields: dict[str, str]) -> SuspiciousClient:
    last_seen_ms = _to_number(fields.get(ABUSE_FIELD_LAST_SEEN, "0"))

    counts = {}
    for name, raw in fields.items():
        if name == ABUSE_FIELD_LAST_SEEN:
            continue
        value = _to_number(raw)
        if value:
            counts[name] = value

    return SuspiciousClient(
        id=client_id,
        score=_to_number(score),
        last_seen=_format_epoch_ms(last_seen_ms) if last_seen_ms else "",
        counts=counts,
    )


def _to_number(raw: Any) -> int | float:
    """Parse a stored field; anything unparsable counts as zero."""
    try:
        return int(raw)
    except (TypeError, ValueError):
        pass
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return 0
    return int(number) if number.is_integer() else number


def _format_epoch_ms(epoch_ms: int | float) -> str:
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
