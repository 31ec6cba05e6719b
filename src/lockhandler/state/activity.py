"""Bounded activity log."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime

from lockhandler.models.activity import ActivityKind, ActivityLogEntry

#: Number of entries exposed to readers.
RECENT_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ActivityLog:
    """Append-only record of uplinks and downlink attempts.

    Only the newest ``maxlen`` entries are retained.
    """

    def __init__(self, *, maxlen: int = 1000, clock: Callable[[], datetime] = _utcnow) -> None:
        self._entries: deque[ActivityLogEntry] = deque(maxlen=maxlen)
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def append(
        self,
        device_id: str,
        kind: ActivityKind,
        payload: bytes = b"",
        *,
        port: int | None = None,
        timestamp: datetime | None = None,
    ) -> ActivityLogEntry:
        entry = ActivityLogEntry(
            timestamp=timestamp if timestamp is not None else self._clock(),
            device_id=device_id,
            kind=kind,
            payload=bytes(payload),
            port=port,
        )
        self._entries.append(entry)
        return entry

    def recent(self, limit: int = RECENT_LIMIT) -> list[ActivityLogEntry]:
        """Newest *limit* entries, oldest first; never more than :data:`RECENT_LIMIT`."""
        limit = min(limit, RECENT_LIMIT)
        if limit <= 0:
            return []
        entries = list(self._entries)
        return entries[-limit:]
