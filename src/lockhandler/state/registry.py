"""In-memory registry of lock records.

Decode results are applied wholesale: a new state, GPS fix or WiFi scan
replaces the previous one instead of being merged into it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from lockhandler.models.decode import DecodeResult, StateUpdate, Unrecognized, WifiScan
from lockhandler.models.lock import GpsFix, LockRecord, LockState, ResolvedLocation

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeviceRegistry:
    """Id-keyed store of :class:`LockRecord` objects."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._locks: dict[str, LockRecord] = {}

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)

    def find_or_create(self, device_id: str, hardware_serial: str | None = None) -> LockRecord:
        """Return the record for *device_id*, creating it on first sighting."""
        record = self._locks.get(device_id)
        if record is None:
            record = LockRecord(id=device_id, hardware_serial=hardware_serial)
            self._locks[device_id] = record
            _logger.info("New lock %s (hardware serial %s)", device_id, hardware_serial)
        return record

    def get(self, device_id: str) -> LockRecord | None:
        return self._locks.get(device_id)

    def records(self) -> list[LockRecord]:
        """All records in first-seen order."""
        return list(self._locks.values())

    def restore(self, records: Iterable[LockRecord]) -> None:
        """Replace the registry content with a loaded snapshot."""
        self._locks = {}
        for record in records:
            if record.id in self._locks:
                _logger.warning("Duplicate lock %s in snapshot; keeping the last entry", record.id)
            self._locks[record.id] = record

    def apply(self, device_id: str, result: DecodeResult, *, seen_at: datetime | None = None) -> LockRecord:
        """Apply a decode result to the owning record.

        ``last_seen`` advances for every uplink, including unrecognized
        payloads.
        """
        record = self.find_or_create(device_id)
        seen = seen_at if seen_at is not None else self._clock()
        if record.last_seen is None or seen >= record.last_seen:
            record.last_seen = seen

        if isinstance(result, StateUpdate):
            record.state = LockState.LOCKED if result.locked else LockState.OPEN
        elif isinstance(result, GpsFix):
            record.location.gps = result
        elif isinstance(result, WifiScan):
            record.location.wifi_scan = list(result.access_points)
            record.location.resolved = None
        elif isinstance(result, Unrecognized):
            _logger.debug("Ignoring unrecognized payload from %s on port %s", device_id, result.port)
        return record

    def apply_resolved(self, device_id: str, resolved: ResolvedLocation) -> LockRecord | None:
        """Store a geolocation result.

        Results are not fenced against newer scans: a late response
        overwrites whatever was resolved last.
        """
        record = self._locks.get(device_id)
        if record is None:
            _logger.debug("Dropping resolved location for unknown lock %s", device_id)
            return None
        record.location.resolved = resolved
        return record
