"""Per-device downlink queue.

A Class-A lock only listens for a downlink right after it has sent an
uplink, so commands are parked here until :meth:`DownlinkQueue.on_uplink`
is called for the device. Commands that wait longer than the TTL are
discarded, either when the device's next uplink drains the queue or by
the periodic :meth:`DownlinkQueue.sweep`.

The queue is not thread-safe. All three entry points must be called from
the same event loop.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Protocol

from lockhandler.models.activity import ActivityKind
from lockhandler.models.command import PendingCommand
from lockhandler.state.activity import ActivityLog

_logger = logging.getLogger(__name__)

#: Default time a command may wait for a receive window.
DEFAULT_TTL = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DownlinkSender(Protocol):
    """Structural interface of the transport's downlink side."""

    def send(self, device_id: str, payload: bytes, port: int, confirmed: bool, strategy: str) -> None: ...


class DownlinkQueue:
    """FIFO of :class:`PendingCommand` objects per device."""

    def __init__(
        self,
        sender: DownlinkSender,
        activity: ActivityLog,
        *,
        ttl: timedelta = DEFAULT_TTL,
        strategy: str = "last",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._sender = sender
        self._activity = activity
        self._ttl = ttl
        self._strategy = strategy
        self._clock = clock
        self._pending: dict[str, deque[PendingCommand]] = {}

    def pending(self, device_id: str) -> list[PendingCommand]:
        queue = self._pending.get(device_id)
        return list(queue) if queue is not None else []

    def pending_count(self) -> int:
        return sum(len(queue) for queue in self._pending.values())

    def enqueue(self, device_id: str, payload: bytes, port: int, confirmed: bool = False) -> PendingCommand:
        """Park a command until the device's next uplink."""
        now = self._clock()
        command = PendingCommand(
            device_id=device_id,
            payload=bytes(payload),
            port=port,
            confirmed=confirmed,
            created_at=now,
            expires_at=now + self._ttl,
        )
        self._pending.setdefault(device_id, deque()).append(command)
        self._activity.append(device_id, ActivityKind.QUEUED, command.payload, port=port, timestamp=now)
        _logger.debug("Queued downlink for %s port=%s payload=%s", device_id, port, command.payload.hex())
        return command

    def on_uplink(self, device_id: str) -> int:
        """Drain the whole backlog for *device_id*.

        Returns the number of send attempts made. Each command is attempted
        exactly once; a failed send is logged and does not stop the batch.
        """
        queue = self._pending.pop(device_id, None)
        if not queue:
            return 0

        attempts = 0
        while queue:
            command = queue.popleft()
            now = self._clock()
            if command.is_expired(now):
                self._expire(command, now)
                continue

            attempts += 1
            try:
                self._sender.send(
                    command.device_id,
                    command.payload,
                    command.port,
                    command.confirmed,
                    self._strategy,
                )
            except Exception:
                _logger.warning("Downlink to %s failed", device_id, exc_info=True)
            self._activity.append(device_id, ActivityKind.SENT, command.payload, port=command.port, timestamp=now)
        return attempts

    def sweep(self) -> int:
        """Drop expired commands for every device; returns how many."""
        now = self._clock()
        expired = 0
        for device_id in list(self._pending):
            queue = self._pending[device_id]
            keep: deque[PendingCommand] = deque()
            for command in queue:
                if command.is_expired(now):
                    self._expire(command, now)
                    expired += 1
                else:
                    keep.append(command)
            if keep:
                self._pending[device_id] = keep
            else:
                del self._pending[device_id]
        return expired

    def _expire(self, command: PendingCommand, now: datetime) -> None:
        _logger.info(
            "Downlink for %s expired after %.0fs without an uplink",
            command.device_id,
            (now - command.created_at).total_seconds(),
        )
        self._activity.append(
            command.device_id,
            ActivityKind.TIMEOUT,
            command.payload,
            port=command.port,
            timestamp=now,
        )
