"""Lock fleet service.

:class:`LockService` owns every piece of lock state (registry, downlink
queue, activity log) and is the only place they are mutated. Uplinks
arrive from the MQTT thread via ``call_soon_threadsafe``, geolocation
results come back through task completion callbacks, and the expiry
sweep runs as a loop task, so all mutation is serialized on one event
loop.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp

from lockhandler._mqtt import TtnMqttRuntime, build_bootstrap
from lockhandler.config import LockhandlerConfig
from lockhandler.decoder import decode
from lockhandler.downlink.queue import DownlinkQueue, DownlinkSender
from lockhandler.exceptions import LockhandlerTransportError, LockNotFoundError
from lockhandler.geolocation import GeolocationResolver, GoogleGeolocationResolver
from lockhandler.ingestion.uplink import Uplink
from lockhandler.models.activity import ActivityKind, ActivityLogEntry
from lockhandler.models.command import UNLOCK_PAYLOAD, UNLOCK_PORT, PendingCommand
from lockhandler.models.decode import DecodeResult, WifiScan
from lockhandler.models.lock import AccessPoint, LockRecord, ResolvedLocation
from lockhandler.persistence import SnapshotStore
from lockhandler.state.activity import RECENT_LIMIT, ActivityLog
from lockhandler.state.registry import DeviceRegistry

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _DownlinkProxy:
    """Forwards queue sends to whichever transport the service holds."""

    def __init__(self, service: LockService) -> None:
        self._service = service

    def send(self, device_id: str, payload: bytes, port: int, confirmed: bool, strategy: str) -> None:
        transport = self._service.transport
        if transport is None:
            raise LockhandlerTransportError("No transport attached", device_id=device_id)
        transport.send(device_id, payload, port, confirmed, strategy)


class LockService:
    """Decode uplinks, track lock state and deliver queued downlinks.

    Usage::

        async with LockService(config) as service:
            service.request_unlock("lock-01")
            ...

    Parameters
    ----------
    config
        Service configuration.
    transport
        Downlink sender. When omitted, a :class:`TtnMqttRuntime` is
        started on entry and also feeds uplinks into the service.
    resolver
        Geolocation resolver. When omitted and ``geolocation_api_key`` is
        configured, a :class:`GoogleGeolocationResolver` is created.
    snapshot
        Snapshot store; defaults to ``config.state_path``.
    clock
        Time source for activity entries and command expiry.
    """

    def __init__(
        self,
        config: LockhandlerConfig,
        *,
        transport: DownlinkSender | None = None,
        resolver: GeolocationResolver | None = None,
        snapshot: SnapshotStore | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = _utcnow,
        on_lock_update: Callable[[LockRecord, DecodeResult], None] | None = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._resolver = resolver
        self._snapshot = snapshot if snapshot is not None else SnapshotStore(config.state_path)
        self._external_session = session is not None
        self._http_session = session
        self._on_lock_update = on_lock_update

        self.registry = DeviceRegistry(clock=clock)
        self.activity = ActivityLog(maxlen=config.activity_log_size, clock=clock)
        self.queue = DownlinkQueue(
            _DownlinkProxy(self),
            self.activity,
            ttl=timedelta(seconds=config.downlink_ttl),
            clock=clock,
        )

        self._loop: asyncio.AbstractEventLoop | None = None
        self._runtime: TtnMqttRuntime | None = None
        self._sweep_task: asyncio.Task[None] | None = None
        self._resolve_tasks: set[asyncio.Task[ResolvedLocation]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LockService:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self, *, connect: bool = True) -> None:
        """Restore the snapshot, start the sweep timer and the MQTT runtime."""
        self._loop = asyncio.get_running_loop()
        self.registry.restore(self._snapshot.load())

        if self._resolver is None and self._config.geolocation_api_key:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._resolver = GoogleGeolocationResolver(
                self._config.geolocation_api_key,
                self._http_session,
                url=self._config.geolocation_url,
            )

        self._sweep_task = self._loop.create_task(self._sweep_loop())

        if connect and self._transport is None:
            runtime = TtnMqttRuntime(
                loop=self._loop,
                on_uplink=self.handle_uplink,
                keepalive=self._config.mqtt_keepalive,
                logger=_logger,
            )
            try:
                await self._loop.run_in_executor(None, runtime.start, build_bootstrap(self._config))
            except BaseException:
                self._sweep_task.cancel()
                self._sweep_task = None
                await self._close_own_session()
                raise
            self._runtime = runtime
            self._transport = runtime

    async def stop(self) -> None:
        """Stop background work and write the snapshot."""
        sweep_task = self._sweep_task
        self._sweep_task = None
        if sweep_task is not None:
            sweep_task.cancel()
            await asyncio.gather(sweep_task, return_exceptions=True)

        for task in list(self._resolve_tasks):
            task.cancel()
        if self._resolve_tasks:
            await asyncio.gather(*self._resolve_tasks, return_exceptions=True)

        runtime = self._runtime
        self._runtime = None
        if runtime is not None:
            if self._transport is runtime:
                self._transport = None
            runtime.stop()

        self.dump()

        await self._close_own_session()
        self._loop = None

    async def _close_own_session(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Uplink path
    # ------------------------------------------------------------------

    @property
    def transport(self) -> DownlinkSender | None:
        return self._transport

    def handle_uplink(self, uplink: Uplink) -> LockRecord:
        """Process one uplink: log, decode, apply, then drain the queue."""
        _logger.info("Received uplink from %s on port %s", uplink.device_id, uplink.port)
        self.activity.append(uplink.device_id, ActivityKind.RECEIVED, uplink.raw, port=uplink.port)

        record = self.registry.find_or_create(uplink.device_id, uplink.hardware_serial)
        result = decode(uplink.port, uplink.raw)
        self.registry.apply(uplink.device_id, result, seen_at=uplink.received_at)

        if isinstance(result, WifiScan) and result.access_points:
            self._schedule_resolution(uplink.device_id, result.access_points)

        if self._on_lock_update is not None:
            try:
                self._on_lock_update(record, result)
            except Exception:
                _logger.debug("Lock update callback failed", exc_info=True)

        self.queue.on_uplink(uplink.device_id)
        return record

    def _schedule_resolution(self, device_id: str, access_points: Sequence[AccessPoint]) -> None:
        resolver = self._resolver
        if resolver is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(resolver.resolve(access_points))
        self._resolve_tasks.add(task)
        task.add_done_callback(functools.partial(self._on_resolved, device_id))

    def _on_resolved(self, device_id: str, task: asyncio.Task[ResolvedLocation]) -> None:
        # Runs on the loop; results are not ordered against later scans.
        self._resolve_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Geolocation for %s failed: %s", device_id, exc)
            return
        resolved = task.result()
        if self.registry.apply_resolved(device_id, resolved) is not None:
            _logger.debug("Resolved %s to %.6f,%.6f", device_id, resolved.lat, resolved.lng)

    # ------------------------------------------------------------------
    # Command path
    # ------------------------------------------------------------------

    def send_command(self, device_id: str, payload: bytes, port: int, confirmed: bool = False) -> PendingCommand:
        """Queue a downlink for a known lock.

        Raises
        ------
        LockNotFoundError
            If no uplink from *device_id* has ever been seen.
        """
        if device_id not in self.registry:
            raise LockNotFoundError(device_id)
        return self.queue.enqueue(device_id, payload, port, confirmed)

    def request_unlock(self, device_id: str) -> PendingCommand:
        """Queue the unlock command for *device_id*."""
        return self.send_command(device_id, UNLOCK_PAYLOAD, UNLOCK_PORT, confirmed=False)

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    def get_lock(self, device_id: str) -> LockRecord | None:
        return self.registry.get(device_id)

    def locks(self) -> list[LockRecord]:
        return self.registry.records()

    def recent_activity(self, limit: int = RECENT_LIMIT) -> list[ActivityLogEntry]:
        return self.activity.recent(limit)

    def dump(self) -> bool:
        """Write the lock snapshot now."""
        return self._snapshot.save(self.registry.records())

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def sweep(self) -> int:
        return self.queue.sweep()

    async def _sweep_loop(self) -> None:
        interval = self._config.sweep_interval
        while True:
            await asyncio.sleep(interval)
            try:
                self.sweep()
            except Exception:
                _logger.warning("Downlink sweep failed", exc_info=True)
