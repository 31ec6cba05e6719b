"""Data models for lockhandler."""

from lockhandler.models.activity import ActivityKind, ActivityLogEntry
from lockhandler.models.command import UNLOCK_PAYLOAD, UNLOCK_PORT, PendingCommand
from lockhandler.models.decode import DecodeResult, StateUpdate, Unrecognized, WifiScan
from lockhandler.models.lock import (
    AccessPoint,
    GpsFix,
    LockLocation,
    LockRecord,
    LockState,
    ResolvedLocation,
)

__all__ = [
    "UNLOCK_PAYLOAD",
    "UNLOCK_PORT",
    "AccessPoint",
    "ActivityKind",
    "ActivityLogEntry",
    "DecodeResult",
    "GpsFix",
    "LockLocation",
    "LockRecord",
    "LockState",
    "PendingCommand",
    "ResolvedLocation",
    "StateUpdate",
    "Unrecognized",
    "WifiScan",
]
