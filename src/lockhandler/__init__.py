"""lockhandler - LoRaWAN smart lock fleet handler."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("lockhandler")
except PackageNotFoundError:
    __version__ = "0+local"
from lockhandler.config import LockhandlerConfig
from lockhandler.decoder import decode
from lockhandler.downlink import DownlinkQueue, DownlinkSender
from lockhandler.exceptions import (
    GeolocationError,
    LockhandlerConfigError,
    LockhandlerError,
    LockhandlerTransportError,
    LockNotFoundError,
)
from lockhandler.ingestion import Uplink, parse_uplink
from lockhandler.models import (
    AccessPoint,
    ActivityKind,
    ActivityLogEntry,
    DecodeResult,
    GpsFix,
    LockLocation,
    LockRecord,
    LockState,
    PendingCommand,
    ResolvedLocation,
    StateUpdate,
    Unrecognized,
    WifiScan,
)
from lockhandler.service import LockService

__all__ = [
    "__version__",
    "AccessPoint",
    "ActivityKind",
    "ActivityLogEntry",
    "DecodeResult",
    "DownlinkQueue",
    "DownlinkSender",
    "GeolocationError",
    "GpsFix",
    "LockLocation",
    "LockNotFoundError",
    "LockRecord",
    "LockService",
    "LockState",
    "LockhandlerConfig",
    "LockhandlerConfigError",
    "LockhandlerError",
    "LockhandlerTransportError",
    "PendingCommand",
    "ResolvedLocation",
    "StateUpdate",
    "Unrecognized",
    "Uplink",
    "WifiScan",
    "decode",
    "parse_uplink",
]
