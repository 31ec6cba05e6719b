"""Lock record and location models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LockState(StrEnum):
    UNKNOWN = "unknown"
    LOCKED = "locked"
    OPEN = "open"


class AccessPoint(BaseModel):
    """A WiFi access point observed by a lock.

    Parameters
    ----------
    bssid : str
        Lowercase colon-separated MAC address.
    rssi : int
        Observed signal strength in dBm (negative).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    bssid: str
    rssi: int


class GpsFix(BaseModel):
    """GPS fix reported on port 10.

    ``valid`` is a heuristic (non-degenerate latitude and a non-zero
    altitude), not a flag carried in the payload.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    lat: float
    lng: float
    alt: int
    hdop: float
    sat_count: int
    valid: bool


class ResolvedLocation(BaseModel):
    """Position estimated by the geolocation service from a WiFi scan."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    lat: float
    lng: float
    accuracy: float | None = None


class LockLocation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    gps: GpsFix | None = None
    wifi_scan: list[AccessPoint] | None = None
    resolved: ResolvedLocation | None = None


class LockRecord(BaseModel):
    """Everything known about one lock.

    Parameters
    ----------
    id : str
        Device id assigned by the network server.
    hardware_serial : str or None
        DevEUI, recorded on first sighting.
    state : LockState
        Last reported bolt position.
    last_seen : datetime or None
        Time of the most recent uplink.
    location : LockLocation
        GPS, WiFi scan and resolved position.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    hardware_serial: str | None = None
    state: LockState = LockState.UNKNOWN
    last_seen: datetime | None = None
    location: LockLocation = Field(default_factory=LockLocation)

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, value: Any) -> Any:
        # Older snapshots store ``null`` for a lock that never reported.
        if value is None:
            return LockState.UNKNOWN
        return value

    @field_validator("location", mode="before")
    @classmethod
    def _coerce_location(cls, value: Any) -> Any:
        if value is None:
            return LockLocation()
        return value

    @field_validator("last_seen")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
