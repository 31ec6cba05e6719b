"""Typed results produced by the payload decoder."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_serializer

from lockhandler.models.lock import AccessPoint, GpsFix


class StateUpdate(BaseModel):
    """Bolt position reported on port 1."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    locked: bool


class WifiScan(BaseModel):
    """Access points reported on port 11, in payload order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    access_points: tuple[AccessPoint, ...] = ()


class Unrecognized(BaseModel):
    """Payload that matched no known port/marker layout."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    port: int
    raw: bytes = b""

    @field_serializer("raw", when_used="json")
    def _serialize_raw(self, value: bytes) -> str:
        return value.hex()


DecodeResult = StateUpdate | GpsFix | WifiScan | Unrecognized
