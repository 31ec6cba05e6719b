"""The Things Stack v3 uplink parsing.

Only the fields the lock service consumes are modelled; everything else
in the envelope (gateway metadata, network ids, etc.) is ignored.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


@dataclass(frozen=True)
class Uplink:
    """A decoded-envelope uplink, ready for payload decoding."""

    device_id: str
    hardware_serial: str | None
    port: int
    raw: bytes
    received_at: datetime | None = None


def _tz_aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class _EndDeviceIds(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    device_id: str = Field(..., min_length=1)
    dev_eui: str | None = None


class _UplinkMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    f_port: int | None = None
    frm_payload: str | None = None
    received_at: datetime | None = None

    @field_validator("received_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        return _tz_aware(value)


class _UplinkEnvelope(BaseModel):
    """Minimal Pydantic envelope for ``.../up`` messages."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    end_device_ids: _EndDeviceIds
    received_at: datetime | None = None
    uplink_message: _UplinkMessage | None = None

    @field_validator("received_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        return _tz_aware(value)


def _decode_frm_payload(value: str) -> bytes | None:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None


def parse_uplink(payload: dict[str, Any]) -> Uplink | None:
    """Build an :class:`Uplink` from an MQTT uplink JSON object.

    Returns ``None`` for MAC-only uplinks (no ``f_port``) and for messages
    that do not match the expected shape. The Things Stack omits
    ``frm_payload`` when the application payload is empty; such uplinks
    carry ``b""``.
    """
    try:
        envelope = _UplinkEnvelope.model_validate(payload)
    except ValidationError:
        return None

    message = envelope.uplink_message
    if message is None or message.f_port is None:
        return None

    raw: bytes | None = b""
    if message.frm_payload is not None:
        raw = _decode_frm_payload(message.frm_payload)
    if raw is None:
        return None

    received_at = envelope.received_at or message.received_at
    return Uplink(
        device_id=envelope.end_device_ids.device_id,
        hardware_serial=envelope.end_device_ids.dev_eui,
        port=message.f_port,
        raw=raw,
        received_at=received_at,
    )
