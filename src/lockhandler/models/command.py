"""Downlink command models."""

from __future__ import annotations

from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

#: Unlock command understood by the lock firmware.
UNLOCK_PAYLOAD = bytes([0x01, 0x01, 0x01])
UNLOCK_PORT = 1


class PendingCommand(BaseModel):
    """A downlink waiting for the device's next receive window."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    device_id: str
    payload: bytes
    port: int = Field(..., ge=1, le=223)
    confirmed: bool = False
    created_at: datetime
    expires_at: datetime

    @field_serializer("payload", when_used="json")
    def _serialize_payload(self, value: bytes) -> str:
        return value.hex()

    @model_validator(mode="after")
    def _check_expiry(self) -> Self:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
