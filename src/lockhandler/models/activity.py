"""Activity log entry model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, field_serializer


class ActivityKind(StrEnum):
    RECEIVED = "received"
    SENT = "sent"
    QUEUED = "queued"
    TIMEOUT = "timeout"


class ActivityLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime
    device_id: str
    kind: ActivityKind
    payload: bytes = b""
    port: int | None = None

    @field_serializer("payload", when_used="json")
    def _serialize_payload(self, value: bytes) -> str:
        return value.hex()
