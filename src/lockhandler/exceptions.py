"""Custom exception hierarchy for lockhandler."""

from __future__ import annotations


class LockhandlerError(Exception):
    """Base exception for all lockhandler errors."""


class LockhandlerConfigError(LockhandlerError):
    """Invalid or missing configuration."""


class LockhandlerTransportError(LockhandlerError):
    """MQTT-level failure (not connected, publish rejected)."""

    def __init__(
        self,
        message: str,
        *,
        device_id: str = "",
        topic: str = "",
    ) -> None:
        self.device_id = device_id
        self.topic = topic
        super().__init__(message)


class LockNotFoundError(LockhandlerError):
    """No lock with the given device id has been seen."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"Unknown lock: {device_id}")


class GeolocationError(LockhandlerError):
    """Geolocation service call failed or returned an unusable body."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)
