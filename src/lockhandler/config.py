"""Service configuration for lockhandler."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from lockhandler.exceptions import LockhandlerConfigError

DEFAULT_GEOLOCATION_URL = "https://www.googleapis.com/geolocation/v1/geolocate"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class LockhandlerConfig:
    """Service configuration.

    Parameters
    ----------
    ttn_app_id : str
        The Things Stack application id.
    ttn_access_key : str
        API key with MQTT read/write rights for the application.
    ttn_tenant : str
        Tenant id; ``"ttn"`` for The Things Network community cloud.
    mqtt_host : str
        MQTT integration host of the cluster the application lives on.
    mqtt_port : int
        MQTT port (``8883`` for TLS, ``1883`` plain).
    mqtt_tls : bool
        Whether to wrap the MQTT connection in TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    state_path : str
        JSON file the lock snapshot is read from and written to.
    geolocation_api_key : str or None
        API key for the WiFi geolocation service. Resolution is disabled
        when unset.
    geolocation_url : str
        Geolocation endpoint URL.
    downlink_ttl : float
        Seconds a queued downlink may wait for an uplink window before it
        is discarded.
    sweep_interval : float
        Seconds between expiry sweeps of the downlink queue.
    activity_log_size : int
        Number of activity entries kept in memory.
    """

    ttn_app_id: str
    ttn_access_key: str
    ttn_tenant: str = "ttn"
    mqtt_host: str = "eu1.cloud.thethings.network"
    mqtt_port: int = 8883
    mqtt_tls: bool = True
    mqtt_keepalive: int = 60
    state_path: str = "locks.json"
    geolocation_api_key: str | None = None
    geolocation_url: str = DEFAULT_GEOLOCATION_URL
    downlink_ttl: float = 60.0
    sweep_interval: float = 5.0
    activity_log_size: int = 1000

    def __post_init__(self) -> None:
        if not self.ttn_app_id or not self.ttn_app_id.strip():
            raise LockhandlerConfigError("ttn_app_id must be non-empty")
        if not self.ttn_access_key or not self.ttn_access_key.strip():
            raise LockhandlerConfigError("ttn_access_key must be non-empty")
        if self.downlink_ttl <= 0:
            raise LockhandlerConfigError("downlink_ttl must be positive")
        if self.sweep_interval <= 0:
            raise LockhandlerConfigError("sweep_interval must be positive")
        if self.activity_log_size <= 0:
            raise LockhandlerConfigError("activity_log_size must be positive")

    @property
    def mqtt_username(self) -> str:
        """MQTT username, ``<app_id>@<tenant>``."""
        return f"{self.ttn_app_id}@{self.ttn_tenant}"

    @classmethod
    def from_env(cls, **overrides: Any) -> LockhandlerConfig:
        """Create configuration from environment variables.

        Reads ``TTN_APP_ID`` and ``TTN_ACCESS_KEY`` (both required) plus
        the optional variables listed below. Explicit keyword arguments
        override environment values.

        Raises
        ------
        LockhandlerConfigError
            When a required credential is missing or a value is invalid.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "TTN_APP_ID": "ttn_app_id",
            "TTN_ACCESS_KEY": "ttn_access_key",
            "TTN_TENANT": "ttn_tenant",
            "TTN_MQTT_HOST": "mqtt_host",
            "STATE_PATH": "state_path",
            "GEOLOCATION_API_KEY": "geolocation_api_key",
            "GEOLOCATION_URL": "geolocation_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "TTN_MQTT_PORT": ("mqtt_port", int),
            "TTN_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "LOCKHANDLER_DOWNLINK_TTL": ("downlink_ttl", float),
            "LOCKHANDLER_SWEEP_INTERVAL": ("sweep_interval", float),
            "LOCKHANDLER_ACTIVITY_LOG_SIZE": ("activity_log_size", int),
        }
        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = kind(val)
            except ValueError as exc:
                raise LockhandlerConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("TTN_MQTT_TLS"), True)

        config_kwargs.update(overrides)

        missing = [name for name in ("ttn_app_id", "ttn_access_key") if not config_kwargs.get(name)]
        if missing:
            env_names = ", ".join(name.upper() for name in missing)
            raise LockhandlerConfigError(f"Missing required configuration: {env_names}")

        return cls(**config_kwargs)
