"""WiFi geolocation resolution.

Locks report the access points they can see; a geolocation service turns
that list into a position estimate. The service is called asynchronously
and its answer may arrive after newer scans from the same lock.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from lockhandler._redact import redact_for_log
from lockhandler.config import DEFAULT_GEOLOCATION_URL
from lockhandler.exceptions import GeolocationError
from lockhandler.models.lock import AccessPoint, ResolvedLocation

_logger = logging.getLogger(__name__)


class GeolocationResolver(Protocol):
    """Structural interface for position lookups from WiFi scans."""

    async def resolve(self, access_points: Sequence[AccessPoint]) -> ResolvedLocation: ...


class _LatLng(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    lat: float
    lng: float


class _GeolocateResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    location: _LatLng
    accuracy: float | None = None


def build_geolocate_request(access_points: Sequence[AccessPoint]) -> dict[str, Any]:
    """Request body for the Google Geolocation API."""
    return {
        "considerIp": False,
        "wifiAccessPoints": [{"macAddress": ap.bssid, "signalStrength": ap.rssi} for ap in access_points],
    }


def parse_geolocate_response(body: Any) -> ResolvedLocation:
    try:
        parsed = _GeolocateResponse.model_validate(body)
    except ValidationError as exc:
        raise GeolocationError(f"Unexpected geolocation response: {redact_for_log(body)}") from exc
    return ResolvedLocation(lat=parsed.location.lat, lng=parsed.location.lng, accuracy=parsed.accuracy)


class GoogleGeolocationResolver:
    """Resolve WiFi scans through the Google Geolocation API."""

    def __init__(
        self,
        api_key: str,
        http_session: aiohttp.ClientSession,
        *,
        url: str = DEFAULT_GEOLOCATION_URL,
    ) -> None:
        self._api_key = api_key
        self._http = http_session
        self._url = url

    async def resolve(self, access_points: Sequence[AccessPoint]) -> ResolvedLocation:
        if not access_points:
            raise GeolocationError("At least one access point is required")

        body = build_geolocate_request(access_points)
        _logger.debug("POST %s body=%s", self._url, redact_for_log(body))

        try:
            async with self._http.post(self._url, params={"key": self._api_key}, json=body) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise GeolocationError(
                        f"HTTP {resp.status} from geolocation service: {text[:200]}",
                        status_code=resp.status,
                    )
        except GeolocationError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise GeolocationError(f"Geolocation request failed: {exc}") from exc

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise GeolocationError(f"Invalid JSON from geolocation service: {text[:200]}") from exc

        return parse_geolocate_response(decoded)
