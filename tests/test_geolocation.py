from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from lockhandler.exceptions import GeolocationError
from lockhandler.geolocation import (
    GoogleGeolocationResolver,
    build_geolocate_request,
    parse_geolocate_response,
)
from lockhandler.models.lock import AccessPoint, ResolvedLocation

_APS = (
    AccessPoint(bssid="aa:bb:cc:dd:ee:ff", rssi=-10),
    AccessPoint(bssid="00:11:22:33:44:55", rssi=-80),
)


@dataclass
class FakeResponse:
    status: int
    body: str

    async def text(self) -> str:
        return self.body

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class FakeSession:
    response: FakeResponse | None = None
    error: Exception | None = None
    calls: list[dict[str, Any]] = field(default_factory=list)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        assert self.response is not None
        return self.response


def test_build_request() -> None:
    assert build_geolocate_request(_APS) == {
        "considerIp": False,
        "wifiAccessPoints": [
            {"macAddress": "aa:bb:cc:dd:ee:ff", "signalStrength": -10},
            {"macAddress": "00:11:22:33:44:55", "signalStrength": -80},
        ],
    }


def test_parse_response() -> None:
    resolved = parse_geolocate_response({"location": {"lat": 52.37, "lng": 4.89}, "accuracy": 25.0})
    assert resolved == ResolvedLocation(lat=52.37, lng=4.89, accuracy=25.0)


def test_parse_response_rejects_error_body() -> None:
    with pytest.raises(GeolocationError):
        parse_geolocate_response({"error": {"code": 404, "message": "Not Found"}})


@pytest.mark.asyncio
async def test_resolve_posts_scan() -> None:
    session = FakeSession(FakeResponse(200, json.dumps({"location": {"lat": 1.5, "lng": 2.5}, "accuracy": 40})))
    resolver = GoogleGeolocationResolver("API-KEY", session, url="https://geo.example/geolocate")  # type: ignore[arg-type]

    resolved = await resolver.resolve(_APS)

    assert resolved == ResolvedLocation(lat=1.5, lng=2.5, accuracy=40)
    (call,) = session.calls
    assert call["url"] == "https://geo.example/geolocate"
    assert call["params"] == {"key": "API-KEY"}
    assert call["json"] == build_geolocate_request(_APS)


@pytest.mark.asyncio
async def test_resolve_non_200() -> None:
    session = FakeSession(FakeResponse(404, '{"error": {"code": 404}}'))
    resolver = GoogleGeolocationResolver("API-KEY", session)  # type: ignore[arg-type]

    with pytest.raises(GeolocationError) as excinfo:
        await resolver.resolve(_APS)
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_resolve_network_error() -> None:
    session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
    resolver = GoogleGeolocationResolver("API-KEY", session)  # type: ignore[arg-type]

    with pytest.raises(GeolocationError, match="refused"):
        await resolver.resolve(_APS)


@pytest.mark.asyncio
async def test_resolve_timeout() -> None:
    session = FakeSession(error=TimeoutError())
    resolver = GoogleGeolocationResolver("API-KEY", session)  # type: ignore[arg-type]

    with pytest.raises(GeolocationError, match="request failed"):
        await resolver.resolve(_APS)


@pytest.mark.asyncio
async def test_resolve_invalid_json() -> None:
    session = FakeSession(FakeResponse(200, "<html>"))
    resolver = GoogleGeolocationResolver("API-KEY", session)  # type: ignore[arg-type]

    with pytest.raises(GeolocationError):
        await resolver.resolve(_APS)


@pytest.mark.asyncio
async def test_resolve_requires_access_points() -> None:
    resolver = GoogleGeolocationResolver("API-KEY", FakeSession())  # type: ignore[arg-type]

    with pytest.raises(GeolocationError):
        await resolver.resolve(())
