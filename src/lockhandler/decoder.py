"""Uplink payload decoder.

Every lock payload starts with a one-byte marker; the application port
selects the layout:

* port 1, marker ``0x01``: ``[marker, locked]``
* port 10, marker ``0x02``: ``[marker, lat:u24, lng:u24, alt:u16, hdop, sats]``
* port 11, marker ``0x02``: ``[marker, (bssid:6, -rssi:1) * n]``

:func:`decode` is pure and never raises: anything that does not match a
layout becomes :class:`~lockhandler.models.decode.Unrecognized`.
"""

from __future__ import annotations

from lockhandler.models.decode import DecodeResult, StateUpdate, Unrecognized, WifiScan
from lockhandler.models.lock import AccessPoint, GpsFix

PORT_STATE = 1
PORT_GPS = 10
PORT_WIFI = 11

_STATE_MARKER = 0x01
_LOCATION_MARKER = 0x02
_LOCKED = 0x01

_U24_MAX = 0xFFFFFF
_GPS_LENGTH = 11
_WIFI_GROUP_SIZE = 7
_BSSID_SIZE = 6

# Negative altitudes are OR-ed with this mask rather than sign-extended, so
# the decoded value is a large unsigned number.
_ALTITUDE_SIGN_MASK = 0xFFFF0000


def _u24(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 3], "big")


def _decode_state(raw: bytes) -> DecodeResult:
    if len(raw) < 2 or raw[0] != _STATE_MARKER:
        return Unrecognized(port=PORT_STATE, raw=raw)
    return StateUpdate(locked=raw[1] == _LOCKED)


def _decode_gps(raw: bytes) -> DecodeResult:
    if len(raw) < _GPS_LENGTH or raw[0] != _LOCATION_MARKER:
        return Unrecognized(port=PORT_GPS, raw=raw)

    lat = _u24(raw, 1) / _U24_MAX * 180 - 90
    lng = _u24(raw, 4) / _U24_MAX * 360 - 180

    alt = int.from_bytes(raw[7:9], "big")
    if raw[7] & 0x80:
        alt |= _ALTITUDE_SIGN_MASK

    return GpsFix(
        lat=lat,
        lng=lng,
        alt=alt,
        hdop=raw[9] / 10,
        sat_count=raw[10],
        # Heuristic; lat (not lng) is compared against -180.
        valid=lat != -90 and lat != -180 and alt != 0,
    )


def _format_bssid(data: bytes) -> str:
    return ":".join(f"{octet:02x}" for octet in data)


def _decode_wifi(raw: bytes) -> DecodeResult:
    if len(raw) < 1 or raw[0] != _LOCATION_MARKER:
        return Unrecognized(port=PORT_WIFI, raw=raw)

    access_points: list[AccessPoint] = []
    offset = 1
    # A trailing partial group is dropped.
    while offset + _WIFI_GROUP_SIZE <= len(raw):
        group = raw[offset : offset + _WIFI_GROUP_SIZE]
        access_points.append(
            AccessPoint(
                bssid=_format_bssid(group[:_BSSID_SIZE]),
                rssi=-group[_BSSID_SIZE],
            )
        )
        offset += _WIFI_GROUP_SIZE
    return WifiScan(access_points=tuple(access_points))


_DECODERS = {
    PORT_STATE: _decode_state,
    PORT_GPS: _decode_gps,
    PORT_WIFI: _decode_wifi,
}


def decode(port: int, raw: bytes | bytearray | list[int]) -> DecodeResult:
    """Decode an uplink payload received on *port*."""
    data = bytes(raw)
    decoder = _DECODERS.get(port)
    if decoder is None:
        return Unrecognized(port=port, raw=data)
    return decoder(data)
