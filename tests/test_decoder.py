from __future__ import annotations

import pytest

from lockhandler.decoder import decode
from lockhandler.models.decode import StateUpdate, Unrecognized, WifiScan
from lockhandler.models.lock import AccessPoint, GpsFix


def _gps_payload(lat_raw: int, lng_raw: int, alt_hi: int = 0x00, alt_lo: int = 0x64) -> bytes:
    return bytes([0x02]) + lat_raw.to_bytes(3, "big") + lng_raw.to_bytes(3, "big") + bytes([alt_hi, alt_lo, 0x05, 0x08])


# ------------------------------------------------------------------
# Port 1: bolt state
# ------------------------------------------------------------------


class TestStateDecoding:
    def test_locked(self) -> None:
        assert decode(1, bytes([0x01, 0x01])) == StateUpdate(locked=True)

    @pytest.mark.parametrize("value", [0x00, 0x02, 0xFF])
    def test_anything_but_one_is_open(self, value: int) -> None:
        assert decode(1, bytes([0x01, value])) == StateUpdate(locked=False)

    def test_trailing_bytes_ignored(self) -> None:
        assert decode(1, bytes([0x01, 0x01, 0x01])) == StateUpdate(locked=True)

    @pytest.mark.parametrize("raw", [b"", bytes([0x01])])
    def test_short_payload_unrecognized(self, raw: bytes) -> None:
        assert isinstance(decode(1, raw), Unrecognized)

    def test_wrong_marker_unrecognized(self) -> None:
        result = decode(1, bytes([0x02, 0x01]))
        assert isinstance(result, Unrecognized)
        assert result.port == 1


# ------------------------------------------------------------------
# Port 10: GPS
# ------------------------------------------------------------------


class TestGpsDecoding:
    def test_reference_fix(self) -> None:
        result = decode(10, [0x02, 0x7F, 0xFF, 0xFF, 0x40, 0x00, 0x00, 0x00, 0x64, 0x05, 0x08])

        assert isinstance(result, GpsFix)
        assert result.lat == pytest.approx(0.0, abs=1e-4)
        assert result.lat not in (-90, -180)
        assert result.lng == pytest.approx(-90.0, abs=1e-4)
        assert result.alt == 100
        assert result.hdop == pytest.approx(0.5)
        assert result.sat_count == 8
        assert result.valid is True

    @pytest.mark.parametrize(
        ("lat_raw", "lng_raw"),
        [(0, 0), (0xFFFFFF, 0xFFFFFF), (0x123456, 0xABCDEF), (1, 0xFFFFFE)],
    )
    def test_coordinates_within_bounds(self, lat_raw: int, lng_raw: int) -> None:
        result = decode(10, _gps_payload(lat_raw, lng_raw))

        assert isinstance(result, GpsFix)
        assert -90 <= result.lat <= 90
        assert -180 <= result.lng <= 180

    def test_extremes(self) -> None:
        low = decode(10, _gps_payload(0, 0))
        high = decode(10, _gps_payload(0xFFFFFF, 0xFFFFFF))

        assert isinstance(low, GpsFix)
        assert isinstance(high, GpsFix)
        assert (low.lat, low.lng) == (-90, -180)
        assert (high.lat, high.lng) == (90, 180)

    def test_zero_latitude_field_is_not_valid(self) -> None:
        result = decode(10, _gps_payload(0, 0x800000))
        assert isinstance(result, GpsFix)
        assert result.valid is False

    def test_zero_altitude_is_not_valid(self) -> None:
        result = decode(10, _gps_payload(0x7FFFFF, 0x400000, 0x00, 0x00))
        assert isinstance(result, GpsFix)
        assert result.alt == 0
        assert result.valid is False

    def test_negative_altitude_keeps_high_mask(self) -> None:
        result = decode(10, _gps_payload(0x7FFFFF, 0x400000, 0xFF, 0x9C))
        assert isinstance(result, GpsFix)
        assert result.alt == 0xFFFFFF9C

    def test_short_payload_unrecognized(self) -> None:
        assert isinstance(decode(10, _gps_payload(0x7FFFFF, 0x400000)[:10]), Unrecognized)

    def test_wrong_marker_unrecognized(self) -> None:
        raw = bytes([0x01]) + _gps_payload(0x7FFFFF, 0x400000)[1:]
        assert isinstance(decode(10, raw), Unrecognized)


# ------------------------------------------------------------------
# Port 11: WiFi scan
# ------------------------------------------------------------------


class TestWifiDecoding:
    def test_single_group(self) -> None:
        result = decode(11, bytes([0x02, 0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF, 0x0A]))
        assert result == WifiScan(access_points=(AccessPoint(bssid="aa:bb:cc:dd:ee:ff", rssi=-10),))

    def test_truncated_group_yields_nothing(self) -> None:
        result = decode(11, bytes([0x02, 0xAA, 0xBB, 0xCC]))
        assert isinstance(result, WifiScan)
        assert result.access_points == ()

    def test_marker_only(self) -> None:
        assert decode(11, bytes([0x02])) == WifiScan()

    @pytest.mark.parametrize("remainder", [0, 1, 3, 6])
    def test_partial_tail_dropped(self, remainder: int) -> None:
        groups = [
            bytes([0x00, 0x11, 0x22, 0x33, 0x44, 0x55, 0x40]),
            bytes([0x66, 0x77, 0x88, 0x99, 0xAA, 0xBB, 0x50]),
        ]
        raw = bytes([0x02]) + b"".join(groups) + bytes(range(remainder))

        result = decode(11, raw)

        assert isinstance(result, WifiScan)
        assert [ap.bssid for ap in result.access_points] == ["00:11:22:33:44:55", "66:77:88:99:aa:bb"]
        assert [ap.rssi for ap in result.access_points] == [-64, -80]

    def test_wrong_marker_unrecognized(self) -> None:
        assert isinstance(decode(11, bytes([0x01, 0xAA, 0xBB, 0xCC, 0xDD, 0xEE, 0xFF, 0x0A])), Unrecognized)

    def test_empty_payload_unrecognized(self) -> None:
        assert isinstance(decode(11, b""), Unrecognized)


def test_unknown_port_unrecognized() -> None:
    result = decode(42, bytes([0x01, 0x01]))
    assert isinstance(result, Unrecognized)
    assert result.port == 42
    assert result.raw == bytes([0x01, 0x01])
