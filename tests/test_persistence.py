from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from lockhandler.models.lock import GpsFix, LockLocation, LockRecord, LockState
from lockhandler.persistence import SnapshotStore


def test_missing_file_loads_empty(tmp_path: Path) -> None:
    assert SnapshotStore(tmp_path / "locks.json").load() == []


def test_corrupt_file_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "locks.json"
    path.write_text("{not json", encoding="utf-8")

    assert SnapshotStore(path).load() == []


def test_wrong_shape_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "locks.json"
    path.write_text(json.dumps({"id": "lock-1"}), encoding="utf-8")

    assert SnapshotStore(path).load() == []


def test_legacy_snapshot_loads(tmp_path: Path) -> None:
    path = tmp_path / "locks.json"
    path.write_text(
        json.dumps(
            [
                {"id": "lock-1", "hardware_serial": "0004A30B001C0530", "state": None, "last_seen": None},
                {
                    "id": "lock-2",
                    "hardware_serial": "0004A30B001C0531",
                    "state": "locked",
                    "last_seen": "2019-05-01T10:00:00Z",
                },
            ]
        ),
        encoding="utf-8",
    )

    records = SnapshotStore(path).load()

    assert [r.id for r in records] == ["lock-1", "lock-2"]
    assert records[0].state == LockState.UNKNOWN
    assert records[1].state == LockState.LOCKED
    assert records[1].last_seen == datetime(2019, 5, 1, 10, 0, tzinfo=UTC)
    assert records[1].location == LockLocation()


def test_save_then_load(tmp_path: Path) -> None:
    store = SnapshotStore(tmp_path / "nested" / "locks.json")
    record = LockRecord(
        id="lock-1",
        hardware_serial="70B3D57ED0000001",
        state=LockState.OPEN,
        last_seen=datetime(2026, 1, 1, tzinfo=UTC),
        location=LockLocation(gps=GpsFix(lat=52.0, lng=4.9, alt=3, hdop=1.2, sat_count=6, valid=True)),
    )

    assert store.save([record]) is True

    assert store.load() == [record]
    assert not (tmp_path / "nested" / "locks.json.tmp").exists()


def test_failed_save_is_reported_not_raised(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    store = SnapshotStore(blocker / "locks.json")

    assert store.save([LockRecord(id="lock-1")]) is False
