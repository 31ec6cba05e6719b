"""JSON snapshot persistence for lock records."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from lockhandler.models.lock import LockRecord

_logger = logging.getLogger(__name__)

_RECORDS = TypeAdapter(list[LockRecord])


class SnapshotStore:
    """Reads and writes the lock snapshot file.

    Neither operation raises: a missing or unreadable snapshot loads as
    empty, and a failed write is logged so the next attempt can succeed.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[LockRecord]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _logger.info("No snapshot at %s; starting empty", self.path)
            return []
        except (OSError, UnicodeDecodeError):
            _logger.warning("Could not read snapshot %s", self.path, exc_info=True)
            return []

        try:
            records = _RECORDS.validate_json(text)
        except ValidationError:
            _logger.warning("Snapshot %s is corrupt; starting empty", self.path, exc_info=True)
            return []

        _logger.info("Loaded %d locks from %s", len(records), self.path)
        return records

    def save(self, records: Iterable[LockRecord]) -> bool:
        """Write *records*; returns whether the write succeeded."""
        _logger.info("Writing lock snapshot to %s", self.path)
        data = _RECORDS.dump_json(list(records), indent=2)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            if self.path.parent != Path():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, self.path)
        except OSError:
            _logger.warning("Couldn't write snapshot %s", self.path, exc_info=True)
            return False
        return True
