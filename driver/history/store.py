"""Persisted test history: durations and pass/fail results per test file.

The store is a JSON file holding a flat ``records`` mapping. Each key is a
store prefix followed by an opaque record id, so several drivers (or
several projects) can share one file without seeing each other's records.
Changes are made in memory and written out by ``commit()``; closing the
store without committing discards them.
"""

from __future__ import annotations

import contextlib
import datetime
import fcntl
import json
import uuid
from pathlib import Path
from typing import Any, Iterator

from driver.errors import StoreError

# Maximum per-test history entries (newest-first, oldest dropped when exceeded)
HISTORY_CAP = 50


class HistoryStore:
    """Manages the history JSON file for one key prefix.

    Record layout::

        {
            "path": "tests/db/connect.t",   # repository-relative
            "duration": 12.5,               # seconds, most recent run
            "runs": 4,
            "passes": 3,
            "history": [{"passed": true, "duration": 12.5, "commit": "abc"}],
            "last_updated": "2026-01-01T00:00:00+00:00"
        }
    """

    def __init__(self, path: str | Path, prefix: str = "test_history:") -> None:
        self.path = Path(path)
        self.prefix = prefix
        self._data: dict[str, Any] | None = {"records": {}}
        if self.path.exists():
            self._load()

    def __enter__(self) -> "HistoryStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _load(self) -> None:
        """Load the store from the file."""
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise StoreError(f"Cannot read history store {self.path}: {e}")

        if not isinstance(data, dict):
            raise StoreError(
                f"Cannot read history store {self.path}: not a JSON object"
            )
        data.setdefault("records", {})
        self._data = data

    @property
    def _records(self) -> dict[str, dict[str, Any]]:
        if self._data is None:
            raise StoreError(f"History store {self.path} is closed")
        return self._data["records"]

    def commit(self) -> None:
        """Write the store to the file."""
        if self._data is None:
            raise StoreError(f"History store {self.path} is closed")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                json.dump(self._data, f, indent=2)
                f.write("\n")
        except OSError as e:
            raise StoreError(f"Cannot write history store {self.path}: {e}")

    def close(self) -> None:
        """Release the store; uncommitted changes are dropped."""
        self._data = None

    @property
    def closed(self) -> bool:
        return self._data is None

    def records(self) -> dict[str, dict[str, Any]]:
        """Get all records under this store's prefix.

        Returns:
            Dict of {record_id: record}, with the prefix stripped from ids.
        """
        return {
            key[len(self.prefix):]: record
            for key, record in self._records.items()
            if key.startswith(self.prefix)
        }

    def find_record_id(self, test_path: str) -> str | None:
        """Get the record id for a repository-relative test path."""
        for record_id, record in self.records().items():
            if record.get("path") == test_path:
                return record_id
        return None

    def get_record(self, test_path: str) -> dict[str, Any] | None:
        """Get the record for a repository-relative test path."""
        record_id = self.find_record_id(test_path)
        if record_id is None:
            return None
        return self._records[self.prefix + record_id]

    def durations(self) -> dict[str, float]:
        """Get the most recent duration of every test that has one.

        Returns:
            Dict of {repository-relative path: seconds}.
        """
        result: dict[str, float] = {}
        for record in self.records().values():
            duration = record.get("duration")
            path = record.get("path")
            if path and duration is not None:
                result[path] = float(duration)
        return result

    def delete(self, record_id: str) -> None:
        """Delete a record by id.

        Raises:
            StoreError: If no record has this id.
        """
        key = self.prefix + record_id
        records = self._records
        if key not in records:
            raise StoreError(f"No history record {key} in {self.path}")
        del records[key]

    def record_run(
        self,
        test_path: str,
        passed: bool,
        duration: float,
        commit: str | None = None,
    ) -> None:
        """Record one run of a test.

        Creates the record on first use. Updates the duration, run and
        pass counters, and prepends a capped history entry.

        Args:
            test_path: Repository-relative test path.
            passed: Whether the test passed.
            duration: Wall-clock seconds the run took.
            commit: Git commit SHA the run belongs to, or None.
        """
        now = datetime.datetime.now(tz=datetime.timezone.utc).isoformat()

        record = self.get_record(test_path)
        if record is None:
            record = {
                "path": test_path,
                "runs": 0,
                "passes": 0,
                "history": [],
            }
            self._records[self.prefix + uuid.uuid4().hex] = record

        record["duration"] = max(0.0, float(duration))
        record["runs"] = record.get("runs", 0) + 1
        if passed:
            record["passes"] = record.get("passes", 0) + 1
        record["last_updated"] = now

        history = record.get("history", [])
        history.insert(0, {
            "passed": passed,
            "duration": record["duration"],
            "commit": commit,
        })
        record["history"] = history[:HISTORY_CAP]


@contextlib.contextmanager
def locked_store(
    path: str | Path,
    prefix: str = "test_history:",
) -> Iterator[HistoryStore]:
    """Open the store while holding an exclusive advisory lock.

    The lock lives in a sibling ``.lock`` file and is held until the
    context exits, so the load-modify-commit cycle of concurrent tracker
    adapters (or a concurrent prune) cannot interleave.
    """
    lock_path = Path(f"{path}.lock")
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_file = open(lock_path, "a")
    except OSError as e:
        raise StoreError(f"Cannot lock history store {path}: {e}")

    with lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)
        store = HistoryStore(path, prefix)
        try:
            yield store
        finally:
            store.close()
