"""Removal of history records for tests that no longer exist."""

from __future__ import annotations

import sys
from pathlib import Path

from driver.history.store import HistoryStore


def prune_stale_records(store: HistoryStore, repo_root: str | Path) -> list[str]:
    """Delete records whose test file is gone from the working tree.

    Scans every record under the store's prefix, deletes the stale ones,
    commits once after the scan and closes the store. A failed delete
    propagates immediately and nothing is committed.

    Args:
        store: Open history store.
        repo_root: Repository root the record paths are relative to.

    Returns:
        Repository-relative paths of the pruned records.

    Raises:
        StoreError: If a record cannot be deleted or the store not written.
    """
    root = Path(repo_root)
    pruned: list[str] = []

    try:
        for record_id, record in store.records().items():
            path = record.get("path", "")
            if path and (root / path).exists():
                continue
            store.delete(record_id)
            pruned.append(path)
            print(f"Pruned stale history: {path}", file=sys.stderr)

        store.commit()
    finally:
        store.close()

    return pruned
