"""Persisted test history and its maintenance."""

from driver.history.pruner import prune_stale_records
from driver.history.store import HistoryStore, locked_store

__all__ = [
    "HistoryStore",
    "locked_store",
    "prune_stale_records",
]
