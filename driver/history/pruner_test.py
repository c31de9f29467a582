"""Unit tests for stale history pruning."""

from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from driver.errors import StoreError
from driver.history.pruner import prune_stale_records
from driver.history.store import HistoryStore


@pytest.fixture
def repo():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "t").mkdir()
        (root / "t" / "a.t").write_text("")
        yield root


class TestPruneStaleRecords:
    """Tests for prune_stale_records."""

    def test_removes_only_missing_tests(self, repo):
        path = repo / "history.json"
        with HistoryStore(path) as store:
            store.record_run("t/a.t", passed=True, duration=1.0)
            store.record_run("t/b.t", passed=True, duration=2.0)
            store.commit()

        store = HistoryStore(path)
        with patch.object(store, "commit", wraps=store.commit) as mock_commit:
            pruned = prune_stale_records(store, repo)

        assert pruned == ["t/b.t"]
        mock_commit.assert_called_once()
        assert store.closed
        with HistoryStore(path) as reopened:
            assert list(reopened.durations()) == ["t/a.t"]

    def test_nothing_stale_still_commits_once(self, repo):
        store = HistoryStore(repo / "history.json")
        store.record_run("t/a.t", passed=True, duration=1.0)
        with patch.object(store, "commit") as mock_commit:
            assert prune_stale_records(store, repo) == []
        mock_commit.assert_called_once()

    def test_record_without_path_is_pruned(self, repo):
        store = HistoryStore(repo / "history.json")
        store._records[store.prefix + "x"] = {"duration": 1.0}
        with patch.object(store, "commit"):
            assert prune_stale_records(store, repo) == [""]

    def test_failed_delete_commits_nothing(self, repo):
        store = HistoryStore(repo / "history.json")
        store.record_run("t/gone.t", passed=True, duration=1.0)
        with patch.object(store, "delete", side_effect=StoreError("boom")), \
                patch.object(store, "commit") as mock_commit:
            with pytest.raises(StoreError):
                prune_stale_records(store, repo)
        mock_commit.assert_not_called()
        assert store.closed

    def test_reports_pruned_paths(self, repo, capsys):
        store = HistoryStore(repo / "history.json")
        store.record_run("t/gone.t", passed=True, duration=1.0)
        with patch.object(store, "commit"):
            prune_stale_records(store, repo)
        assert "Pruned stale history: t/gone.t" in capsys.readouterr().err
