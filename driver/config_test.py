"""Unit tests for the config module."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

from driver.config import CONFIG_FILENAME, DEFAULT_CONFIG, DriverConfig, find_config_file


class TestDriverConfigCreate:
    """Tests for creating DriverConfig instances."""

    def test_no_path_uses_defaults(self):
        """No path gives default config values."""
        cfg = DriverConfig(None, base_dir=Path("/repo"))
        assert cfg.harness == ["prove"]
        assert cfg.junit_args == DEFAULT_CONFIG["junit_args"]
        assert cfg.jobs_option == "--jobs"
        assert cfg.exec_option == "--exec"
        assert cfg.default_jobs == 10
        assert cfg.history_prefix == "test_history:"
        assert cfg.lsf_queue is None
        assert cfg.bsub_args == []
        assert cfg.test_runner == []
        assert cfg.ordering is None

    def test_nonexistent_path_uses_defaults(self):
        """Nonexistent file path gives default config values."""
        with tempfile.TemporaryDirectory() as tmpdir:
            cfg = DriverConfig(Path(tmpdir) / "missing.json")
            assert cfg.harness == ["prove"]
            assert cfg.default_jobs == 10

    def test_load_from_file(self):
        """Config is loaded from a JSON file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text(json.dumps({
                "harness": ["prove", "-l"],
                "default_jobs": 4,
                "lsf_queue": "short",
            }))
            cfg = DriverConfig(path)
            assert cfg.harness == ["prove", "-l"]
            assert cfg.default_jobs == 4
            assert cfg.lsf_queue == "short"

    def test_partial_file_fills_defaults(self):
        """Missing keys in config file are filled from defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text(json.dumps({"default_jobs": 3}))
            cfg = DriverConfig(path)
            assert cfg.default_jobs == 3
            assert cfg.exec_option == "--exec"

    def test_corrupted_file_uses_defaults(self):
        """Corrupted JSON file falls back to defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text("{ invalid json }")
            cfg = DriverConfig(path)
            assert cfg.harness == ["prove"]

    def test_string_harness_becomes_list(self):
        """A single-string harness is treated as a one-element command."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text(json.dumps({"harness": "pytest"}))
            cfg = DriverConfig(path)
            assert cfg.harness == ["pytest"]


class TestDriverConfigPaths:
    """Tests for path-valued settings."""

    def test_history_file_relative_to_base_dir(self):
        """Relative history_file resolves against the base directory."""
        cfg = DriverConfig(None, base_dir=Path("/repo"))
        assert cfg.history_file == Path("/repo/.tests/history.json")

    def test_history_file_absolute_kept(self):
        """Absolute history_file is used as-is."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text(json.dumps({"history_file": "/data/history.json"}))
            cfg = DriverConfig(path, base_dir=Path("/repo"))
            assert cfg.history_file == Path("/data/history.json")

    def test_lsf_log_root_default_in_home(self):
        """Without lsf_log_root the logs go under the home directory."""
        cfg = DriverConfig(None, base_dir=Path("/repo"))
        assert cfg.lsf_log_root == Path("~/.test_driver/lsf_logs").expanduser()

    def test_lsf_log_root_configured(self):
        """Configured lsf_log_root resolves against the base directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text(json.dumps({"lsf_log_root": "logs"}))
            cfg = DriverConfig(path, base_dir=Path("/repo"))
            assert cfg.lsf_log_root == Path("/repo/logs")


class TestFindConfigFile:
    """Tests for locating the config file."""

    def test_found_in_repo_root(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / CONFIG_FILENAME
            path.write_text("{}")
            assert find_config_file(Path(tmpdir)) == path

    def test_missing_returns_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert find_config_file(Path(tmpdir)) is None
