"""Driver configuration file management.

Reads the .test_driver_config JSON file that describes the harness command
line, the history store location, and the LSF submission settings. Missing
keys fall back to DEFAULT_CONFIG.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

CONFIG_FILENAME = ".test_driver_config"

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "harness": ["prove"],
    "junit_args": ["--formatter", "TAP::Formatter::JUnit", "--timer"],
    "jobs_option": "--jobs",
    "exec_option": "--exec",
    "adapter_command": ["test-driver-exec"],
    "default_jobs": 10,
    "history_file": ".tests/history.json",
    "history_prefix": "test_history:",
    "lsf_log_root": None,
    "lsf_queue": None,
    "bsub_args": [],
    "test_runner": [],
    "test_patterns": ["*_test.*", "test_*.*", "*_spec.*", "*.t"],
    "ordering": None,
}


class DriverConfig:
    """Manages the .test_driver_config JSON configuration file.

    Relative paths in the file (history_file, lsf_log_root) are resolved
    against ``base_dir``, normally the repository root.
    """

    def __init__(self, path: Path | None = None, base_dir: Path | None = None) -> None:
        self.path = path
        self.base_dir = base_dir if base_dir is not None else Path.cwd()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        """Load config from the file."""
        assert self.path is not None
        try:
            text = self.path.read_text()
            data = json.loads(text)
            if isinstance(data, dict):
                self._data = {**DEFAULT_CONFIG, **data}
        except (json.JSONDecodeError, OSError):
            self._data = dict(DEFAULT_CONFIG)

    @property
    def config(self) -> dict[str, Any]:
        """Get the full configuration dict."""
        return dict(self._data)

    def _list(self, key: str) -> list[str]:
        val = self._data.get(key, DEFAULT_CONFIG[key])
        if val is None:
            return []
        if isinstance(val, str):
            return [val]
        return [str(v) for v in val]

    def _path(self, key: str) -> Path | None:
        val = self._data.get(key, DEFAULT_CONFIG[key])
        if val is None:
            return None
        path = Path(val).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    @property
    def harness(self) -> list[str]:
        """Get the harness command prefix."""
        return self._list("harness")

    @property
    def junit_args(self) -> list[str]:
        """Get the harness flags selecting the timed JUnit formatter."""
        return self._list("junit_args")

    @property
    def jobs_option(self) -> str:
        """Get the harness flag carrying the worker count."""
        return str(self._data.get("jobs_option", DEFAULT_CONFIG["jobs_option"]))

    @property
    def exec_option(self) -> str:
        """Get the harness flag naming the executor adapter command."""
        return str(self._data.get("exec_option", DEFAULT_CONFIG["exec_option"]))

    @property
    def adapter_command(self) -> list[str]:
        """Get the command that launches an executor adapter."""
        return self._list("adapter_command")

    @property
    def default_jobs(self) -> int:
        """Get the worker count used when tracked or LSF runs give none."""
        return int(self._data.get("default_jobs", DEFAULT_CONFIG["default_jobs"]))

    @property
    def history_file(self) -> Path:
        """Get the history store path."""
        path = self._path("history_file")
        assert path is not None
        return path

    @property
    def history_prefix(self) -> str:
        """Get the key prefix partitioning the history store."""
        return str(
            self._data.get("history_prefix", DEFAULT_CONFIG["history_prefix"])
        )

    @property
    def lsf_log_root(self) -> Path:
        """Get the directory under which per-run LSF log directories live."""
        path = self._path("lsf_log_root")
        if path is None:
            return Path("~/.test_driver/lsf_logs").expanduser()
        return path

    @property
    def lsf_queue(self) -> str | None:
        """Get the LSF queue (None = scheduler default)."""
        val = self._data.get("lsf_queue", DEFAULT_CONFIG["lsf_queue"])
        return str(val) if val else None

    @property
    def bsub_args(self) -> list[str]:
        """Get extra arguments passed to every bsub submission."""
        return self._list("bsub_args")

    @property
    def test_runner(self) -> list[str]:
        """Get the interpreter prefix for test files (empty = run directly)."""
        return self._list("test_runner")

    @property
    def test_patterns(self) -> list[str]:
        """Get the filename patterns that identify test files."""
        return self._list("test_patterns")

    @property
    def ordering(self) -> str | None:
        """Get the name of the test ordering policy (None = keep order)."""
        val = self._data.get("ordering", DEFAULT_CONFIG["ordering"])
        return str(val) if val else None


def find_config_file(repo_root: Path) -> Path | None:
    """Return the config file in the repository root, if there is one."""
    path = repo_root / CONFIG_FILENAME
    return path if path.exists() else None
