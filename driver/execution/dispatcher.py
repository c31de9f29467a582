"""Harness invocation: build the final command line and hand over to it.

The driver does not supervise the harness. ``dispatch`` replaces the
current process, so the harness's exit status is the driver's exit status.
"""

from __future__ import annotations

import datetime
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from driver.config import CONFIG_FILENAME, DriverConfig
from driver.errors import EnvironmentSetupError
from driver.modes import ResolvedMode

# Tells the LSF executor adapters where to write per-test logs.
LOG_DIR_ENV = "TEST_DRIVER_LOG_DIR"

# Tells the executor adapters which configuration file the driver loaded.
CONFIG_ENV = "TEST_DRIVER_CONFIG"

ExecFunction = Callable[[str, list[str], Mapping[str, str]], None]


@dataclass
class HarnessInvocation:
    """A fully assembled harness command.

    ``env`` holds only the variables the driver adds; they are layered over
    the inherited environment of the exec'd process.
    """

    argv: list[str]
    env: dict[str, str] = field(default_factory=dict)

    def command_line(self) -> str:
        """Shell-quoted rendering, for display."""
        prefix = " ".join(f"{k}={shlex.quote(v)}" for k, v in sorted(self.env.items()))
        command = shlex.join(self.argv)
        return f"{prefix} {command}" if prefix else command


def build_harness_args(
    config: DriverConfig,
    resolved: ResolvedMode,
    passthrough: list[str],
    tests: list[str],
) -> list[str]:
    """Assemble harness, mode flags, passthrough arguments and tests.

    Mode flags always come first so that user-supplied harness arguments
    can override them.
    """
    return [*config.harness, *resolved.harness_flags, *passthrough, *tests]


def prepare_log_dir(
    log_root: Path,
    now: datetime.datetime | None = None,
) -> Path:
    """Create a fresh per-run log directory under ``log_root``.

    Args:
        log_root: Existing directory that collects LSF run logs.
        now: Timestamp used to name the run directory.

    Returns:
        Path of the created directory.

    Raises:
        EnvironmentSetupError: If log_root is missing or the run directory
            cannot be created.
    """
    if not log_root.is_dir():
        raise EnvironmentSetupError(
            f"LSF log directory does not exist: {log_root} "
            f"(create it or set lsf_log_root in {CONFIG_FILENAME})"
        )

    if now is None:
        now = datetime.datetime.now()
    run_dir = log_root / f"{now:%Y%m%d-%H%M%S}-{os.getpid()}"
    try:
        run_dir.mkdir()
    except OSError as e:
        raise EnvironmentSetupError(f"Cannot create LSF log directory {run_dir}: {e}")
    return run_dir


def build_invocation(
    config: DriverConfig,
    resolved: ResolvedMode,
    passthrough: list[str],
    tests: list[str],
    log_dir: Path | None = None,
) -> HarnessInvocation:
    """Build the harness invocation for a resolved mode.

    Distributed runs get a log directory (created under the configured
    root unless one is given) passed to the adapters via LOG_DIR_ENV.
    Runs that go through an adapter also get the loaded configuration
    file via CONFIG_ENV, so the adapters track into the same history
    store and submit with the same LSF settings.
    """
    env: dict[str, str] = {}
    if resolved.adapter is not None and config.path is not None:
        env[CONFIG_ENV] = str(config.path.resolve())
    if resolved.distributed:
        if log_dir is None:
            log_dir = prepare_log_dir(config.lsf_log_root)
        env[LOG_DIR_ENV] = str(log_dir)

    return HarnessInvocation(
        argv=build_harness_args(config, resolved, passthrough, tests),
        env=env,
    )


def dispatch(
    invocation: HarnessInvocation,
    exec_fn: ExecFunction | None = None,
) -> None:
    """Replace the current process with the harness.

    Only returns when ``exec_fn`` is a test double.

    Raises:
        EnvironmentSetupError: If the harness executable cannot be found.
    """
    if exec_fn is None:
        exec_fn = os.execvpe

    env = {**os.environ, **invocation.env}
    try:
        exec_fn(invocation.argv[0], invocation.argv, env)
    except FileNotFoundError:
        raise EnvironmentSetupError(f"Harness not found: {invocation.argv[0]}")
