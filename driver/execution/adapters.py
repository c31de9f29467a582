"""Executor adapters: how the harness runs a single test file.

The harness calls ``test-driver-exec <adapter> <test-file>`` for each test
(through its exec option) and reads the test's output from stdout.

    tracker       run locally; record duration and result in the history store
    lsf           interactive bsub submission, output attached to the terminal
    lsf-tail      interactive bsub submission, output also appended to a log
    lsf-redirect  blocking bsub submission, output only in the log

The LSF adapters build the submission command; job lifecycle beyond
waiting for the submission to exit is left to the scheduler.
"""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import IO

from driver.config import DriverConfig, find_config_file
from driver.errors import EnvironmentSetupError, GitError, StoreError
from driver.execution.dispatcher import CONFIG_ENV, LOG_DIR_ENV
from driver.history.store import locked_store
from driver.selection.paths import PathMapper
from driver.vcs import git

ADAPTERS = ("tracker", "lsf", "lsf-tail", "lsf-redirect")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run one test file for the test harness"
    )
    parser.add_argument("adapter", choices=ADAPTERS, help="Executor adapter")
    parser.add_argument("test_file", help="Test file to run")
    parser.add_argument(
        "test_args",
        nargs=argparse.REMAINDER,
        help="Extra arguments for the test",
    )
    return parser.parse_args(argv)


def local_command(
    config: DriverConfig,
    test_file: str,
    test_args: list[str],
) -> list[str]:
    """Command that runs one test file locally."""
    return [*config.test_runner, test_file, *test_args]


def log_file_for(log_dir: Path, test_file: str) -> Path:
    """Per-test log file inside a run's log directory."""
    name = os.path.normpath(test_file).lstrip(os.sep).replace(os.sep, "__")
    return log_dir / f"{name}.log"


def _log_dir_from_env() -> Path:
    value = os.environ.get(LOG_DIR_ENV)
    if not value:
        raise EnvironmentSetupError(f"{LOG_DIR_ENV} is not set")
    log_dir = Path(value)
    if not log_dir.is_dir():
        raise EnvironmentSetupError(f"LSF log directory does not exist: {log_dir}")
    return log_dir


def _config_path(repo_root: Path) -> Path | None:
    """Configuration file the driver loaded, else the repository default."""
    value = os.environ.get(CONFIG_ENV)
    if value:
        return Path(value)
    return find_config_file(repo_root)


def bsub_command(
    config: DriverConfig,
    command: list[str],
    style: str,
    log_file: Path | None = None,
) -> list[str]:
    """Build the bsub submission for one test command.

    Args:
        config: Driver configuration (queue, extra bsub arguments).
        command: The local test command to submit.
        style: Adapter name (lsf, lsf-tail, lsf-redirect).
        log_file: Output log, required for lsf-redirect.

    Returns:
        Full bsub argv.
    """
    cmd = ["bsub"]
    if style == "lsf-redirect":
        assert log_file is not None
        cmd += ["-K", "-o", str(log_file), "-e", str(log_file)]
    else:
        cmd += ["-I"]
    if config.lsf_queue:
        cmd += ["-q", config.lsf_queue]
    cmd += config.bsub_args
    return cmd + command


def _tee(stream: IO[str], log_path: Path) -> None:
    with open(log_path, "a") as log:
        for line in stream:
            sys.stdout.write(line)
            sys.stdout.flush()
            log.write(line)


def run_tracked(
    config: DriverConfig,
    mapper: PathMapper,
    args: argparse.Namespace,
) -> int:
    """Run a test locally and record its duration and result.

    Output is not captured; the harness reads it directly.

    Returns:
        The test's exit code.
    """
    command = local_command(config, args.test_file, args.test_args)
    start_time = time.monotonic()
    try:
        proc = subprocess.run(command)
        returncode = proc.returncode
    except FileNotFoundError:
        print(f"Executable not found: {command[0]}", file=sys.stderr)
        returncode = 127
    duration = time.monotonic() - start_time

    commit = git.head_commit(cwd=mapper.repo_root)
    with locked_store(config.history_file, config.history_prefix) as store:
        store.record_run(
            mapper.to_repo(args.test_file),
            passed=returncode == 0,
            duration=duration,
            commit=commit,
        )
        store.commit()
    return returncode


def run_lsf(config: DriverConfig, args: argparse.Namespace) -> int:
    """Submit a test to LSF in the adapter's style.

    Returns:
        Exit code of the submission (the job's exit code for -I / -K).
    """
    command = local_command(config, args.test_file, args.test_args)

    if args.adapter == "lsf":
        return subprocess.run(bsub_command(config, command, args.adapter)).returncode

    log_path = log_file_for(_log_dir_from_env(), args.test_file)
    if args.adapter == "lsf-redirect":
        cmd = bsub_command(config, command, args.adapter, log_file=log_path)
        return subprocess.run(cmd).returncode

    proc = subprocess.Popen(
        bsub_command(config, command, args.adapter),
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
    )
    assert proc.stdout is not None
    _tee(proc.stdout, log_path)
    return proc.wait()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        mapper = PathMapper.discover()
    except GitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    config = DriverConfig(_config_path(mapper.repo_root), base_dir=mapper.repo_root)

    try:
        if args.adapter == "tracker":
            return run_tracked(config, mapper, args)
        return run_lsf(config, args)
    except (StoreError, EnvironmentSetupError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FileNotFoundError:
        print("Error: bsub not found in PATH", file=sys.stderr)
        return 127


if __name__ == "__main__":
    sys.exit(main())
