"""Entry point for the test driver.

Parses command-line arguments, resolves the execution mode and the test
set, and hands over to the harness (or, for --iterate, to git rebase).
Arguments the driver does not know, and everything after ``--``, are passed
through to the harness unchanged.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

from driver.config import DriverConfig, find_config_file
from driver.errors import (
    ConfigurationError,
    EnvironmentSetupError,
    GitError,
    NoTestsForRangeError,
    StoreError,
)
from driver.execution.dispatcher import ExecFunction, build_invocation, dispatch
from driver.execution.estimator import estimate_duration
from driver.history.pruner import prune_stale_records
from driver.history.store import HistoryStore, locked_store
from driver.modes import ITERATIVE, ModeOptions, ResolvedMode, resolve_mode
from driver.selection.change_impact import ChangeImpact, GitDiffChangeImpact
from driver.selection.ordering import make_policy
from driver.selection.paths import PathMapper
from driver.selection.resolver import resolve_tests
from driver.vcs import git
from driver.vcs.iterate import IterativeDriver, strip_iterate_args


def parse_args(argv: list[str]) -> tuple[argparse.Namespace, list[str]]:
    """Parse command-line arguments.

    Returns:
        The parsed driver options and the arguments for the harness.
    """
    if "--" in argv:
        split = argv.index("--")
        own, passthrough = argv[:split], argv[split + 1:]
    else:
        own, passthrough = argv, []

    parser = argparse.ArgumentParser(
        description="Test driver - runs the test harness locally, on LSF, "
                    "tracked, or once per commit"
    )
    parser.add_argument(
        "--track", "-t",
        action="store_true",
        default=False,
        help="Record durations and results in the history store",
    )
    parser.add_argument(
        "--lsf", "-l",
        action="store_true",
        default=False,
        help="Run each test through an interactive LSF submission",
    )
    parser.add_argument(
        "--lsf-tail",
        action="store_true",
        default=False,
        help="Run each test on LSF, streaming and logging its output",
    )
    parser.add_argument(
        "--lsf-redirect",
        action="store_true",
        default=False,
        help="Run each test on LSF with output redirected to a log file",
    )
    parser.add_argument(
        "--jobs", "-j",
        type=int,
        default=None,
        help="Number of tests to run in parallel "
             "(default: 10 for --track and LSF runs)",
    )
    parser.add_argument(
        "--junit",
        action="store_true",
        default=False,
        help="Emit timed, JUnit-compatible results",
    )
    parser.add_argument(
        "--iterate", "-i",
        action="store_true",
        default=False,
        help="Test each commit of the --git range separately (via git rebase)",
    )
    parser.add_argument(
        "--git",
        nargs="?",
        const=git.DEFAULT_RANGE,
        default=None,
        metavar="RANGE",
        help=f"Run the tests touched by a git revision range "
             f"(default: {git.DEFAULT_RANGE}, i.e. unmerged changes)",
    )
    parser.add_argument(
        "--config-file",
        type=Path,
        default=None,
        help="Path to the .test_driver_config JSON file "
             "(default: repository root)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the harness command instead of running it",
    )
    parser.add_argument(
        "--estimate-only",
        action="store_true",
        default=False,
        help="Print the run-time estimate for the selected tests and exit",
    )
    parser.add_argument(
        "tests",
        nargs="*",
        help="Test files to run (in addition to any --git selection)",
    )
    args, unknown = parser.parse_known_args(own)
    return args, unknown + passthrough


def _load_durations(config: DriverConfig) -> dict[str, float]:
    """Read recorded durations, or nothing if there is no store yet."""
    if not config.history_file.exists():
        return {}
    with HistoryStore(config.history_file, config.history_prefix) as store:
        return store.durations()


def _run_iterative(
    argv: list[str],
    resolved: ResolvedMode,
    mapper: PathMapper,
    confirm: Callable[[], None] | None,
) -> int:
    revision_range = resolved.mode.revision_range
    assert revision_range is not None
    driver = IterativeDriver(
        revision_range,
        strip_iterate_args(argv, revision_range),
        confirm=confirm,
        cwd=str(mapper.cwd),
    )
    return driver.run()


def main(
    argv: list[str] | None = None,
    exec_fn: ExecFunction | None = None,
    confirm: Callable[[], None] | None = None,
    change_impact: ChangeImpact | None = None,
) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    args, passthrough = parse_args(argv)

    # Outside a repository only explicit, untracked runs make sense
    mapper: PathMapper | None
    try:
        mapper = PathMapper.discover()
    except GitError:
        mapper = None
    base_dir = mapper.repo_root if mapper is not None else Path.cwd()

    config_path = args.config_file
    if config_path is None:
        config_path = find_config_file(base_dir)
    config = DriverConfig(config_path, base_dir=base_dir)

    try:
        resolved = resolve_mode(ModeOptions.from_args(args), config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code

    if args.estimate_only and args.git is None:
        print("Error: --estimate-only requires --git", file=sys.stderr)
        return ConfigurationError.exit_code

    needs_git = args.git is not None or resolved.prune_history
    if mapper is None and needs_git:
        print("Error: --git, --track and --iterate need a git repository",
              file=sys.stderr)
        return 1

    try:
        if resolved.mode.kind == ITERATIVE:
            assert mapper is not None
            return _run_iterative(argv, resolved, mapper, confirm)

        if resolved.prune_history:
            assert mapper is not None
            with locked_store(config.history_file, config.history_prefix) as store:
                pruned = prune_stale_records(store, mapper.repo_root)
            if pruned:
                print(f"Pruned {len(pruned)} stale history record(s)")

        durations: dict[str, float] = {}
        if args.git is not None:
            durations = _load_durations(config)
            if change_impact is None:
                assert mapper is not None
                change_impact = GitDiffChangeImpact(
                    mapper.repo_root, config.test_patterns
                )

        selection = resolve_tests(
            args.tests,
            args.git,
            change_impact,
            mapper,
            ordering=make_policy(config.ordering, durations),
        )

        if args.git is not None:
            print(f"Selected {len(selection.resolved)} test(s) "
                  f"from changes in {args.git}")
            assert mapper is not None
            estimated_tests = selection.resolved + [
                mapper.to_repo(path) for path in selection.explicit
            ]
            estimate = estimate_duration(estimated_tests, durations, resolved.jobs)
            print(estimate.summary())
            if args.estimate_only:
                return 0

        invocation = build_invocation(
            config, resolved, passthrough, selection.tests,
        )
        if args.dry_run:
            print(invocation.command_line())
            return 0

        sys.stdout.flush()
        dispatch(invocation, exec_fn=exec_fn)
    except NoTestsForRangeError as e:
        print(str(e))
        return e.exit_code
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except (StoreError, EnvironmentSetupError, GitError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code

    return 0


if __name__ == "__main__":
    sys.exit(main())
