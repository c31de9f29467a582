"""Execution mode resolution.

Turns the raw option flags into one execution mode plus the harness flags
that mode needs. Exactly one mode is active per invocation:

    direct       run the harness locally
    distributed  run each test through an LSF submission adapter
    tracked      run locally through the tracker adapter, recording history
    iterative    run the whole driver once per commit of a revision range

Flag order in ``ResolvedMode.harness_flags`` is fixed: JUnit formatter
flags, then the jobs flag, then the executor adapter flag.
"""

from __future__ import annotations

import argparse
import shlex
from dataclasses import dataclass, field

from driver.config import DriverConfig
from driver.errors import ConfigurationError, IterateWithoutRangeError

DIRECT = "direct"
DISTRIBUTED = "distributed"
TRACKED = "tracked"
ITERATIVE = "iterative"

# Distributed style -> (command-line flag, executor adapter name).
# Checked in this order; the first style requested wins.
DISTRIBUTED_STYLES: dict[str, tuple[str, str]] = {
    "redirect": ("--lsf-redirect", "lsf-redirect"),
    "tail": ("--lsf-tail", "lsf-tail"),
    "interactive": ("--lsf", "lsf"),
}

TRACKER_ADAPTER = "tracker"


@dataclass(frozen=True)
class ExecutionMode:
    """The single active mode of an invocation."""

    kind: str
    style: str | None = None  # distributed only
    revision_range: str | None = None  # iterative only


@dataclass
class ModeOptions:
    """The subset of command-line options that decide the mode."""

    track: bool = False
    lsf: bool = False
    lsf_tail: bool = False
    lsf_redirect: bool = False
    jobs: int | None = None
    junit: bool = False
    iterate: bool = False
    git: str | None = None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ModeOptions":
        return cls(
            track=args.track,
            lsf=args.lsf,
            lsf_tail=args.lsf_tail,
            lsf_redirect=args.lsf_redirect,
            jobs=args.jobs,
            junit=args.junit,
            iterate=args.iterate,
            git=args.git,
        )

    def distributed_styles(self) -> list[str]:
        """Requested distributed styles, most specific first."""
        requested = {
            "redirect": self.lsf_redirect,
            "tail": self.lsf_tail,
            "interactive": self.lsf,
        }
        return [style for style in DISTRIBUTED_STYLES if requested[style]]


@dataclass
class ResolvedMode:
    """Mode plus everything derived from it for estimation and dispatch."""

    mode: ExecutionMode
    jobs: int | None = None
    adapter: str | None = None
    harness_flags: list[str] = field(default_factory=list)
    prune_history: bool = False

    @property
    def distributed(self) -> bool:
        return self.mode.kind == DISTRIBUTED


def resolve_mode(options: ModeOptions, config: DriverConfig) -> ResolvedMode:
    """Resolve option flags into a single execution mode.

    Args:
        options: Parsed mode options.
        config: Driver configuration (harness flag spellings, defaults).

    Returns:
        ResolvedMode with pool size, adapter name and harness flags.

    Raises:
        ConfigurationError: If tracked mode is combined with an LSF flag,
            or the pool size is not positive.
        IterateWithoutRangeError: If iterative mode has no revision range.
    """
    styles = options.distributed_styles()

    if options.track and styles:
        flag = DISTRIBUTED_STYLES[styles[0]][0]
        raise ConfigurationError(f"--track and {flag} are mutually exclusive")

    if options.iterate and options.git is None:
        raise IterateWithoutRangeError("--iterate requires a revision range (--git)")

    if options.jobs is not None and options.jobs < 1:
        raise ConfigurationError(f"--jobs must be positive, got {options.jobs}")

    if options.iterate:
        mode = ExecutionMode(ITERATIVE, revision_range=options.git)
    elif options.track:
        mode = ExecutionMode(TRACKED)
    elif styles:
        mode = ExecutionMode(DISTRIBUTED, style=styles[0])
    else:
        mode = ExecutionMode(DIRECT)

    jobs = options.jobs
    if jobs is None and (options.track or styles):
        jobs = config.default_jobs

    adapter: str | None = None
    if options.track:
        adapter = TRACKER_ADAPTER
    elif styles:
        adapter = DISTRIBUTED_STYLES[styles[0]][1]

    flags: list[str] = []
    if options.junit:
        flags.extend(config.junit_args)
    if jobs is not None:
        flags.extend([config.jobs_option, str(jobs)])
    if adapter is not None:
        flags.extend([config.exec_option, adapter_command(config, adapter)])

    return ResolvedMode(
        mode=mode,
        jobs=jobs,
        adapter=adapter,
        harness_flags=flags,
        prune_history=options.track and not options.iterate,
    )


def adapter_command(config: DriverConfig, adapter: str) -> str:
    """Command line the harness runs each test file through."""
    return shlex.join([*config.adapter_command, adapter])
