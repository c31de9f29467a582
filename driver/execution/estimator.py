"""Run-time estimation from historical test durations.

The estimate is advisory: it is printed before dispatch and never gates
execution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass
class DurationEstimate:
    """Aggregated durations for a test set."""

    total: float
    estimated: float
    known: int
    unknown: list[str] = field(default_factory=list)
    jobs: int | None = None
    slowest: str | None = None

    def summary(self) -> str:
        """One-line human readable summary."""
        line = (
            f"Estimated time: {format_seconds(self.estimated)} "
            f"(sequential {format_seconds(self.total)}"
        )
        if self.jobs is not None:
            line += f", {self.jobs} jobs"
        line += f"; {self.known} timed"
        if self.unknown:
            line += f", {len(self.unknown)} without history"
        return line + ")"


def format_seconds(seconds: float) -> str:
    """Format seconds as ``1h02m03s`` / ``2m03s`` / ``3.0s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h{minutes:02d}m{secs:02d}s"
    return f"{minutes}m{secs:02d}s"


def estimate_duration(
    tests: list[str],
    durations: Mapping[str, float],
    jobs: int | None = None,
) -> DurationEstimate:
    """Estimate sequential and parallel run time for a set of tests.

    Tests without a recorded duration do not contribute (they are not
    counted as zero-length); they are listed in ``unknown``. With a worker
    pool the parallel time can never drop below the slowest single test:
    ``estimated = max(total / jobs, max(durations))``.

    Args:
        tests: Repository-relative test paths.
        durations: Known durations in seconds, keyed like ``tests``.
        jobs: Worker pool size, or None for a sequential run.

    Returns:
        DurationEstimate for the set.

    Raises:
        ValueError: If jobs is not positive.
    """
    if jobs is not None and jobs < 1:
        raise ValueError(f"Worker pool size must be positive, got {jobs}")

    known: dict[str, float] = {}
    unknown: list[str] = []
    for test in tests:
        if test in known or test in unknown:
            continue
        if test in durations:
            known[test] = max(0.0, float(durations[test]))
        else:
            unknown.append(test)

    total = sum(known.values())
    slowest = max(known, key=lambda t: known[t]) if known else None

    if jobs is not None and known:
        estimated = max(total / jobs, max(known.values()))
    else:
        estimated = total

    return DurationEstimate(
        total=total,
        estimated=estimated,
        known=len(known),
        unknown=unknown,
        jobs=jobs,
        slowest=slowest,
    )
