"""Resolution of the final list of tests handed to the harness."""

from __future__ import annotations

from dataclasses import dataclass, field

from driver.errors import NoTestsForRangeError
from driver.selection.change_impact import ChangeImpact
from driver.selection.ordering import KeepOrder, OrderingPolicy
from driver.selection.paths import PathMapper


@dataclass
class Selection:
    """Tests chosen for one run.

    ``resolved`` holds the range-derived tests in repository-relative form
    (for history lookups); ``tests`` is what the harness receives.
    """

    tests: list[str]
    resolved: list[str] = field(default_factory=list)
    explicit: list[str] = field(default_factory=list)
    revision_range: str | None = None


def dedupe(items: list[str]) -> list[str]:
    """Drop repeated entries, keeping the first occurrence."""
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def resolve_tests(
    explicit: list[str],
    revision_range: str | None,
    change_impact: ChangeImpact | None,
    mapper: PathMapper | None,
    ordering: OrderingPolicy | None = None,
) -> Selection:
    """Combine range-derived tests with explicitly named ones.

    Range-derived tests come first, in the order the change-impact lookup
    returned them unless an ordering policy is given. Explicit paths are
    appended afterwards as-is: they are never merged into, or removed
    because of, the derived set.

    Args:
        explicit: Test paths named on the command line (cwd-relative).
        revision_range: Git revision range, or None for explicit-only runs.
        change_impact: Lookup used when a range is given.
        mapper: Converts repository-relative results for the harness.
        ordering: Optional reordering of the derived tests.

    Returns:
        Selection for the run.

    Raises:
        NoTestsForRangeError: If a range was given and maps to no tests.
    """
    if revision_range is None:
        return Selection(tests=list(explicit), explicit=list(explicit))

    assert change_impact is not None and mapper is not None
    resolved = dedupe(change_impact.tests_for_range(revision_range))
    if not resolved:
        raise NoTestsForRangeError(revision_range)

    if ordering is None:
        ordering = KeepOrder()
    resolved = ordering.order(resolved)

    tests = [mapper.to_cwd(path) for path in resolved] + list(explicit)
    return Selection(
        tests=tests,
        resolved=resolved,
        explicit=list(explicit),
        revision_range=revision_range,
    )
