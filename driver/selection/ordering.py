"""Optional ordering policies applied to a resolved test set.

By default tests keep the order the change-impact lookup returned. The
alternating policy interleaves slow and fast tests so that a worker pool
starts long tests early without leaving the short ones to the end.
"""

from __future__ import annotations

from typing import Mapping, Protocol

from driver.errors import ConfigurationError


class OrderingPolicy(Protocol):
    """Reorders a list of repository-relative test paths."""

    def order(self, tests: list[str]) -> list[str]:
        ...


class KeepOrder:
    """Leaves the test order untouched."""

    def order(self, tests: list[str]) -> list[str]:
        return list(tests)


class AlternatingDurationOrder:
    """Alternates slowest and fastest remaining tests.

    Tests without a known duration follow the timed ones, in their
    original order.
    """

    def __init__(self, durations: Mapping[str, float]) -> None:
        self.durations = durations

    def order(self, tests: list[str]) -> list[str]:
        timed = [t for t in tests if t in self.durations]
        untimed = [t for t in tests if t not in self.durations]
        # Stable sort keeps equal-duration tests in input order
        ranked = sorted(timed, key=lambda t: self.durations[t], reverse=True)

        ordered: list[str] = []
        lo, hi = 0, len(ranked) - 1
        take_slow = True
        while lo <= hi:
            if take_slow:
                ordered.append(ranked[lo])
                lo += 1
            else:
                ordered.append(ranked[hi])
                hi -= 1
            take_slow = not take_slow
        return ordered + untimed


def make_policy(name: str | None, durations: Mapping[str, float]) -> OrderingPolicy:
    """Build the ordering policy named in the configuration.

    Raises:
        ConfigurationError: If the name is not a known policy.
    """
    if name is None or name == "keep":
        return KeepOrder()
    if name == "alternate":
        return AlternatingDurationOrder(durations)
    raise ConfigurationError(
        f"Unknown ordering policy '{name}'. Must be one of: ['alternate', 'keep']"
    )
