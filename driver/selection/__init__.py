"""Test selection: path forms, change impact, ordering and resolution."""

from driver.selection.change_impact import ChangeImpact, GitDiffChangeImpact
from driver.selection.ordering import AlternatingDurationOrder, KeepOrder, make_policy
from driver.selection.paths import PathMapper
from driver.selection.resolver import Selection, resolve_tests

__all__ = [
    "AlternatingDurationOrder",
    "ChangeImpact",
    "GitDiffChangeImpact",
    "KeepOrder",
    "PathMapper",
    "Selection",
    "make_policy",
    "resolve_tests",
]
