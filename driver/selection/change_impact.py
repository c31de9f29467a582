"""Change-impact lookup: which tests does a revision range affect?

The driver only depends on the ChangeImpact protocol. GitDiffChangeImpact is
the default: it lists the files changed in the range and keeps the ones
whose names look like tests. Smarter mappings (co-change history, build
graphs) can be supplied by implementing the same protocol.
"""

from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Protocol

from driver.vcs import git

DEFAULT_TEST_PATTERNS = [
    "*_test.*", "test_*.*", "*_spec.*", "*.t",
]


class ChangeImpact(Protocol):
    """Maps a revision range to repository-relative test paths."""

    def tests_for_range(self, revision_range: str) -> list[str]:
        ...


def is_test_file(filepath: str, test_patterns: list[str] | None = None) -> bool:
    """Check whether a path's basename matches any test pattern.

    Args:
        filepath: Relative file path from repository root.
        test_patterns: List of glob patterns (e.g. ["*_test.*"]).

    Returns:
        True if the file is a test.
    """
    if test_patterns is None:
        test_patterns = DEFAULT_TEST_PATTERNS

    basename = os.path.basename(filepath)
    return any(fnmatch.fnmatch(basename, pattern) for pattern in test_patterns)


class GitDiffChangeImpact:
    """Selects the test files touched by ``git diff --name-only <range>``."""

    def __init__(
        self,
        repo_root: str | Path,
        test_patterns: list[str] | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.test_patterns = test_patterns

    def tests_for_range(self, revision_range: str) -> list[str]:
        changed = git.diff_names(revision_range, cwd=self.repo_root)
        return [
            path for path in changed
            if is_test_file(path, self.test_patterns)
            and (self.repo_root / path).exists()
        ]
