"""Conversions between the two forms of a test identifier.

The harness and the filesystem see paths relative to the working directory;
git and the history store see paths relative to the repository root.
"""

from __future__ import annotations

import os
from pathlib import Path

from driver.vcs import git


class PathMapper:
    """Maps test paths between cwd-relative and repository-relative forms."""

    def __init__(self, repo_root: str | Path, cwd: str | Path | None = None) -> None:
        self.repo_root = Path(os.path.realpath(repo_root))
        self.cwd = Path(os.path.realpath(cwd if cwd is not None else os.getcwd()))

    @classmethod
    def discover(cls, cwd: str | Path | None = None) -> "PathMapper":
        """Build a mapper for the repository containing ``cwd``."""
        return cls(git.repo_root(cwd), cwd)

    def to_repo(self, path: str) -> str:
        """Convert a cwd-relative (or absolute) path to repository-relative."""
        absolute = os.path.normpath(os.path.join(self.cwd, path))
        return Path(os.path.relpath(absolute, self.repo_root)).as_posix()

    def to_cwd(self, path: str) -> str:
        """Convert a repository-relative path to cwd-relative."""
        absolute = os.path.normpath(os.path.join(self.repo_root, path))
        return os.path.relpath(absolute, self.cwd)

    def exists(self, repo_path: str) -> bool:
        """Check whether a repository-relative path exists in the work tree."""
        return (self.repo_root / repo_path).exists()
