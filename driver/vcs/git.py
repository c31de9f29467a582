"""Thin wrappers around the git commands the driver needs.

Every helper shells out with ``subprocess.run`` and raises GitError when git
is missing or exits non-zero. Revision-range helpers live here too, since a
range means different things to ``git diff`` and ``git log``.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from driver.errors import GitError

# "Everything not yet merged": the current branch's upstream.
DEFAULT_RANGE = "@{upstream}"

# The single commit currently being applied during a rebase.
HEAD_COMMIT_RANGE = "HEAD^..HEAD"


def log_range(revision_range: str) -> str:
    """Adapt a revision range for commit-listing commands.

    ``git diff REV`` compares REV with the working tree, while ``git log REV``
    lists every ancestor of REV. Appending ``..`` to a bare revision makes
    ``git log`` list the commits after REV instead.
    """
    if ".." in revision_range:
        return revision_range
    return f"{revision_range}.."


def split_range(revision_range: str) -> tuple[str, str | None]:
    """Split ``since..until`` into its ends (until is None when absent)."""
    if "..." in revision_range:
        since, _, until = revision_range.partition("...")
    elif ".." in revision_range:
        since, _, until = revision_range.partition("..")
    else:
        return revision_range, None
    return since or "HEAD", until or None


def _run_git(
    args: list[str],
    cwd: str | Path | None = None,
    timeout: int | None = 60,
) -> subprocess.CompletedProcess[str]:
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except FileNotFoundError:
        raise GitError("git not found")

    if result.returncode != 0:
        raise GitError(f"git {args[0]} failed: {result.stderr.strip()}")
    return result


def repo_root(cwd: str | Path | None = None) -> Path:
    """Return the absolute path of the repository's top-level directory."""
    result = _run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Path(result.stdout.strip())


def head_commit(cwd: str | Path | None = None) -> str | None:
    """Return the HEAD commit SHA, or None outside a repository."""
    try:
        result = _run_git(["rev-parse", "HEAD"], cwd=cwd, timeout=10)
    except GitError:
        return None
    return result.stdout.strip()


def diff_names(revision_range: str, cwd: str | Path | None = None) -> list[str]:
    """List repository-relative paths changed in a revision range.

    Deleted files are excluded; they cannot be run.
    """
    result = _run_git(
        ["diff", "--name-only", "--diff-filter=d", revision_range],
        cwd=cwd,
    )
    return [f.strip() for f in result.stdout.splitlines() if f.strip()]


def log_oneline(revision_range: str, cwd: str | Path | None = None) -> list[str]:
    """List the commits in a range, oldest first, as ``<sha> <subject>``."""
    result = _run_git(
        ["log", "--oneline", "--reverse", log_range(revision_range)],
        cwd=cwd,
    )
    return [line for line in result.stdout.splitlines() if line.strip()]


def stash_count(cwd: str | Path | None = None) -> int:
    """Return the number of entries in the stash list."""
    result = _run_git(["stash", "list"], cwd=cwd)
    return len([line for line in result.stdout.splitlines() if line.strip()])


def stash_push(cwd: str | Path | None = None) -> bool:
    """Stash all changes, untracked files included.

    Returns:
        True if a new stash entry was created. Stashing a clean tree
        succeeds without creating one, so the stash list is compared
        before and after.
    """
    before = stash_count(cwd)
    _run_git(["stash", "push", "--include-untracked", "--quiet"], cwd=cwd)
    return stash_count(cwd) > before


def rebase_exec(
    revision_range: str,
    command: str,
    cwd: str | Path | None = None,
) -> int:
    """Replay the commits of a range, running ``command`` after each one.

    The sequence and message editors are replaced with a no-op so the
    rebase never stops for editing. Output goes straight to the terminal.

    Returns:
        The exit status of ``git rebase``; non-zero means it stopped at a
        commit whose command failed and is waiting to be continued or
        aborted.
    """
    upstream, branch = split_range(revision_range)
    cmd = ["git", "rebase", "--interactive", "--exec", command, upstream]
    if branch is not None and branch != "HEAD":
        cmd.append(branch)

    env = dict(os.environ)
    env["GIT_SEQUENCE_EDITOR"] = ":"
    env["GIT_EDITOR"] = ":"

    try:
        result = subprocess.run(cmd, cwd=cwd, env=env)
    except FileNotFoundError:
        raise GitError("git not found")
    return result.returncode
