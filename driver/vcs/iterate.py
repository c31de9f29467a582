"""Per-commit testing across a revision range.

The driver re-invokes itself once for every commit in the range by running
``git rebase --interactive --exec``. Each invocation tests only what the
commit being applied touched (``--git HEAD^..HEAD``). Uncommitted work is
stashed first, since a rebase cannot start on a dirty tree.
"""

from __future__ import annotations

import shlex
import sys
from typing import Callable

from driver.vcs import git

STASH_WARNING = """\
Warning: uncommitted changes were stashed before testing each commit.
They are NOT covered by this run. To test them afterwards:

    git stash pop
    test-driver --track --git HEAD
"""

REBASE_STOPPED = """\
Rebase stopped at a commit whose tests failed.
Fix it and run 'git rebase --continue', or give up with 'git rebase --abort'.
"""

# Boolean short options that may be bundled with -i (e.g. -ti)
_FLAG_SHORT = frozenset("tli")

# Short options whose value may follow in the same bundle (e.g. -ij4)
_VALUE_SHORT = frozenset("j")


def wait_for_acknowledgment(prompt: str = "Press Enter to continue...") -> None:
    """Block until the user enters a line. End of input counts as consent."""
    try:
        input(prompt)
    except EOFError:
        print()


def _strip_short_bundle(token: str) -> str | None:
    """Drop ``i`` from a bundle of the driver's short options.

    Returns the bundle without it, None when nothing is left, or the token
    unchanged when it is not made of the driver's own options.
    """
    kept = ""
    letters = token[1:]
    for pos, letter in enumerate(letters):
        if letter in _VALUE_SHORT:
            kept += letters[pos:]
            break
        if letter not in _FLAG_SHORT:
            return token
        if letter != "i":
            kept += letter
    return "-" + kept if kept else None


def strip_iterate_args(argv: list[str], revision_range: str) -> list[str]:
    """Remove the iterate flag and the revision-range option from argv.

    Arguments after ``--`` belong to the harness and are kept verbatim.

    Args:
        argv: The driver's own command-line arguments.
        revision_range: The range the --git option resolved to.

    Returns:
        The remaining arguments, in their original order.
    """
    remaining: list[str] = []
    i = 0
    while i < len(argv):
        token = argv[i]
        if token == "--":
            remaining.extend(argv[i:])
            break
        if token in ("-i", "--iterate") or token.startswith("--git="):
            i += 1
            continue
        if token == "--git":
            # Drop the value too when argparse consumed it
            if i + 1 < len(argv) and argv[i + 1] == revision_range:
                i += 1
            i += 1
            continue
        if token.startswith("-") and not token.startswith("--") and len(token) > 2:
            stripped = _strip_short_bundle(token)
            if stripped is not None:
                remaining.append(stripped)
            i += 1
            continue
        remaining.append(token)
        i += 1
    return remaining


def per_commit_command(
    driver_command: list[str],
    remaining: list[str],
    cwd: str | None = None,
) -> str:
    """Shell command the rebase runs after applying each commit.

    ``git rebase --exec`` runs commands from the top of the work tree, so
    the command first returns to ``cwd``, where relative arguments in
    ``remaining`` were written.
    """
    command = shlex.join([
        *driver_command, "--git", git.HEAD_COMMIT_RANGE, *remaining,
    ])
    if cwd is None:
        return command
    return f"cd {shlex.quote(cwd)} && {command}"


class IterativeDriver:
    """Runs the driver against each commit of a range via git rebase.

    Moves from ``awaiting_precondition`` to ``running`` once the working
    tree is safe to rebase, and ends ``completed`` or ``aborted``.
    """

    def __init__(
        self,
        revision_range: str,
        remaining_args: list[str],
        driver_command: list[str] | None = None,
        confirm: Callable[[], None] | None = None,
        cwd: str | None = None,
    ) -> None:
        self.revision_range = revision_range
        self.remaining_args = remaining_args
        self.driver_command = (
            driver_command if driver_command is not None
            else [sys.executable, "-m", "driver"]
        )
        self.confirm = confirm if confirm is not None else wait_for_acknowledgment
        self.cwd = cwd
        self.state = "awaiting_precondition"
        self.stashed = False

    @property
    def command(self) -> str:
        return per_commit_command(
            self.driver_command, self.remaining_args, cwd=self.cwd
        )

    def run(self) -> int:
        """Stash, confirm, and rebase with the per-commit command.

        Returns:
            0 if every commit passed, otherwise the rebase's exit status.

        Raises:
            GitError: If stashing or listing commits fails.
        """
        self.stashed = git.stash_push(cwd=self.cwd)
        if self.stashed:
            print(STASH_WARNING, file=sys.stderr)
            self.confirm()

        self.state = "running"
        commits = git.log_oneline(self.revision_range, cwd=self.cwd)
        print(f"Testing {len(commits)} commit(s) in {self.revision_range}:")
        for line in commits:
            print(f"  {line}")
        print()

        returncode = git.rebase_exec(self.revision_range, self.command, cwd=self.cwd)
        if returncode != 0:
            self.state = "aborted"
            print(REBASE_STOPPED, file=sys.stderr)
            if self.stashed:
                print(
                    "Your uncommitted changes are still in the stash "
                    "('git stash pop' once the rebase is finished).",
                    file=sys.stderr,
                )
            return returncode

        self.state = "completed"
        return 0
