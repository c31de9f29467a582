"""Exception types raised by the driver and mapped to exit codes by main()."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """The requested combination of options cannot be honoured."""

    exit_code = 2


class IterateWithoutRangeError(ConfigurationError):
    """--iterate was given without a revision range."""

    exit_code = 128


class NoTestsForRangeError(RuntimeError):
    """The change-impact lookup found nothing to run for a revision range."""

    exit_code = 1

    def __init__(self, revision_range: str) -> None:
        super().__init__(f"No tests to run for changes in {revision_range}")
        self.revision_range = revision_range


class StoreError(RuntimeError):
    """The history store could not be read, modified, or committed."""

    exit_code = 1


class EnvironmentSetupError(RuntimeError):
    """A directory the driver needs is missing or could not be created."""

    exit_code = 1


class GitError(RuntimeError):
    """A git command exited non-zero."""

    exit_code = 1
