#!/usr/bin/env python3
"""Exception types raised by git-backup-all."""

from __future__ import annotations


class BackupError(Exception):
    """Base class for all git-backup-all errors."""


class DiscoveryError(BackupError):
    """Listing repositories from a hosting service failed."""


class PaginationLimitError(DiscoveryError):
    """A provider kept reporting further pages past the configured cap."""


class TargetConflictError(BackupError):
    """The target path exists but is not a git repository of the expected kind."""


class GitCommandError(BackupError):
    """The git executable exited with a non-zero status."""

    def __init__(self, args: list, returncode: int, stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        subcommand = self.command[1] if len(self.command) > 1 else ""
        message = f"git {subcommand} exited with {returncode}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MigrationError(BackupError):
    """A GitHub user migration could not be created or did not complete."""
