#!/usr/bin/env python3
"""Thin wrapper around the git executable for clone and fetch operations."""

from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from errors import GitCommandError
from logging_utils import Logger
from security import SecurityValidator

CLONE_TIMEOUT_S = 3600
FETCH_TIMEOUT_S = 1800
PROBE_TIMEOUT_S = 60


@dataclass(frozen=True)
class GitCredentials:
    """Username/password pair answered to git's HTTPS prompts."""
    username: str
    password: str


class GitRunner:
    """Runs git as a subprocess; the exit code is the only success signal."""

    def __init__(
        self,
        credentials: Optional[GitCredentials] = None,
        git_binary: str = "git",
    ) -> None:
        self.credentials = credentials
        self.git_binary = git_binary

    def clone(self, url: str, dest: Path, bare: bool) -> None:
        """Clone ``url`` into ``dest`` as a working tree or a bare mirror."""
        args = ["clone", "--mirror", url, str(dest)] if bare else ["clone", url, str(dest)]
        self._run(args, url=url, timeout=CLONE_TIMEOUT_S)

    def update(self, path: Path, bare: bool, url: str = "") -> None:
        """Fetch every ref of an existing clone without pruning anything."""
        if bare:
            args = ["remote", "update"]
        else:
            args = ["fetch", "--all", "--tags"]
        self._run(args, cwd=path, url=url, timeout=FETCH_TIMEOUT_S)

    def is_repository(self, path: Path, bare: bool) -> bool:
        """Return True if ``path`` itself is a bare (or working tree) repository.

        A plain directory nested inside some other repository does not count.
        """
        try:
            result = subprocess.run(
                [self.git_binary, "rev-parse", "--absolute-git-dir"],
                cwd=str(path),
                capture_output=True,
                text=True,
                timeout=PROBE_TIMEOUT_S,
                env=self._base_env(),
            )
        except (OSError, subprocess.TimeoutExpired):
            return False
        if result.returncode != 0:
            return False

        git_dir = Path(result.stdout.strip()).resolve()
        expected = path.resolve() if bare else (path / ".git").resolve()
        return git_dir == expected

    @staticmethod
    def _base_env() -> dict:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        # ssh ignores GIT_TERMINAL_PROMPT and would ask about unknown host keys
        env.setdefault("GIT_SSH_COMMAND", "ssh -o BatchMode=yes")
        return env

    def _create_askpass_script(self, username: str, password: str) -> str:
        """Create a temporary askpass script for secure credential injection."""
        fd, path = tempfile.mkstemp(prefix="gba_askpass_", text=True)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as script:
                script.write("#!/bin/sh\n")
                script.write("case \"$1\" in\n")
                script.write(f"  *Username*) echo {shlex.quote(username)} ;;\n")
                script.write(f"  *Password*) echo {shlex.quote(password)} ;;\n")
                script.write("  *) exit 1 ;;\n")
                script.write("esac\n")
            os.chmod(path, 0o700)
        except Exception:
            os.unlink(path)
            raise
        return path

    @staticmethod
    def _cleanup_askpass_script(path: Optional[str]) -> None:
        """Remove temporary askpass script if it exists."""
        if not path:
            return
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as error:
            Logger.warn(f"failed to clean up temporary credential helper: {error}")

    def _run(
        self,
        args: List[str],
        cwd: Optional[Path] = None,
        url: str = "",
        timeout: int = FETCH_TIMEOUT_S,
    ) -> subprocess.CompletedProcess:
        command = [self.git_binary, *args]
        env = self._base_env()
        askpass_script: Optional[str] = None
        try:
            if url.startswith("https://") and self.credentials is not None:
                askpass_script = self._create_askpass_script(
                    self.credentials.username, self.credentials.password
                )
                env["GIT_ASKPASS"] = askpass_script
            return subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                check=True,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            Logger.security_event("GIT_TIMEOUT", f"git {args[0]} timed out after {timeout}s")
            raise GitCommandError(command, -1, f"timed out after {timeout}s")
        except subprocess.CalledProcessError as e:
            # Sanitize error output before it reaches logs or summaries
            safe_stderr = SecurityValidator.sanitize_for_logging(e.stderr or e.stdout or "")
            raise GitCommandError(command, e.returncode, safe_stderr)
        finally:
            self._cleanup_askpass_script(askpass_script)
