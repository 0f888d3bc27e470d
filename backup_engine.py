#!/usr/bin/env python3
"""Clones or updates discovered repositories under the backup root in parallel."""

from __future__ import annotations

import concurrent.futures
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from config import Config, Service
from errors import TargetConflictError
from git_runner import GitCredentials, GitRunner
from logging_utils import Logger
from models import Repository, SyncSummary
from security import SecurityValidator

ACTION_CLONE = "clone"
ACTION_UPDATE = "update"
ACTION_CONFLICT = "conflict"

# Usernames git should send alongside an access token over HTTPS
_TOKEN_USERNAMES = {
    Service.GITHUB: "x-access-token",
    Service.GITLAB: "oauth2",
    Service.FORGEJO: "oauth2",
}


def git_credentials_for(config: Config) -> Optional[GitCredentials]:
    """Return the HTTPS git credentials for the configured service, if any."""
    if not config.auth.token:
        return None
    if config.service == Service.BITBUCKET:
        username = config.auth.username or ""
    else:
        username = config.auth.username or _TOKEN_USERNAMES[config.service]
    return GitCredentials(username=username, password=config.auth.token)


class BackupEngine:
    """Bounded-parallel clone-or-fetch of repositories into the backup root."""

    def __init__(self, config: Config, git: Optional[GitRunner] = None) -> None:
        self.config = config
        self.git = git or GitRunner(credentials=git_credentials_for(config))
        self.root = Path(config.backup_dir) / config.service.value

    def target_path(self, repo: Repository) -> Path:
        """Return ``root/service/namespace/name`` (``name.git`` in bare mode)."""
        namespace = SecurityValidator.validate_path_component(repo.namespace, "Namespace")
        name = SecurityValidator.validate_path_component(repo.name, "Repository name")
        if self.config.bare:
            name = f"{name}.git"
        return self.root / namespace / name

    def plan_action(self, repo: Repository) -> str:
        path = self.target_path(repo)
        if not path.exists():
            return ACTION_CLONE
        if self.git.is_repository(path, self.config.bare):
            return ACTION_UPDATE
        return ACTION_CONFLICT

    def dry_run(self, repositories: Sequence[Repository]) -> List[Tuple[Repository, str]]:
        """Report what ``sync`` would do without touching the filesystem."""
        plan: List[Tuple[Repository, str]] = []
        total = len(repositories)
        for idx, repo in enumerate(repositories, start=1):
            try:
                action = self.plan_action(repo)
            except ValueError as e:
                action = ACTION_CONFLICT
                Logger.warn(f"[{idx}/{total}] invalid target for {repo.full_name}: {e}")
            else:
                Logger.info(f"[{idx}/{total}] would {action}: {repo.full_name}")
            plan.append((repo, action))
        return plan

    def sync(self, repositories: Sequence[Repository]) -> SyncSummary:
        """Clone missing repositories and fetch existing ones.

        Each repository is handled independently: a failure is recorded in
        the returned summary and never stops the remaining work. The summary
        is only returned once every submitted operation has finished.
        """
        summary = SyncSummary()
        if not repositories:
            Logger.warn("no repositories to back up")
            return summary

        total = len(repositories)
        workers = max(1, self.config.max_concurrent_clones)
        Logger.info(
            f"backing up {total} repositories to {self.root} "
            f"({'bare' if self.config.bare else 'working tree'}, {workers} workers)"
        )

        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self._sync_one, repo): repo for repo in repositories}
            completed = concurrent.futures.as_completed(futures)
            for idx, future in enumerate(completed, start=1):
                repo = futures[future]
                try:
                    action = future.result()
                except Exception as e:
                    summary.record_failure(repo, str(e))
                    Logger.error(f"[{idx}/{total}] failed: {repo.full_name}: {e}")
                    continue
                if action == ACTION_CLONE:
                    summary.record_clone(repo)
                    Logger.info(f"[{idx}/{total}] cloned: {repo.full_name}")
                else:
                    summary.record_update(repo)
                    Logger.info(f"[{idx}/{total}] updated: {repo.full_name}")

        return summary

    def _sync_one(self, repo: Repository) -> str:
        path = self.target_path(repo)
        bare = self.config.bare
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            Logger.debug(f"cloning {repo.full_name} into {path}")
            self.git.clone(repo.clone_url, path, bare)
            return ACTION_CLONE

        if self.git.is_repository(path, bare):
            Logger.debug(f"fetching {repo.full_name} in {path}")
            self.git.update(path, bare, repo.clone_url)
            return ACTION_UPDATE

        kind = "bare" if bare else "working tree"
        raise TargetConflictError(f"{path} exists but is not a {kind} git repository")
