#!/usr/bin/env python3
"""GitHub user migration (account data export) lifecycle."""

from __future__ import annotations

import os
import time
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence

import github
import requests

if TYPE_CHECKING:
    from github.Migration import Migration

from config import Config
from errors import MigrationError
from github_source import github_api_url
from logging_utils import Logger
from models import MigrationJob, MigrationState
from utils import RateLimiter

DOWNLOAD_TIMEOUT_S = 300
DOWNLOAD_CHUNK_SIZE = 1024 * 1024


class GitHubMigrationWorkflow:
    """Creates, lists and waits for GitHub user migrations.

    State changes are only ever observed from the API; the workflow itself
    never moves a job between states.
    """

    def __init__(
        self,
        api: github.Github,
        config: Config,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api = api
        self.config = config
        self.settings = config.migration
        self.api_url = github_api_url(config)
        self.rate_limiter = RateLimiter(max_requests_per_minute=50)
        self._sleep = sleep
        self._migrations: Dict[int, "Migration"] = {}

    def _get_api_headers(self) -> dict:
        """Get standard API headers for GitHub requests."""
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.config.auth.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @staticmethod
    def _to_job(migration: "Migration", state: Optional[str] = None) -> MigrationJob:
        return MigrationJob(
            id=migration.id,
            state=MigrationState(state or migration.state),
            created_at=migration.created_at,
        )

    def create(self, repositories: Sequence[str]) -> MigrationJob:
        """Start a migration of the given ``owner/name`` repositories.

        With retry enabled the request is repeated up to ``retry_max``
        attempts; the last error is raised once they are exhausted.
        """
        attempts = max(1, self.settings.retry_max) if self.settings.retry else 1
        last_error: Optional[Exception] = None

        Logger.info(f"creating github user migration for {len(repositories)} repositories")
        for attempt in range(1, attempts + 1):
            try:
                self.rate_limiter.wait_if_needed("GitHub API")
                migration = self.api.get_user().create_migration(
                    list(repositories),
                    lock_repositories=False,
                    exclude_attachments=False,
                )
            except (github.GithubException, requests.RequestException) as e:
                last_error = e
                Logger.warn(
                    f"creating user migration failed (attempt {attempt}/{attempts}): {e}"
                )
                if attempt < attempts:
                    self._sleep(self.settings.retry_delay_s)
                continue

            self._migrations[migration.id] = migration
            Logger.info(f"created user migration {migration.id}")
            return MigrationJob(
                id=migration.id,
                state=MigrationState.PENDING,
                created_at=migration.created_at,
                repositories=tuple(repositories),
            )

        raise MigrationError(
            f"failed to create github user migration after {attempts} attempts: {last_error}"
        ) from last_error

    def list(self) -> List[MigrationJob]:
        """Return every migration GitHub knows about for the user."""
        try:
            self.rate_limiter.wait_if_needed("GitHub API")
            migrations = list(self.api.get_user().get_migrations())
        except (github.GithubException, requests.RequestException) as e:
            raise MigrationError(f"failed to list github user migrations: {e}") from e

        jobs = []
        for migration in migrations:
            self._migrations[migration.id] = migration
            jobs.append(self._to_job(migration))
        return jobs

    def _lookup(self, job_id: int) -> "Migration":
        if job_id not in self._migrations:
            self.list()
        if job_id not in self._migrations:
            raise MigrationError(f"user migration {job_id} not found")
        return self._migrations[job_id]

    def wait_for_completion(self, job: MigrationJob) -> MigrationJob:
        """Poll until the migration is exported; raise if it fails.

        Blocks for the whole export; there is no timeout.
        """
        migration = self._lookup(job.id)
        interval = self.settings.poll_interval_s
        Logger.info(f"waiting for user migration {job.id} (polling every {interval:.0f}s)")
        while True:
            try:
                self.rate_limiter.wait_if_needed("GitHub API")
                state = MigrationState(migration.get_status())
            except (github.GithubException, requests.RequestException) as e:
                raise MigrationError(f"polling user migration {job.id} failed: {e}") from e
            except ValueError as e:
                raise MigrationError(f"unexpected state for user migration {job.id}: {e}") from e

            Logger.info(f"user migration {job.id} state: {state.value}")
            if state == MigrationState.EXPORTED:
                return replace(job, state=state)
            if state == MigrationState.FAILED:
                raise MigrationError(f"user migration {job.id} failed on github")
            self._sleep(interval)

    def download_archive(self, job: MigrationJob, dest_dir: Path) -> Path:
        """Download the exported archive to ``dest_dir/user-migration-<id>.tar.gz``."""
        if job.state != MigrationState.EXPORTED:
            raise MigrationError(
                f"user migration {job.id} is {job.state.value}, not exported"
            )

        dest_dir.mkdir(parents=True, exist_ok=True)
        target = dest_dir / f"user-migration-{job.id}.tar.gz"
        partial = target.with_name(target.name + ".part")
        url = f"{self.api_url}/user/migrations/{job.id}/archive"
        Logger.info(f"downloading user migration {job.id} archive to {target}")
        try:
            self.rate_limiter.wait_if_needed("GitHub API")
            with requests.get(
                url, headers=self._get_api_headers(), stream=True, timeout=DOWNLOAD_TIMEOUT_S
            ) as response:
                response.raise_for_status()
                with open(partial, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            fh.write(chunk)
            os.replace(partial, target)
        except (requests.RequestException, OSError) as e:
            raise MigrationError(f"failed to download user migration {job.id}: {e}") from e
        finally:
            if partial.exists():
                partial.unlink()

        return target
