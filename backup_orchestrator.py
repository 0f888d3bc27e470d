#!/usr/bin/env python3
"""Main orchestrator for a backup run or a GitHub user migration."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from backup_engine import BackupEngine
from config import Config, Service
from discovery import create_source, discover
from errors import DiscoveryError, MigrationError
from github_source import GitHubSource
from logging_utils import Logger
from migration import GitHubMigrationWorkflow
from models import SyncSummary
from source_base import RepositorySource

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1
EXIT_SYNC_FAILURES = 3
EXIT_DISCOVERY_ERROR = 20
EXIT_MIGRATION_ERROR = 21


class BackupOrchestrator:
    def __init__(
        self,
        cfg: Config,
        source: Optional[RepositorySource] = None,
        engine: Optional[BackupEngine] = None,
        workflow: Optional[GitHubMigrationWorkflow] = None,
    ) -> None:
        self.cfg = cfg
        self.source = source or create_source(cfg)
        self.engine = engine or BackupEngine(cfg)
        self._workflow = workflow
        self._connected = source is not None

    def run(self) -> int:
        try:
            if self.cfg.migration.list or self.cfg.migration.create:
                if self.cfg.service != Service.GITHUB:
                    Logger.error("user migrations are only supported for github")
                    return EXIT_EXECUTION_ERROR
                self._connect()
                if self.cfg.migration.list:
                    return self._list_migrations()
                return self._create_migration()

            return self._backup()
        except SystemExit as e:
            return int(e.code) if isinstance(e.code, int) else EXIT_EXECUTION_ERROR
        except DiscoveryError as e:
            Logger.error(f"discovery failed: {e}")
            return EXIT_DISCOVERY_ERROR
        except MigrationError as e:
            Logger.error(f"user migration failed: {e}")
            return EXIT_MIGRATION_ERROR
        except Exception as e:
            Logger.error(f"unexpected error: {e}")
            return EXIT_EXECUTION_ERROR

    def _connect(self) -> None:
        if not self._connected:
            self.source.connect()
            self._connected = True

    def _backup(self) -> int:
        self._connect()
        repositories = discover(self.cfg, self.source)

        if self.cfg.dry_run:
            self.engine.dry_run(repositories)
            Logger.info("dry-run completed")
            return EXIT_SUCCESS

        summary = self.engine.sync(repositories)
        self._report(summary)
        if summary.has_failures:
            return EXIT_SYNC_FAILURES
        Logger.info("mission accomplished")
        return EXIT_SUCCESS

    @staticmethod
    def _report(summary: SyncSummary) -> None:
        Logger.info(
            f"summary: {summary.succeeded} succeeded "
            f"({len(summary.cloned)} cloned, {len(summary.updated)} updated), "
            f"{len(summary.failures)} failed"
        )
        for failure in summary.failures:
            Logger.error(f"failed: {failure}")

    def _migration_workflow(self) -> GitHubMigrationWorkflow:
        if self._workflow is None:
            if not isinstance(self.source, GitHubSource):
                raise MigrationError("user migrations require the github adapter")
            self._workflow = GitHubMigrationWorkflow(self.source.api, self.cfg)
        return self._workflow

    def _list_migrations(self) -> int:
        jobs = self._migration_workflow().list()
        if not jobs:
            Logger.info("no user migrations found")
        for job in jobs:
            Logger.info(f"migration {job.id}: state={job.state.value}, created_at={job.created_at}")
        return EXIT_SUCCESS

    def _create_migration(self) -> int:
        owned = self.source.list_repositories(repo_type="owner")
        names = [repo.full_name for repo in owned]
        if not names:
            Logger.warn("no owned repositories to include in the user migration")
            return EXIT_SUCCESS

        workflow = self._migration_workflow()
        job = workflow.create(names)
        if not self.cfg.migration.wait:
            Logger.info(f"user migration {job.id} created; not waiting for completion")
            return EXIT_SUCCESS

        job = workflow.wait_for_completion(job)
        archive = workflow.download_archive(
            job, Path(self.cfg.backup_dir) / Service.GITHUB.value
        )
        Logger.info(f"user migration archive saved to {archive}")
        return EXIT_SUCCESS
