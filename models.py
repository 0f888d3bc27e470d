#!/usr/bin/env python3
"""Domain models: repositories, migration jobs and run summaries."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Repository:
    """A remote repository normalized across hosting services."""
    clone_url: str
    name: str
    namespace: str
    private: bool

    @property
    def full_name(self) -> str:
        return f"{self.namespace}/{self.name}"


class MigrationState(Enum):
    """States reported by GitHub for a user migration."""
    PENDING = "pending"
    EXPORTING = "exporting"
    EXPORTED = "exported"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MigrationState.EXPORTED, MigrationState.FAILED)


@dataclass(frozen=True)
class MigrationJob:
    """Snapshot of a GitHub user migration as reported by the API."""
    id: int
    state: MigrationState
    created_at: Optional[datetime] = None
    repositories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncFailure:
    """A repository that could not be cloned or updated."""
    repository: Repository
    error: str

    def __str__(self) -> str:
        return f"{self.repository.full_name}: {self.error}"


@dataclass
class SyncSummary:
    """Thread-safe accumulator of per-repository outcomes."""
    cloned: List[Repository] = field(default_factory=list)
    updated: List[Repository] = field(default_factory=list)
    failures: List[SyncFailure] = field(default_factory=list)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record_clone(self, repo: Repository) -> None:
        with self._lock:
            self.cloned.append(repo)

    def record_update(self, repo: Repository) -> None:
        with self._lock:
            self.updated.append(repo)

    def record_failure(self, repo: Repository, error: str) -> None:
        with self._lock:
            self.failures.append(SyncFailure(repo, error))

    @property
    def succeeded(self) -> int:
        return len(self.cloned) + len(self.updated)

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0
