"""Shared fixtures for git-backup-all tests."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from config import Config, ProviderAuth, Service
from models import Repository


def make_config(tmp_path: Path, service: Service = Service.GITHUB, **overrides) -> Config:
    values = dict(
        service=service,
        backup_dir=str(tmp_path / 'backup'),
        auth=ProviderAuth(token='token-value', username='backup-user'),
    )
    values.update(overrides)
    return Config(**values)


def make_repo(namespace: str, name: str, private: bool = False,
              clone_url: str = '') -> Repository:
    return Repository(
        clone_url=clone_url or f'git@example.com:{namespace}/{name}.git',
        name=name,
        namespace=namespace,
        private=private,
    )


def git(cwd: Path, *args: str) -> str:
    """Run a git command and return stdout."""
    result = subprocess.run(
        ['git', *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def remote_factory(tmp_path: Path):
    """Create bare repositories with one commit, acting as remotes."""
    remotes = tmp_path / 'remotes'

    def _create(name: str) -> Path:
        remote = remotes / f'{name}.git'
        remote.mkdir(parents=True)
        git(remote, 'init', '--bare', '-b', 'main')
        seed = remotes / f'{name}-seed'
        git(remotes, 'clone', str(remote), seed.name)
        git(seed, 'config', 'user.email', 'test@test.com')
        git(seed, 'config', 'user.name', 'Test')
        (seed / 'README.md').write_text(f'# {name}\n')
        git(seed, 'add', 'README.md')
        git(seed, 'commit', '-m', 'initial')
        git(seed, 'push', 'origin', 'HEAD:main')
        return remote

    return _create
