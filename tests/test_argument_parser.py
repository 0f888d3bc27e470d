"""Tests for command line parsing into Config."""

from __future__ import annotations

import os

import pytest

from argument_parser import parse_arguments
from config import Service
from logging_utils import Logger


def test_defaults_for_github(monkeypatch) -> None:
    """GitHub defaults should match the documented CLI defaults."""
    monkeypatch.setenv('GITHUB_TOKEN', 'gh-secret')

    cfg = parse_arguments(['--service', 'github'])

    assert cfg.service == Service.GITHUB
    assert cfg.auth.token == 'gh-secret'
    assert cfg.backup_dir == os.path.expanduser('~/.gitbackup')
    assert cfg.max_concurrent_clones == 20
    assert cfg.github.repo_type == 'all'
    assert cfg.gitlab.project_visibility == 'internal'
    assert cfg.migration.retry is True
    assert cfg.migration.retry_max == 5
    assert cfg.migration.wait is True
    assert cfg.namespace_whitelist == ()


def test_whitelist_and_flags(monkeypatch, tmp_path) -> None:
    """Whitelist entries are split, stripped and carried with the flags."""
    monkeypatch.setenv('GITLAB_TOKEN', 'gl-secret')

    cfg = parse_arguments([
        '--service', 'gitlab',
        '--backupdir', str(tmp_path),
        '--namespace-whitelist', 'acme, octo,',
        '--ignore-private', '--ignore-fork', '--bare', '--use-https-clone',
        '--gitlab-project-membership-type', 'owner',
    ])

    assert cfg.namespace_whitelist == ('acme', 'octo')
    assert cfg.ignore_private and cfg.ignore_fork and cfg.bare and cfg.use_https_clone
    assert cfg.gitlab.project_membership_type == 'owner'


def test_bitbucket_requires_username(monkeypatch) -> None:
    """Bitbucket without BITBUCKET_USERNAME should exit with the auth code."""
    monkeypatch.setenv('BITBUCKET_TOKEN', 'bb-secret')
    monkeypatch.delenv('BITBUCKET_USERNAME', raising=False)

    with pytest.raises(SystemExit) as exc:
        parse_arguments(['--service', 'bitbucket'])
    assert exc.value.code == 40


def test_missing_token_exits(monkeypatch) -> None:
    """A missing service token should exit with the auth code."""
    monkeypatch.delenv('FORGEJO_TOKEN', raising=False)

    with pytest.raises(SystemExit) as exc:
        parse_arguments(['--service', 'forgejo'])
    assert exc.value.code == 40


def test_migration_flags(monkeypatch) -> None:
    """Migration flags should map onto MigrationConfig."""
    monkeypatch.setenv('GITHUB_TOKEN', 'gh-secret')

    cfg = parse_arguments([
        '--service', 'github',
        '--github-create-user-migration',
        '--github-no-user-migration-retry',
        '--github-no-wait-for-user-migration',
    ])

    assert cfg.migration.create is True
    assert cfg.migration.retry is False
    assert cfg.migration.wait is False


def test_create_and_list_are_exclusive(monkeypatch) -> None:
    """Creating and listing migrations together is rejected."""
    monkeypatch.setenv('GITHUB_TOKEN', 'gh-secret')

    with pytest.raises(SystemExit) as exc:
        parse_arguments([
            '--service', 'github',
            '--github-create-user-migration', '--github-list-user-migrations',
        ])
    assert exc.value.code == 2


def test_verbose_flag_enables_debug_output(monkeypatch) -> None:
    """--verbose switches on Logger debug output for the run."""
    monkeypatch.setenv('GITHUB_TOKEN', 'gh-secret')
    monkeypatch.setattr(Logger, 'verbose', False)

    parse_arguments(['--service', 'github', '-v'])

    assert Logger.verbose is True
