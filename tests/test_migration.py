"""Tests for the GitHub user migration workflow."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import github
import pytest

from conftest import make_config
from config import MigrationConfig
from errors import MigrationError
from migration import GitHubMigrationWorkflow
from models import MigrationJob, MigrationState

CREATED = datetime(2024, 5, 1, 12, 0, 0)


def _migration(migration_id: int = 7, state: str = 'pending', statuses=()) -> Mock:
    migration = Mock()
    migration.id = migration_id
    migration.state = state
    migration.created_at = CREATED
    migration.get_status.side_effect = list(statuses)
    return migration


def _workflow(tmp_path, **migration_overrides):
    settings = dict(retry=True, retry_max=3, retry_delay_s=0.5, poll_interval_s=2.0)
    settings.update(migration_overrides)
    cfg = make_config(tmp_path, migration=MigrationConfig(**settings))
    api = MagicMock()
    sleeps = []
    workflow = GitHubMigrationWorkflow(api, cfg, sleep=sleeps.append)
    workflow.rate_limiter.wait_if_needed = lambda *_args, **_kwargs: None
    return workflow, api.get_user.return_value, sleeps


def _error(status: int = 502) -> github.GithubException:
    return github.GithubException(status, {'message': 'try again'}, None)


def test_create_returns_pending_job(tmp_path) -> None:
    """A created migration starts out pending."""
    workflow, user, _ = _workflow(tmp_path)
    user.create_migration.return_value = _migration(7, state='exporting')

    job = workflow.create(['me/api', 'me/web'])

    assert job == MigrationJob(7, MigrationState.PENDING, CREATED, ('me/api', 'me/web'))
    user.create_migration.assert_called_once_with(
        ['me/api', 'me/web'], lock_repositories=False, exclude_attachments=False
    )


def test_create_retries_until_success(tmp_path) -> None:
    """Creation is retried after transient errors."""
    workflow, user, sleeps = _workflow(tmp_path)
    user.create_migration.side_effect = [_error(), _error(), _migration(9)]

    job = workflow.create(['me/api'])

    assert job.id == 9
    assert user.create_migration.call_count == 3
    assert all(call.args[0] == ['me/api'] for call in user.create_migration.call_args_list)
    assert sleeps == [0.5, 0.5]


def test_create_surfaces_last_error_after_retries(tmp_path) -> None:
    """Exhausted retries raise with the last error chained."""
    workflow, user, sleeps = _workflow(tmp_path)
    last = _error(500)
    user.create_migration.side_effect = [_error(), _error(), last]

    with pytest.raises(MigrationError) as exc:
        workflow.create(['me/api'])

    assert exc.value.__cause__ is last
    assert user.create_migration.call_count == 3
    assert len(sleeps) == 2


def test_create_without_retry_tries_once(tmp_path) -> None:
    """With retry disabled creation is attempted once."""
    workflow, user, _ = _workflow(tmp_path, retry=False)
    user.create_migration.side_effect = [_error(), _migration()]

    with pytest.raises(MigrationError):
        workflow.create(['me/api'])
    assert user.create_migration.call_count == 1


def test_list_reports_provider_states(tmp_path) -> None:
    """Listed migrations carry the state GitHub reports."""
    workflow, user, _ = _workflow(tmp_path)
    user.get_migrations.return_value = [
        _migration(1, 'exported'), _migration(2, 'failed'), _migration(3, 'exporting'),
    ]

    jobs = workflow.list()

    assert [(j.id, j.state) for j in jobs] == [
        (1, MigrationState.EXPORTED),
        (2, MigrationState.FAILED),
        (3, MigrationState.EXPORTING),
    ]


def test_wait_polls_until_exported(tmp_path) -> None:
    """Waiting polls until the export finishes."""
    workflow, user, sleeps = _workflow(tmp_path)
    user.create_migration.return_value = _migration(
        7, statuses=['pending', 'exporting', 'exported']
    )
    job = workflow.create(['me/api'])

    done = workflow.wait_for_completion(job)

    assert done.state == MigrationState.EXPORTED
    assert done.id == 7
    assert sleeps == [2.0, 2.0]


def test_wait_raises_when_export_fails(tmp_path) -> None:
    """A failed export raises a migration error."""
    workflow, user, _ = _workflow(tmp_path)
    user.create_migration.return_value = _migration(7, statuses=['exporting', 'failed'])
    job = workflow.create(['me/api'])

    with pytest.raises(MigrationError, match='failed'):
        workflow.wait_for_completion(job)


def test_wait_stops_on_poll_error(tmp_path) -> None:
    """A polling error stops the wait."""
    workflow, user, _ = _workflow(tmp_path)
    user.create_migration.return_value = _migration(7, statuses=['pending', _error()])
    job = workflow.create(['me/api'])

    with pytest.raises(MigrationError, match='polling'):
        workflow.wait_for_completion(job)


def test_wait_looks_up_unknown_jobs(tmp_path) -> None:
    """Jobs not seen yet are found through the listing."""
    workflow, user, _ = _workflow(tmp_path)
    user.get_migrations.return_value = [_migration(5, statuses=['exported'])]

    done = workflow.wait_for_completion(MigrationJob(5, MigrationState.EXPORTING))

    assert done.state == MigrationState.EXPORTED


def test_download_requires_exported_job(tmp_path) -> None:
    """Only exported migrations can be downloaded."""
    workflow, _, _ = _workflow(tmp_path)
    with pytest.raises(MigrationError):
        workflow.download_archive(MigrationJob(5, MigrationState.EXPORTING), tmp_path)


def test_download_writes_archive(tmp_path) -> None:
    """The archive is streamed to user-migration-<id>.tar.gz."""
    workflow, _, _ = _workflow(tmp_path)
    response = MagicMock()
    response.__enter__.return_value = response
    response.iter_content.return_value = [b'abc', b'', b'def']

    with patch('migration.requests.get', return_value=response) as mock_get:
        path = workflow.download_archive(MigrationJob(5, MigrationState.EXPORTED), tmp_path / 'out')

    assert path == tmp_path / 'out' / 'user-migration-5.tar.gz'
    assert path.read_bytes() == b'abcdef'
    assert mock_get.call_args.args[0] == 'https://api.github.com/user/migrations/5/archive'
    assert mock_get.call_args.kwargs['headers']['Authorization'] == 'Bearer token-value'


def test_download_removes_partial_file_on_write_error(tmp_path) -> None:
    """A failing write should leave neither the archive nor its .part file."""
    workflow, _, _ = _workflow(tmp_path)

    def chunks():
        yield b'abc'
        raise OSError(28, 'No space left on device')

    response = MagicMock()
    response.__enter__.return_value = response
    response.iter_content.return_value = chunks()
    out = tmp_path / 'out'

    with patch('migration.requests.get', return_value=response):
        with pytest.raises(MigrationError, match='No space left'):
            workflow.download_archive(MigrationJob(5, MigrationState.EXPORTED), out)

    assert list(out.iterdir()) == []
