"""Tests for BitbucketSource discovery."""

from __future__ import annotations

from unittest.mock import MagicMock, Mock

import pytest
import requests

from conftest import make_config
from bitbucket_source import PUBLIC_API_URL, BitbucketSource, extract_clone_urls
from config import Service
from errors import DiscoveryError


def _response(payload) -> Mock:
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def _repo(full_name: str, private: bool = False) -> dict:
    return {
        'full_name': full_name,
        'slug': full_name.split('/')[1],
        'is_private': private,
        'links': {
            'clone': [
                {'name': 'https', 'href': f'https://bitbucket.org/{full_name}.git'},
                {'name': 'ssh', 'href': f'git@bitbucket.org:{full_name}.git'},
            ]
        },
    }


def _make_source(tmp_path, responses, **overrides) -> BitbucketSource:
    source = BitbucketSource(make_config(tmp_path, Service.BITBUCKET, **overrides))
    source.session = MagicMock()
    source.session.get.side_effect = [_response(payload) for payload in responses]
    source.rate_limiter.wait_if_needed = lambda *_args, **_kwargs: None
    return source


def test_extract_clone_urls() -> None:
    """HTTPS and SSH links are picked out of links.clone."""
    https_url, ssh_url = extract_clone_urls(_repo('team/api')['links'])
    assert https_url == 'https://bitbucket.org/team/api.git'
    assert ssh_url == 'git@bitbucket.org:team/api.git'
    assert extract_clone_urls({}) == ('', '')


def test_lists_all_workspaces_following_next(tmp_path) -> None:
    """Every workspace is listed and next links are followed."""
    next_url = f'{PUBLIC_API_URL}/repositories/team?page=2'
    source = _make_source(tmp_path, [
        {'values': [{'workspace': {'slug': 'team'}}, {'workspace': {'slug': 'me'}}]},
        {'values': [_repo('team/api', private=True)], 'next': next_url},
        {'values': [_repo('team/web')]},
        {'values': [_repo('me/dotfiles')]},
    ])

    repos = source.list_repositories()

    assert [r.full_name for r in repos] == ['team/api', 'team/web', 'me/dotfiles']
    assert repos[0].private is True
    assert repos[0].clone_url == 'git@bitbucket.org:team/api.git'
    urls = [call.args[0] for call in source.session.get.call_args_list]
    assert urls[0] == f'{PUBLIC_API_URL}/user/permissions/workspaces'
    assert urls[1] == f'{PUBLIC_API_URL}/repositories/team'
    assert urls[2] == next_url


def test_http_error_aborts_listing(tmp_path) -> None:
    """An HTTP error should abort discovery."""
    source = _make_source(tmp_path, [])
    failing = _response({})
    failing.raise_for_status.side_effect = requests.HTTPError('503 Server Error')
    source.session.get.side_effect = [
        _response({'values': [{'workspace': {'slug': 'team'}}]}),
        failing,
    ]

    with pytest.raises(DiscoveryError):
        source.list_repositories()


def test_connect_exits_on_unauthorized(tmp_path, monkeypatch) -> None:
    """Rejected credentials exit with the auth code."""
    source = BitbucketSource(make_config(tmp_path, Service.BITBUCKET))
    source.rate_limiter.wait_if_needed = lambda *_args, **_kwargs: None
    session = MagicMock()
    session.get.return_value = Mock(status_code=401)
    monkeypatch.setattr(requests, 'Session', lambda: session)

    with pytest.raises(SystemExit) as exc:
        source.connect()
    assert exc.value.code == 40
    assert session.auth == ('backup-user', 'token-value')
