#!/usr/bin/env python3
"""Selects the adapter for the configured service and applies cross-provider filters."""

from __future__ import annotations

from typing import Iterable, List, Optional

from bitbucket_source import BitbucketSource
from config import Config, Service
from forgejo_source import ForgejoSource
from github_source import GitHubSource
from gitlab_source import GitLabSource
from logging_utils import Logger
from models import Repository
from source_base import RepositorySource

_SOURCES = {
    Service.GITHUB: GitHubSource,
    Service.GITLAB: GitLabSource,
    Service.BITBUCKET: BitbucketSource,
    Service.FORGEJO: ForgejoSource,
}


def create_source(config: Config) -> RepositorySource:
    """Instantiate the (not yet connected) adapter for ``config.service``."""
    return _SOURCES[config.service](config)


def apply_filters(repositories: Iterable[Repository], config: Config) -> List[Repository]:
    """Drop repositories outside the namespace whitelist and, optionally, private ones.

    Input order is preserved.
    """
    whitelist = set(config.namespace_whitelist)
    kept: List[Repository] = []
    for repo in repositories:
        if whitelist and repo.namespace not in whitelist:
            Logger.debug(f"not whitelisted: {repo.full_name}")
            continue
        if config.ignore_private and repo.private:
            Logger.debug(f"ignoring private: {repo.full_name}")
            continue
        kept.append(repo)
    return kept


def discover(config: Config, source: Optional[RepositorySource] = None) -> List[Repository]:
    """List and filter the repositories to back up.

    When ``source`` is omitted a new adapter is created and connected.
    Listing errors propagate unchanged, so a failed discovery never yields
    a partial set.
    """
    if source is None:
        source = create_source(config)
        source.connect()

    listed = source.list_repositories()
    repositories = apply_filters(listed, config)
    dropped = len(listed) - len(repositories)
    if dropped:
        Logger.info(f"filtered out {dropped} repositories")
    Logger.info(f"{len(repositories)} repositories to back up")
    return repositories
