#!/usr/bin/env python3
"""GitHub API wrapper for discovering repositories visible to the user."""

from __future__ import annotations

import sys
from typing import Any, List, Optional

import github
import requests

from config import Config
from errors import DiscoveryError
from logging_utils import Logger
from models import Repository
from source_base import RepositorySource

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_GITHUB_ERROR = 31

PUBLIC_API_URL = "https://api.github.com"


def github_api_url(config: Config) -> str:
    """Return the REST API root for github.com or a GitHub Enterprise host."""
    if not config.host_url:
        return PUBLIC_API_URL
    return f"{config.base_url()}/api/v3"


class GitHubSource(RepositorySource):
    """Wrapper around the GitHub API to enumerate repositories."""

    SERVICE_NAME = "github"
    REQUESTS_PER_MINUTE = 50  # GitHub's standard rate limit

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.api_url = github_api_url(config)
        self.api: Optional[github.Github] = None

    def connect(self) -> None:
        Logger.info(f"init github API: {self.api_url}")
        try:
            auth = github.Auth.Token(self.config.auth.token)
            if self.api_url != PUBLIC_API_URL:
                self.api = github.Github(base_url=self.api_url, auth=auth)
            else:
                self.api = github.Github(auth=auth)
            self.rate_limiter.wait_if_needed("GitHub API")
            Logger.debug(f"github user: {self.api.get_user().login}")
        except github.BadCredentialsException:
            Logger.error("authentication failed (github): invalid credentials")
            sys.exit(EXIT_AUTH_ERROR)
        except github.GithubException as e:
            Logger.error(f"github error: {e}")
            sys.exit(EXIT_GITHUB_ERROR)
        except Exception as e:
            Logger.error(f"failed to initialize github API: {e}")
            sys.exit(EXIT_GITHUB_ERROR)

    def list_repositories(self, repo_type: Optional[str] = None) -> List[Repository]:
        """List the user's repositories, or their stars for ``starred``."""
        if self.api is None:
            Logger.error("github API not initialized")
            sys.exit(EXIT_GITHUB_ERROR)

        repo_type = repo_type or self.config.github.repo_type
        Logger.info(f"discovering github repositories (type: {repo_type})")
        try:
            user = self.api.get_user()
            if repo_type == "starred":
                # Stars are a separate listing, not a filter on owned repos
                listing = user.get_starred()
            else:
                listing = user.get_repos(type=repo_type)
            repositories = self._collect(listing, f"github {repo_type} repositories")
        except github.GithubException as e:
            raise DiscoveryError(f"failed to list github repositories: {e}") from e
        except requests.RequestException as e:
            raise DiscoveryError(f"failed to contact github api: {e}") from e

        Logger.info(f"found {len(repositories)} github repositories")
        return repositories

    def _collect(self, listing: Any, label: str) -> List[Repository]:
        def fetch_page(page: int):
            self.rate_limiter.wait_if_needed("GitHub API")
            items = listing.get_page(page)
            # PyGithub pages are zero based; an empty page ends the listing
            return items, (page + 1 if items else None)

        repositories: List[Repository] = []
        for remote in self._paginate(fetch_page, 0, label):
            if self.config.ignore_fork and remote.fork:
                Logger.debug(f"ignoring fork: {remote.full_name}")
                continue
            repo = self._make_repository(
                full_name=remote.full_name,
                name=remote.name,
                namespace=remote.full_name.split("/")[0],
                private=remote.private,
                https_url=remote.clone_url,
                ssh_url=remote.ssh_url,
            )
            if repo is not None:
                repositories.append(repo)
        return repositories
