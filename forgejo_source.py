#!/usr/bin/env python3
"""Forgejo REST wrapper for discovering user and starred repositories."""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional, Tuple

import requests

from config import Config
from errors import DiscoveryError
from logging_utils import Logger
from models import Repository
from source_base import RepositorySource

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_FORGEJO_ERROR = 33

REQUEST_TIMEOUT_S = 30


class ForgejoSource(RepositorySource):
    """Enumerates repositories on a Forgejo instance (codeberg.org by default)."""

    SERVICE_NAME = "forgejo"
    REQUESTS_PER_MINUTE = 60

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.api_url = f"{config.base_url()}/api/v1"
        self.session: Optional[requests.Session] = None
        self.user_id: Optional[int] = None

    def connect(self) -> None:
        Logger.info(f"init forgejo API: {self.api_url}")
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/json",
                "Authorization": f"token {self.config.auth.token}",
            }
        )
        try:
            self.rate_limiter.wait_if_needed("Forgejo API")
            r_user = session.get(f"{self.api_url}/user", timeout=REQUEST_TIMEOUT_S)
        except requests.RequestException as e:
            Logger.error(f"failed to contact forgejo api: {e}")
            sys.exit(EXIT_FORGEJO_ERROR)

        if r_user.status_code in (401, 403):
            Logger.error(f"authentication failed (forgejo): status {r_user.status_code}")
            sys.exit(EXIT_AUTH_ERROR)
        if r_user.status_code != 200:
            Logger.error(f"unexpected response from forgejo: {r_user.status_code}")
            sys.exit(EXIT_FORGEJO_ERROR)

        user = r_user.json()
        self.user_id = user.get("id")
        Logger.info(f"found user {user.get('login')} with ID {self.user_id}")
        self.session = session

    def _fetch_page(self, url: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        self.rate_limiter.wait_if_needed("Forgejo API")
        response = self.session.get(url, timeout=REQUEST_TIMEOUT_S)
        response.raise_for_status()
        data = response.json()
        # /repos/search wraps results as {"ok": ..., "data": [...]}
        items = data.get("data", []) if isinstance(data, dict) else data
        next_url = response.links.get("next", {}).get("url")
        return items or [], next_url

    def list_repositories(self) -> List[Repository]:
        if self.session is None:
            Logger.error("forgejo API not initialized")
            sys.exit(EXIT_FORGEJO_ERROR)

        repo_type = self.config.forgejo.repo_type or "user"
        if repo_type == "starred":
            first_url = f"{self.api_url}/repos/search?starredBy={self.user_id}&page=1"
        elif repo_type == "user":
            first_url = f"{self.api_url}/user/repos?page=1"
        else:
            raise DiscoveryError(f"unknown forgejo repo type: {repo_type}")

        self._warn_fork_filter_unsupported()
        Logger.info(f"discovering forgejo repositories (type: {repo_type})")
        repositories: List[Repository] = []
        try:
            for remote in self._paginate(
                self._fetch_page, first_url, f"forgejo {repo_type} repositories"
            ):
                owner = remote.get("owner") or {}
                repo = self._make_repository(
                    full_name=remote.get("full_name", ""),
                    name=remote.get("name", ""),
                    namespace=owner.get("login") or owner.get("username", ""),
                    private=remote.get("private", False),
                    https_url=remote.get("clone_url", ""),
                    ssh_url=remote.get("ssh_url", ""),
                )
                if repo is not None:
                    repositories.append(repo)
        except requests.RequestException as e:
            raise DiscoveryError(
                f"fetching {repo_type} repositories from forgejo: {e}"
            ) from e

        Logger.info(f"found {len(repositories)} forgejo repositories")
        return repositories
