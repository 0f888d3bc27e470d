#!/usr/bin/env python3
"""Bitbucket Cloud REST wrapper for discovering workspace repositories."""

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
EXIT_BITBUCKET_ERROR = 32

PUBLIC_API_URL = "https://api.bitbucket.org/2.0"
REQUEST_TIMEOUT_S = 30


def extract_clone_urls(links: Dict[str, Any]) -> Tuple[str, str]:
    """Return the (https, ssh) clone hrefs from a repository ``links`` block."""
    https_url = ""
    ssh_url = ""
    for link in (links or {}).get("clone", []) or []:
        if not isinstance(link, dict):
            continue
        if link.get("name") == "https":
            https_url = link.get("href", "") or ""
        elif link.get("name") == "ssh":
            ssh_url = link.get("href", "") or ""
    return https_url, ssh_url


class BitbucketSource(RepositorySource):
    """Enumerates repositories in every workspace the user belongs to."""

    SERVICE_NAME = "bitbucket"
    REQUESTS_PER_MINUTE = 60

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        if config.host_url:
            self.api_url = f"{config.base_url()}/2.0"
        else:
            self.api_url = PUBLIC_API_URL
        self.session: Optional[requests.Session] = None

    def connect(self) -> None:
        Logger.info(f"init bitbucket API: {self.api_url}")
        session = requests.Session()
        session.auth = (self.config.auth.username or "", self.config.auth.token)
        session.headers.update({"Accept": "application/json"})
        try:
            self.rate_limiter.wait_if_needed("Bitbucket API")
            r_user = session.get(f"{self.api_url}/user", timeout=REQUEST_TIMEOUT_S)
        except requests.RequestException as e:
            Logger.error(f"failed to contact bitbucket api: {e}")
            sys.exit(EXIT_BITBUCKET_ERROR)

        if r_user.status_code in (401, 403):
            Logger.error(
                f"authentication failed (bitbucket): status {r_user.status_code}"
            )
            sys.exit(EXIT_AUTH_ERROR)
        if r_user.status_code != 200:
            Logger.error(f"unexpected response from bitbucket: {r_user.status_code}")
            sys.exit(EXIT_BITBUCKET_ERROR)

        Logger.debug(f"bitbucket user: {r_user.json().get('username')}")
        self.session = session

    def _fetch_page(self, url: str) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        self.rate_limiter.wait_if_needed("Bitbucket API")
        response = self.session.get(url, timeout=REQUEST_TIMEOUT_S)
        response.raise_for_status()
        data = response.json()
        return data.get("values", []), data.get("next")

    def list_workspaces(self) -> List[str]:
        slugs: List[str] = []
        url = f"{self.api_url}/user/permissions/workspaces"
        for entry in self._paginate(self._fetch_page, url, "bitbucket workspaces"):
            slug = (entry.get("workspace") or {}).get("slug")
            if slug:
                slugs.append(slug)
        return slugs

    def list_repositories(self) -> List[Repository]:
        if self.session is None:
            Logger.error("bitbucket API not initialized")
            sys.exit(EXIT_BITBUCKET_ERROR)

        self._warn_fork_filter_unsupported()
        repositories: List[Repository] = []
        try:
            workspaces = self.list_workspaces()
            Logger.info(f"discovering repositories in {len(workspaces)} bitbucket workspaces")
            for workspace in workspaces:
                url = f"{self.api_url}/repositories/{workspace}"
                for remote in self._paginate(
                    self._fetch_page, url, f"bitbucket repositories of {workspace}"
                ):
                    full_name = remote.get("full_name", "")
                    https_url, ssh_url = extract_clone_urls(remote.get("links", {}))
                    repo = self._make_repository(
                        full_name=full_name,
                        name=remote.get("slug", ""),
                        namespace=full_name.split("/")[0],
                        private=remote.get("is_private", False),
                        https_url=https_url,
                        ssh_url=ssh_url,
                    )
                    if repo is not None:
                        repositories.append(repo)
        except requests.RequestException as e:
            raise DiscoveryError(f"failed to list bitbucket repositories: {e}") from e

        Logger.info(f"found {len(repositories)} bitbucket repositories")
        return repositories
