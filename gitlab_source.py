#!/usr/bin/env python3
"""GitLab API wrapper for discovering projects visible to the user."""

from __future__ import annotations

import sys
from typing import Any, Dict, List, Optional

import gitlab
import requests

from config import Config
from errors import DiscoveryError
from logging_utils import Logger
from models import Repository
from source_base import RepositorySource

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_GITLAB_ERROR = 30


def build_list_options(visibility: str, membership_type: str) -> Dict[str, Any]:
    """Translate the visibility and membership selectors to /projects filters."""
    options: Dict[str, Any] = {}

    if membership_type == "owner":
        options["owned"] = True
    elif membership_type == "member":
        options["membership"] = True
    elif membership_type == "starred":
        options["starred"] = True
    elif membership_type == "all":
        options["owned"] = True
        options["membership"] = True
        options["starred"] = True

    if visibility != "all":
        if visibility in ("public", "private"):
            options["visibility"] = visibility
        else:
            # "internal" and "default"
            options["visibility"] = "internal"

    return options


class GitLabSource(RepositorySource):
    """Wrapper around GitLab API to enumerate projects."""

    SERVICE_NAME = "gitlab"
    REQUESTS_PER_MINUTE = 30  # Conservative GitLab rate limit

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self.url = config.base_url()
        self.api: Optional[gitlab.Gitlab] = None

    def connect(self) -> None:
        Logger.info(f"init gitlab API: {self.url}")
        try:
            self.api = gitlab.Gitlab(url=self.url, private_token=self.config.auth.token)
            self.rate_limiter.wait_if_needed("GitLab API")
            self.api.auth()
        except gitlab.exceptions.GitlabAuthenticationError as e:
            Logger.error(f"authentication error (gitlab): {e}")
            sys.exit(EXIT_AUTH_ERROR)
        except Exception as e:
            Logger.error(f"failed to initialize gitlab API: {e}")
            sys.exit(EXIT_GITLAB_ERROR)

    def list_repositories(self) -> List[Repository]:
        if self.api is None:
            Logger.error("gitlab API not initialized")
            sys.exit(EXIT_GITLAB_ERROR)

        options = build_list_options(
            self.config.gitlab.project_visibility,
            self.config.gitlab.project_membership_type,
        )
        Logger.info(f"discovering gitlab projects with filters: {options}")

        def fetch_page(page: int):
            self.rate_limiter.wait_if_needed("GitLab API")
            projects = self.api.projects.list(get_all=False, page=page, **options)
            return projects, (page + 1 if projects else None)

        repositories: List[Repository] = []
        try:
            for project in self._paginate(fetch_page, 1, "gitlab projects"):
                path_ns = getattr(project, "path_with_namespace", "")
                if (
                    self.config.ignore_fork
                    and getattr(project, "forked_from_project", None) is not None
                ):
                    Logger.debug(f"ignoring fork: {path_ns}")
                    continue
                repo = self._make_repository(
                    full_name=path_ns,
                    name=getattr(project, "name", ""),
                    namespace=path_ns.split("/")[0],
                    private=getattr(project, "visibility", "") == "private",
                    https_url=getattr(project, "http_url_to_repo", ""),
                    ssh_url=getattr(project, "ssh_url_to_repo", ""),
                )
                if repo is not None:
                    repositories.append(repo)
        except gitlab.exceptions.GitlabError as e:
            raise DiscoveryError(f"failed to list gitlab projects: {e}") from e
        except requests.RequestException as e:
            raise DiscoveryError(f"failed to contact gitlab api: {e}") from e

        Logger.info(f"found {len(repositories)} gitlab projects")
        return repositories
