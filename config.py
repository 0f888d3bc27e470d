#!/usr/bin/env python3
"""Configuration dataclasses for git-backup-all."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

# Upper limit on simultaneous git clone/fetch operations
MAX_CONCURRENT_CLONES = 20
DEFAULT_MAX_USER_MIGRATION_RETRY = 5
DEFAULT_MAX_PAGES = 10000


class Service(Enum):
    """Enumeration for supported git hosting services."""
    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    FORGEJO = "forgejo"

    @property
    def default_host(self) -> str:
        return _DEFAULT_HOSTS[self]


_DEFAULT_HOSTS = {
    Service.GITHUB: "github.com",
    Service.GITLAB: "gitlab.com",
    Service.BITBUCKET: "bitbucket.org",
    Service.FORGEJO: "codeberg.org",
}

GITHUB_REPO_TYPES = ("all", "owner", "member", "starred")
GITLAB_VISIBILITIES = ("all", "public", "private", "internal", "default")
GITLAB_MEMBERSHIP_TYPES = ("all", "owner", "member", "starred")
FORGEJO_REPO_TYPES = ("user", "starred")


@dataclass(frozen=True)
class ProviderAuth:
    """Credentials for the selected service."""
    token: str
    username: Optional[str] = None


@dataclass(frozen=True)
class GitHubOptions:
    """GitHub-specific listing options."""
    repo_type: str = "all"


@dataclass(frozen=True)
class GitLabOptions:
    """GitLab-specific listing options."""
    project_visibility: str = "internal"
    project_membership_type: str = "all"


@dataclass(frozen=True)
class ForgejoOptions:
    """Forgejo-specific listing options."""
    repo_type: str = "user"


@dataclass(frozen=True)
class MigrationConfig:
    """GitHub user migration behavior."""
    create: bool = False
    retry: bool = True
    retry_max: int = DEFAULT_MAX_USER_MIGRATION_RETRY
    list: bool = False
    wait: bool = True
    retry_delay_s: float = 5.0
    poll_interval_s: float = 60.0


@dataclass(frozen=True)
class Config:
    """Main configuration for a backup run."""
    service: Service
    backup_dir: str
    auth: ProviderAuth
    host_url: Optional[str] = None
    ignore_private: bool = False
    ignore_fork: bool = False
    use_https_clone: bool = False
    bare: bool = False
    dry_run: bool = False
    namespace_whitelist: Tuple[str, ...] = ()
    max_concurrent_clones: int = MAX_CONCURRENT_CLONES
    max_pages: int = DEFAULT_MAX_PAGES
    github: GitHubOptions = field(default_factory=GitHubOptions)
    gitlab: GitLabOptions = field(default_factory=GitLabOptions)
    forgejo: ForgejoOptions = field(default_factory=ForgejoOptions)
    migration: MigrationConfig = field(default_factory=MigrationConfig)

    def base_url(self) -> str:
        """Return the web base URL of the configured host."""
        if self.host_url:
            url = self.host_url.rstrip("/")
            if not url.startswith(("http://", "https://")):
                url = f"https://{url}"
            return url
        return f"https://{self.service.default_host}"
