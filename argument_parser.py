#!/usr/bin/env python3
"""Command line argument parsing and configuration building."""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional, Tuple

from config import (DEFAULT_MAX_USER_MIGRATION_RETRY, FORGEJO_REPO_TYPES,
                    GITHUB_REPO_TYPES, GITLAB_MEMBERSHIP_TYPES,
                    GITLAB_VISIBILITIES, MAX_CONCURRENT_CLONES, Config,
                    ForgejoOptions, GitHubOptions, GitLabOptions,
                    MigrationConfig, ProviderAuth, Service)
from logging_utils import Logger
from security import SecurityValidator

# Exit codes
EXIT_AUTH_ERROR = 40
EXIT_MISSING_ARGUMENTS = 2

DEFAULT_BACKUP_DIR = "~/.gitbackup"

# Environment variables holding (token, username) per service
_CREDENTIAL_ENV = {
    Service.GITHUB: ("GITHUB_TOKEN", None),
    Service.GITLAB: ("GITLAB_TOKEN", None),
    Service.BITBUCKET: ("BITBUCKET_TOKEN", "BITBUCKET_USERNAME"),
    Service.FORGEJO: ("FORGEJO_TOKEN", None),
}


def _create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Back up every repository visible to you on a git hosting service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --service github
  %(prog)s --service github --github-repo-type starred --use-https-clone
  %(prog)s --service gitlab --gitlab-project-visibility private --bare
  %(prog)s --service gitlab --githost-url https://gitlab.company.com --ignore-fork
  %(prog)s --service github --namespace-whitelist acme,octocat --ignore-private
  %(prog)s --service github --github-create-user-migration
        """,
    )
    return parser


def _add_generic_arguments(parser: argparse.ArgumentParser) -> None:
    """Add service-independent arguments to parser."""
    parser.add_argument(
        "--service",
        dest="service",
        required=True,
        choices=[service.value for service in Service],
        help="Git hosting service to back up",
    )
    parser.add_argument(
        "--githost-url",
        dest="host_url",
        help="URL of a self-hosted instance (GitHub Enterprise, GitLab, Forgejo)",
    )
    parser.add_argument(
        "--backupdir",
        dest="backup_dir",
        default=DEFAULT_BACKUP_DIR,
        help=f"Backup root directory (default: {DEFAULT_BACKUP_DIR})",
    )
    parser.add_argument(
        "--ignore-private",
        action="store_true",
        dest="ignore_private",
        help="Ignore private repositories/projects",
    )
    parser.add_argument(
        "--ignore-fork",
        action="store_true",
        dest="ignore_fork",
        help="Ignore repositories which are forks (github and gitlab only)",
    )
    parser.add_argument(
        "--use-https-clone",
        action="store_true",
        dest="use_https_clone",
        help="Use HTTPS for cloning instead of SSH",
    )
    parser.add_argument(
        "--bare",
        action="store_true",
        dest="bare",
        help="Clone bare mirror repositories",
    )
    parser.add_argument(
        "--namespace-whitelist",
        dest="namespace_whitelist",
        default="",
        help="Users/organizations to back up, comma separated: 'user1,org2'",
    )
    parser.add_argument(
        "--max-concurrent-clones",
        dest="max_concurrent_clones",
        type=int,
        default=MAX_CONCURRENT_CLONES,
        help=f"Maximum simultaneous clone/fetch operations (default: {MAX_CONCURRENT_CLONES})",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        dest="dry_run",
        help="List actions without doing them",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        dest="verbose",
        help="Print debug output",
    )


def _add_provider_arguments(parser: argparse.ArgumentParser) -> None:
    """Add per-service listing selectors to parser."""
    parser.add_argument(
        "--github-repo-type",
        dest="github_repo_type",
        choices=GITHUB_REPO_TYPES,
        default="all",
        help="Repo types to back up (default: all)",
    )
    parser.add_argument(
        "--gitlab-project-visibility",
        dest="gitlab_project_visibility",
        choices=GITLAB_VISIBILITIES,
        default="internal",
        help="Visibility level of projects to clone (default: internal)",
    )
    parser.add_argument(
        "--gitlab-project-membership-type",
        dest="gitlab_project_membership_type",
        choices=GITLAB_MEMBERSHIP_TYPES,
        default="all",
        help="Project membership to clone (default: all)",
    )
    parser.add_argument(
        "--forgejo-repo-type",
        dest="forgejo_repo_type",
        choices=FORGEJO_REPO_TYPES,
        default="user",
        help="Repo types to back up (default: user)",
    )


def _add_migration_arguments(parser: argparse.ArgumentParser) -> None:
    """Add GitHub user migration arguments to parser."""
    parser.add_argument(
        "--github-create-user-migration",
        action="store_true",
        dest="create_migration",
        help="Export user data through a GitHub user migration",
    )
    parser.add_argument(
        "--github-no-user-migration-retry",
        action="store_true",
        dest="no_migration_retry",
        help="Do not retry creating the user migration on errors",
    )
    parser.add_argument(
        "--github-user-migration-retry-max",
        dest="migration_retry_max",
        type=int,
        default=DEFAULT_MAX_USER_MIGRATION_RETRY,
        help=f"Attempts at creating the user migration (default: {DEFAULT_MAX_USER_MIGRATION_RETRY})",
    )
    parser.add_argument(
        "--github-list-user-migrations",
        action="store_true",
        dest="list_migrations",
        help="List available user migrations",
    )
    parser.add_argument(
        "--github-no-wait-for-user-migration",
        action="store_true",
        dest="no_migration_wait",
        help="Do not wait for the user migration to complete",
    )
    parser.add_argument(
        "--github-user-migration-poll-interval",
        dest="migration_poll_interval_s",
        type=float,
        default=60.0,
        help="Seconds between user migration status checks (default: 60)",
    )


def _validate_parsed_arguments(args) -> Tuple[str, Tuple[str, ...]]:
    """Validate and sanitize parsed arguments for security."""
    try:
        validated_backup_dir = SecurityValidator.validate_file_path(args.backup_dir)

        whitelist: List[str] = [
            ns.strip() for ns in args.namespace_whitelist.split(",") if ns.strip()
        ]
        for namespace in whitelist:
            SecurityValidator.validate_path_component(namespace, "Namespace")

        if args.max_concurrent_clones < 1:
            raise ValueError("max concurrent clones must be at least 1")
        if args.migration_retry_max < 1:
            raise ValueError("user migration retry max must be at least 1")
        if args.migration_poll_interval_s < 0:
            raise ValueError("user migration poll interval must not be negative")
        if args.create_migration and args.list_migrations:
            raise ValueError("create and list user migrations are mutually exclusive")

        return validated_backup_dir, tuple(whitelist)

    except ValueError as e:
        Logger.security_event(
            "CONFIG_VALIDATION_FAILED", f"configuration validation failed: {e}"
        )
        Logger.error(f"configuration validation error: {e}")
        sys.exit(EXIT_MISSING_ARGUMENTS)


def _get_and_validate_credentials(service: Service) -> ProviderAuth:
    """Read the credentials for the selected service from the environment."""
    token_var, username_var = _CREDENTIAL_ENV[service]
    token = os.getenv(token_var)
    if not token:
        Logger.error(f"error: {service.value} credentials not provided (set {token_var})")
        sys.exit(EXIT_AUTH_ERROR)

    username = None
    if username_var:
        username = os.getenv(username_var)
        if not username:
            Logger.error(f"error: {service.value} username not provided (set {username_var})")
            sys.exit(EXIT_AUTH_ERROR)

    return ProviderAuth(token=token, username=username)


def parse_arguments(argv: Optional[List[str]] = None) -> Config:
    """Parse command line arguments and return configuration object."""
    parser = _create_argument_parser()
    _add_generic_arguments(parser)
    _add_provider_arguments(parser)
    _add_migration_arguments(parser)

    args = parser.parse_args(argv)
    Logger.verbose = args.verbose

    validated_backup_dir, whitelist = _validate_parsed_arguments(args)
    service = Service(args.service)
    auth = _get_and_validate_credentials(service)

    return Config(
        service=service,
        backup_dir=validated_backup_dir,
        auth=auth,
        host_url=args.host_url,
        ignore_private=args.ignore_private,
        ignore_fork=args.ignore_fork,
        use_https_clone=args.use_https_clone,
        bare=args.bare,
        dry_run=args.dry_run,
        namespace_whitelist=whitelist,
        max_concurrent_clones=args.max_concurrent_clones,
        github=GitHubOptions(repo_type=args.github_repo_type),
        gitlab=GitLabOptions(
            project_visibility=args.gitlab_project_visibility,
            project_membership_type=args.gitlab_project_membership_type,
        ),
        forgejo=ForgejoOptions(repo_type=args.forgejo_repo_type),
        migration=MigrationConfig(
            create=args.create_migration,
            retry=not args.no_migration_retry,
            retry_max=args.migration_retry_max,
            list=args.list_migrations,
            wait=not args.no_migration_wait,
            poll_interval_s=args.migration_poll_interval_s,
        ),
    )
