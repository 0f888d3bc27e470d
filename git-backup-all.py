#!/usr/bin/env python3
"""
git-backup-all - Back up every repository you can see on GitHub, GitLab,
Bitbucket or Forgejo to local disk.

Repositories are discovered through each service's API, filtered, and then
cloned (or fetched, when a local copy already exists) in parallel with the
git executable. For GitHub the tool can also create, list and wait for user
migrations (account data exports).
"""

from __future__ import annotations

import sys
from typing import NoReturn

from argument_parser import parse_arguments
from backup_orchestrator import BackupOrchestrator

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1


def main() -> NoReturn:
    if __name__ != "__main__":
        sys.exit(EXIT_EXECUTION_ERROR)

    cfg = parse_arguments()
    orchestrator = BackupOrchestrator(cfg)
    sys.exit(orchestrator.run())


if __name__ == "__main__":
    main()
