#!/usr/bin/env python3
"""Utility functions for git-backup-all."""

import threading
import time
from typing import List

from logging_utils import Logger


class RateLimiter:
    """Rate limiter to prevent abuse and respect API limits."""

    def __init__(self, max_requests_per_minute: int = 60):
        self.max_requests = max_requests_per_minute
        self.requests: List[float] = []
        self.lock = threading.Lock()

    def wait_if_needed(self, operation_type: str = "API") -> None:
        """Wait if necessary to respect rate limits."""
        current_time = time.time()

        with self.lock:
            self._clean_old_requests(current_time)
            if len(self.requests) >= self.max_requests:
                wait_time = 60 - (current_time - self.requests[0])
                if wait_time > 0:
                    Logger.security_event(
                        "RATE_LIMIT_HIT",
                        f"rate limit reached for {operation_type}, "
                        f"waiting {wait_time:.2f}s",
                    )
                    time.sleep(wait_time)
                    self._clean_old_requests(time.time())
            self.requests.append(current_time)

    def _clean_old_requests(self, current_time: float) -> None:
        """Remove requests older than 1 minute."""
        cutoff_time = current_time - 60
        self.requests = [
            req_time for req_time in self.requests if req_time > cutoff_time
        ]


def resolve_clone_url(https_url: str, ssh_url: str, prefer_https: bool) -> str:
    """Pick the clone URL for a repository.

    HTTPS wins when preferred and available, otherwise SSH, otherwise
    whatever is non-empty. An empty result means the repository cannot
    be cloned.
    """
    https_url = https_url or ""
    ssh_url = ssh_url or ""
    if prefer_https and https_url:
        return https_url
    if ssh_url:
        return ssh_url
    return https_url
