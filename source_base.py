#!/usr/bin/env python3
"""Common contract and pagination helper for hosting service adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from config import Config
from errors import PaginationLimitError
from logging_utils import Logger
from models import Repository
from utils import RateLimiter, resolve_clone_url

# fetch(cursor) -> (items on this page, cursor of the next page or a falsy sentinel)
PageFetcher = Callable[[Any], Tuple[Sequence[Any], Any]]


def paginate(
    fetch: PageFetcher, first_cursor: Any, max_pages: int, label: str = "listing"
) -> Iterator[Any]:
    """Yield items page by page until the provider reports no next page.

    Raises PaginationLimitError when more than ``max_pages`` pages are
    requested, which turns a provider that never returns the sentinel into
    an error instead of an endless loop.
    """
    cursor = first_cursor
    pages = 0
    while True:
        if pages >= max_pages:
            raise PaginationLimitError(
                f"{label}: provider still reports more pages after {max_pages} pages"
            )
        items, next_cursor = fetch(cursor)
        pages += 1
        Logger.debug(f"{label}: page {pages} returned {len(items)} items")
        for item in items:
            yield item
        if not next_cursor:
            return
        cursor = next_cursor


class RepositorySource(ABC):
    """Lists the repositories visible to the authenticated user on one service."""

    SERVICE_NAME = ""
    REQUESTS_PER_MINUTE = 60

    def __init__(self, config: Config) -> None:
        self.config = config
        self.rate_limiter = RateLimiter(
            max_requests_per_minute=self.REQUESTS_PER_MINUTE
        )

    @abstractmethod
    def connect(self) -> None:
        """Create the authenticated API client."""

    @abstractmethod
    def list_repositories(self) -> List[Repository]:
        """Return every repository matching the provider-native selectors."""

    def _paginate(self, fetch: PageFetcher, first_cursor: Any, label: str) -> Iterator[Any]:
        return paginate(fetch, first_cursor, self.config.max_pages, label)

    def _make_repository(
        self,
        full_name: str,
        name: str,
        namespace: str,
        private: bool,
        https_url: Optional[str],
        ssh_url: Optional[str],
    ) -> Optional[Repository]:
        """Build a Repository, or return None when no clone URL is usable."""
        clone_url = resolve_clone_url(
            https_url or "", ssh_url or "", self.config.use_https_clone
        )
        if not clone_url:
            Logger.warn(f"skipping {full_name}: no clone URL reported")
            return None
        if not name or not namespace:
            Logger.warn(f"skipping {full_name}: missing name or namespace")
            return None
        Logger.debug(f"found: {full_name}")
        return Repository(
            clone_url=clone_url,
            name=name,
            namespace=namespace,
            private=bool(private),
        )

    def _warn_fork_filter_unsupported(self) -> None:
        if self.config.ignore_fork:
            Logger.warn(
                f"{self.SERVICE_NAME} listings carry no reliable fork indicator; "
                "--ignore-fork has no effect for this service"
            )
