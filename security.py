#!/usr/bin/env python3
"""Security validation utilities for git-backup-all."""

import os
import re


class SecurityValidator:
    """Security validation utilities for input sanitization and validation."""

    MAX_PATH_COMPONENT_LENGTH = 255
    MAX_PATH_LENGTH = 4096

    @classmethod
    def validate_path_component(cls, value: str, label: str = "Path component") -> str:
        """Validate a provider-supplied name used as a single directory level."""
        if not value or not isinstance(value, str):
            raise ValueError(f"{label} must be a non-empty string")

        if len(value) > cls.MAX_PATH_COMPONENT_LENGTH:
            raise ValueError(
                f"{label} exceeds maximum length of {cls.MAX_PATH_COMPONENT_LENGTH}"
            )

        # Check for path traversal attempts
        if value in (".", "..") or "/" in value or "\\" in value:
            raise ValueError(f"{label} contains invalid path characters")

        # Check for null bytes and control characters
        if "\x00" in value or any(ord(c) < 32 for c in value):
            raise ValueError(f"{label} contains null bytes or control characters")

        return value

    @classmethod
    def validate_file_path(cls, path: str) -> str:
        """Validate file path for security."""
        if not path or not isinstance(path, str):
            raise ValueError("File path must be a non-empty string")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise ValueError(
                f"File path exceeds maximum length of {cls.MAX_PATH_LENGTH}"
            )

        # Check for null bytes
        if "\x00" in path:
            raise ValueError("File path contains null bytes")

        return os.path.normpath(os.path.expanduser(path))

    @classmethod
    def sanitize_for_logging(cls, message: str) -> str:
        """Sanitize message for safe logging by removing potential credentials."""
        if not message:
            return message

        # Patterns to redact
        patterns = [
            (r"https://[^:/@\s]+:[^@\s]+@", "https://[REDACTED]@"),  # URLs with credentials
            (r"token[=:\s]+[^\s]+", "token=[REDACTED]"),  # Token assignments
            (r"password[=:\s]+[^\s]+", "password=[REDACTED]"),  # Password assignments
            (r"glpat-[A-Za-z0-9_-]+", "[GITLAB_TOKEN_REDACTED]"),  # GitLab tokens
            (r"gh[pousr]_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # GitHub tokens
            (r"github_pat_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),  # Fine-grained PATs
            (r"ATBB[A-Za-z0-9_=-]+", "[BITBUCKET_TOKEN_REDACTED]"),  # Bitbucket app passwords
        ]

        sanitized = message
        for pattern, replacement in patterns:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

        return sanitized
