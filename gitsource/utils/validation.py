"""
Input validation utilities.

Provides validation functions for paths and remote URLs.
"""

import os
import re
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

# git@host:owner/repo(.git)
SCP_LIKE_PATTERN = re.compile(r"^[\w.-]+@[\w.-]+:[^/].*$")

REMOTE_SCHEMES = ("http", "https", "git", "ssh", "git+ssh")


def validate_path(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a local directory path.

    Args:
        path: Path to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not path:
        return False, "Path cannot be empty"

    path_obj = Path(path).expanduser()

    if not path_obj.exists():
        return False, f"Path does not exist: {path}"

    if not path_obj.is_dir():
        return False, f"Path is not a directory: {path}"

    if not os.access(path_obj, os.R_OK):
        return False, f"Path is not readable: {path}"

    return True, None


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a git remote URL.

    Accepts network URLs, scp-like ``user@host:path`` remotes,
    ``file://`` URLs and local repository directories.

    Args:
        url: URL to validate.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not url or not url.strip():
        return False, "URL cannot be empty"

    url = url.strip()

    if SCP_LIKE_PATTERN.match(url):
        return True, None

    parsed = urlparse(url)
    if parsed.scheme in REMOTE_SCHEMES:
        if parsed.netloc and parsed.path.strip("/"):
            return True, None
        return False, f"Remote URL needs a host and a repository path: {url}"

    if parsed.scheme == "file":
        if parsed.path:
            return True, None
        return False, f"Remote URL needs a repository path: {url}"

    if not parsed.scheme:
        is_valid, _ = validate_path(url)
        if is_valid:
            return True, None

    return False, f"Invalid repository URL: {url}"
