"""
Remote repository descriptors.

Holds the connection details needed to talk to a remote repository
and parses remote URLs into host, owner and repository name.
"""

import base64
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Optional
from urllib.parse import urlparse

from gitsource.core.exceptions import ConfigurationError
from gitsource.utils.validation import validate_url

# git@host:owner/repo(.git)
SCP_PATTERN = re.compile(r"^(?:[\w.-]+@)?([\w.-]+):(?!//)(.+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class RemoteUrl:
    """Parsed parts of a remote URL."""

    host: Optional[str]
    owner: Optional[str]
    name: str

    @property
    def web_link(self) -> Optional[str]:
        """Browsable https link, for remotes that live on a host."""
        if not self.host:
            return None
        if self.owner:
            return f"https://{self.host}/{self.owner}/{self.name}"
        return f"https://{self.host}/{self.name}"


def parse_remote_url(url: str) -> RemoteUrl:
    """
    Parse a remote URL into host, owner and repository name.

    Args:
        url: Network URL, scp-like remote, file URL or local path.

    Returns:
        RemoteUrl. ``host`` is None for local remotes.
    """
    url = url.strip()

    scp_match = SCP_PATTERN.match(url)
    if scp_match and "://" not in url:
        host, path = scp_match.group(1), scp_match.group(2)
        return _from_path(host, path)

    parsed = urlparse(url)
    if parsed.scheme and parsed.scheme != "file":
        return _from_path(parsed.hostname, parsed.path)

    path = parsed.path if parsed.scheme == "file" else url
    name = _strip_git_suffix(PurePosixPath(path.rstrip("/")).name) or "repository"
    return RemoteUrl(host=None, owner=None, name=name)


def _from_path(host: Optional[str], path: str) -> RemoteUrl:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts:
        return RemoteUrl(host=host, owner=None, name="repository")
    name = _strip_git_suffix(parts[-1])
    owner = "/".join(parts[:-1]) or None
    return RemoteUrl(host=host, owner=owner, name=name)


def _strip_git_suffix(name: str) -> str:
    return name[:-4] if name.endswith(".git") else name


def normalize_remote_url(url: str) -> str:
    """Normalize a remote URL for comparison."""
    return url.strip().rstrip("/")


@dataclass(frozen=True)
class CredentialedRemote:
    """
    Connection details for a remote repository.

    ``branch`` None means the remote's default branch. Username and
    token are supplied together or not at all.
    """

    url: str
    branch: Optional[str] = None
    shallow_depth: int = 1
    username: Optional[str] = None
    token: Optional[str] = None
    proxy_url: Optional[str] = None

    def __post_init__(self):
        is_valid, error = validate_url(self.url)
        if not is_valid:
            raise ConfigurationError(error, details={"url": self.url})

        if bool(self.username) != bool(self.token):
            raise ConfigurationError(
                "Username and token must be supplied together",
                details={"url": self.url},
            )

        if self.shallow_depth < 0:
            raise ConfigurationError(
                f"Shallow depth must be >= 0, got {self.shallow_depth}"
            )

        if self.branch is not None and not self.branch.strip():
            raise ConfigurationError("Branch must not be blank")

    def __repr__(self):
        # Keep tokens out of logs and tracebacks
        token = "***" if self.token else None
        return (
            f"CredentialedRemote(url={self.url!r}, branch={self.branch!r}, "
            f"shallow_depth={self.shallow_depth}, username={self.username!r}, "
            f"token={token!r}, proxy_url={self.proxy_url!r})"
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.token)

    @property
    def parsed(self) -> RemoteUrl:
        return parse_remote_url(self.url)

    def transport_options(self) -> List[str]:
        """
        Transient ``git -c`` options for network operations.

        These are passed on the command line only, so credentials and
        proxy settings are never written to the mirror's git config.
        """
        options = []
        if self.has_credentials:
            pair = f"{self.username}:{self.token}".encode("utf-8")
            encoded = base64.b64encode(pair).decode("ascii")
            options.extend(["-c", f"http.extraHeader=Authorization: Basic {encoded}"])
        if self.proxy_url:
            options.extend(["-c", f"http.proxy={self.proxy_url}"])
        return options
