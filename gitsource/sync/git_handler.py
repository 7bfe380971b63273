"""
Git operations handler for repository synchronization.

Drives the ``git`` command line client for cloning, fetching and
checking out mirrors, and reads metadata back from working copies.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from gitsource.core.config import SyncConfig
from gitsource.core.exceptions import CorruptMirrorError, SyncError
from gitsource.sync.remote import CredentialedRemote

logger = logging.getLogger(__name__)

# Timeout for local, non-network git commands (seconds)
LOCAL_TIMEOUT = 60


@dataclass
class MirrorInfo:
    """Git metadata of a local mirror."""

    path: Path
    is_git_repo: bool = False
    branch: Optional[str] = None
    remote_url: Optional[str] = None
    commit_hash: Optional[str] = None


class GitHandler:
    """
    Handles git operations for a mirror.

    Network operations (clone, fetch, ls-remote) raise SyncError on
    failure or timeout. Local operations that fail on an existing
    working copy raise CorruptMirrorError.
    """

    def __init__(self, config: SyncConfig):
        self.config = config
        self._git_available = self._check_git_available()

    def _check_git_available(self) -> bool:
        """Check if git is available on the system."""
        try:
            result = subprocess.run(
                ["git", "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False

    def _env(self, repo_path: Optional[Path] = None) -> dict:
        env = os.environ.copy()
        # Fail instead of blocking on a credential prompt
        env["GIT_TERMINAL_PROMPT"] = "0"
        env["LC_ALL"] = "C"
        if repo_path is not None:
            # Never fall through to an enclosing repository
            env["GIT_DIR"] = str(repo_path / ".git")
            env["GIT_WORK_TREE"] = str(repo_path)
        else:
            env.pop("GIT_DIR", None)
            env.pop("GIT_WORK_TREE", None)
        return env

    def _run(
        self,
        args: List[str],
        cwd: Optional[Path] = None,
        remote: Optional[CredentialedRemote] = None,
        timeout: Optional[int] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run a git command.

        Args:
            args: Arguments after ``git``.
            cwd: Working directory.
            remote: Remote whose transport options apply (network calls only).
            timeout: Seconds before the call is abandoned.

        Raises:
            SyncError: If git is missing or the call times out.
        """
        if not self._git_available:
            raise SyncError("Git is not available on this system")

        transport = remote.transport_options() if remote else []
        cmd = ["git", *transport, *args]
        timeout = timeout or LOCAL_TIMEOUT

        logger.debug(f"Git command: git {' '.join(args)}")

        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                cwd=cwd,
                env=self._env(cwd),
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise SyncError(
                f"git {args[0]} timed out after {timeout} seconds",
                details={"args": args},
            )

    def _run_network(
        self, args: List[str], remote: CredentialedRemote, cwd: Optional[Path] = None
    ) -> str:
        result = self._run(args, cwd=cwd, remote=remote, timeout=self.config.git_timeout)
        if result.returncode != 0:
            raise SyncError(
                f"git {args[0]} failed: {result.stderr.strip()}",
                details={"url": remote.url, "stderr": result.stderr},
            )
        return result.stdout

    def _run_local(self, args: List[str], repo_path: Path) -> str:
        result = self._run(args, cwd=repo_path)
        if result.returncode != 0:
            raise CorruptMirrorError(
                str(repo_path), f"git {args[0]} failed: {result.stderr.strip()}"
            )
        return result.stdout

    def clone(self, remote: CredentialedRemote, target: Path) -> None:
        """
        Shallow-clone a remote into an absent or empty directory.

        Args:
            remote: Remote to clone.
            target: Destination directory.

        Raises:
            SyncError: If cloning fails.
        """
        args = ["clone"]

        depth = remote.shallow_depth
        if depth > 0:
            args.extend(["--depth", str(depth)])

        if remote.branch:
            args.extend(["--branch", remote.branch])

        args.extend(["--", remote.url, str(target)])

        logger.info(f"Cloning repository: {remote.url}")
        self._run_network(args, remote)
        logger.info(f"Repository cloned to: {target}")

    def default_branch(self, repo_path: Path, remote: CredentialedRemote) -> str:
        """
        Ask the remote which branch its HEAD points at.

        Raises:
            SyncError: If the remote can't be reached or has no symbolic HEAD.
        """
        output = self._run_network(["ls-remote", "--symref", "origin", "HEAD"], remote, repo_path)

        for line in output.splitlines():
            if line.startswith("ref: ") and line.endswith("HEAD"):
                ref = line[len("ref: "):].split("\t")[0].strip()
                if ref.startswith("refs/heads/"):
                    return ref[len("refs/heads/"):]

        raise SyncError(
            "Remote has no symbolic HEAD, set a branch explicitly",
            details={"url": remote.url},
        )

    def fetch(self, repo_path: Path, remote: CredentialedRemote, branch: str) -> None:
        """
        Fetch the latest state of one branch into ``origin/<branch>``.

        Raises:
            SyncError: If fetching fails.
        """
        args = ["fetch", "--prune", "--force"]
        if remote.shallow_depth > 0:
            args.extend(["--depth", str(remote.shallow_depth)])
        args.extend(["origin", f"+refs/heads/{branch}:refs/remotes/origin/{branch}"])

        logger.info(f"Fetching {branch} from {remote.url}")
        self._run_network(args, remote, repo_path)

    def checkout(self, repo_path: Path, branch: str, track_default: bool = False) -> None:
        """
        Point the working copy at the fetched tip of ``branch``.

        Discards local modifications; the mirror is never edited by hand.

        Raises:
            CorruptMirrorError: If the working copy can't be updated.
        """
        upstream = f"refs/remotes/origin/{branch}"
        self._run_local(["checkout", "--force", "-B", branch, upstream], repo_path)
        self._run_local(["reset", "--hard", upstream], repo_path)

        if track_default:
            self._run_local(
                ["symbolic-ref", "refs/remotes/origin/HEAD", upstream], repo_path
            )

    def get_remote_url(self, repo_path: Path) -> Optional[str]:
        """
        Read the URL recorded for ``origin`` from the mirror's config file.

        Reads the file directly, so it works on a working copy whose
        HEAD or index is damaged.

        Returns:
            The URL, or None if the config names no origin.

        Raises:
            CorruptMirrorError: If the config file is missing or unparsable.
        """
        config_file = repo_path / ".git" / "config"
        if not config_file.is_file():
            raise CorruptMirrorError(str(repo_path), "missing .git/config")

        result = self._run(
            ["config", "--file", str(config_file), "--get", "remote.origin.url"]
        )
        # Exit status 1 means the key is absent
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            raise CorruptMirrorError(
                str(repo_path), f"unreadable .git/config: {result.stderr.strip()}"
            )
        return result.stdout.strip() or None

    def check_working_copy(self, repo_path: Path) -> None:
        """
        Verify the index and HEAD of a working copy are readable.

        Raises:
            CorruptMirrorError: If git can't read the working copy.
        """
        self._run_local(["rev-parse", "--verify", "HEAD"], repo_path)
        self._run_local(["status", "--porcelain"], repo_path)

    def get_repository_info(self, repo_path: Path) -> MirrorInfo:
        """
        Extract git metadata from a mirror.

        Args:
            repo_path: Path to the mirror.

        Returns:
            MirrorInfo; fields that can't be read stay None.
        """
        info = MirrorInfo(path=repo_path)

        if not (repo_path / ".git").is_dir():
            return info

        info.is_git_repo = True
        try:
            info.remote_url = self.get_remote_url(repo_path)
        except CorruptMirrorError as e:
            logger.warning(f"{e}")

        result = self._run(["rev-parse", "HEAD"], cwd=repo_path)
        if result.returncode == 0:
            info.commit_hash = result.stdout.strip()

        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_path)
        if result.returncode == 0:
            info.branch = result.stdout.strip()

        return info

    def remove(self, repo_path: Path) -> None:
        """
        Delete a mirror directory.

        Args:
            repo_path: Path to the mirror.
        """
        if repo_path.exists():
            shutil.rmtree(repo_path)
            logger.debug(f"Removed mirror: {repo_path}")
