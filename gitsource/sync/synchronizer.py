"""
Repository synchronization.

Brings a local mirror directory in line with a remote repository by
walking a small state machine: clone an empty directory, refresh a
matching working copy, delete and re-clone a corrupt one, and refuse
to touch a directory bound to another remote.
"""

import logging
import os
import threading
import weakref
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from gitsource.core.config import SyncConfig
from gitsource.core.exceptions import (
    CorruptMirrorError,
    RemoteMismatchError,
    SyncError,
)
from gitsource.sync.enumerator import FileEnumerator
from gitsource.sync.git_handler import GitHandler, MirrorInfo
from gitsource.sync.remote import CredentialedRemote, normalize_remote_url

logger = logging.getLogger(__name__)

_locks_guard = threading.Lock()
# Entries go away once no caller holds or waits on the lock
_mirror_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()


@contextmanager
def mirror_lock(path: Path) -> Iterator[None]:
    """Serialize work on one mirror directory within this process."""
    key = os.path.normcase(os.path.abspath(path))
    with _locks_guard:
        lock = _mirror_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _mirror_locks[key] = lock
    with lock:
        yield


class MirrorState(Enum):
    """Observed state of a mirror directory."""
    EMPTY = "empty"
    PRESENT = "present"
    CORRUPT = "corrupt"
    MISMATCH = "mismatch"
    SYNCED = "synced"


@dataclass
class SyncResult:
    """Outcome of one sync: the files of the mirror plus its git metadata."""

    local_path: Path
    files: List[str] = field(default_factory=list)
    branch: Optional[str] = None
    commit_hash: Optional[str] = None
    web_link: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "local_path": str(self.local_path),
            "files": self.files,
            "branch": self.branch,
            "commit_hash": self.commit_hash,
            "web_link": self.web_link,
            "error": self.error,
        }


class RepositorySynchronizer:
    """
    Keeps a local mirror in sync with a remote repository.

    ``sync`` is idempotent: a second call without remote changes leaves
    the mirror as it is and returns the same files. Network failures
    degrade to an empty file list; a directory bound to another remote
    raises RemoteMismatchError.
    """

    def __init__(
        self,
        config: SyncConfig = None,
        git_handler: GitHandler = None,
        enumerator: FileEnumerator = None,
    ):
        self.config = config or SyncConfig()
        self.git = git_handler or GitHandler(self.config)
        self.enumerator = enumerator or FileEnumerator()

    def sync(
        self,
        local_path: Path,
        remote: CredentialedRemote,
        patterns: Iterable[str] = ("**/*",),
    ) -> SyncResult:
        """
        Bring ``local_path`` in sync with ``remote`` and list its files.

        Args:
            local_path: Mirror directory.
            remote: Remote to mirror.
            patterns: Glob patterns selecting the files to list.

        Returns:
            SyncResult. ``files`` is empty and ``error`` set when the
            remote could not be reached.

        Raises:
            RemoteMismatchError: If the directory belongs to another remote.
        """
        local_path = Path(local_path).absolute()

        with mirror_lock(local_path):
            try:
                self._bring_in_sync(local_path, remote)
            except SyncError as e:
                logger.error(f"Sync of {remote.url} into {local_path} failed: {e}")
                return SyncResult(local_path=local_path, error=str(e))

            info = self.git.get_repository_info(local_path)
            files = self.enumerator.list_files(local_path, patterns)

        logger.info(
            f"Mirror {local_path} at {info.branch} "
            f"({(info.commit_hash or '')[:8]}): {len(files)} files"
        )

        return SyncResult(
            local_path=local_path,
            files=files,
            branch=info.branch,
            commit_hash=info.commit_hash,
            web_link=remote.parsed.web_link,
        )

    def observe(
        self, local_path: Path, remote: CredentialedRemote
    ) -> Tuple[MirrorState, MirrorInfo]:
        """
        Classify a mirror directory.

        Args:
            local_path: Mirror directory.
            remote: Remote the directory is expected to mirror.

        Returns:
            Tuple of (state, mirror info).
        """
        info = MirrorInfo(path=local_path)

        if not local_path.exists():
            return MirrorState.EMPTY, info

        if not local_path.is_dir():
            return MirrorState.MISMATCH, info

        if not any(local_path.iterdir()):
            return MirrorState.EMPTY, info

        if not (local_path / ".git").is_dir():
            return MirrorState.MISMATCH, info

        info.is_git_repo = True
        try:
            info.remote_url = self.git.get_remote_url(local_path)
        except CorruptMirrorError as e:
            logger.warning(f"{e}")
            return MirrorState.CORRUPT, info

        if info.remote_url is None or (
            normalize_remote_url(info.remote_url) != normalize_remote_url(remote.url)
        ):
            return MirrorState.MISMATCH, info

        try:
            self.git.check_working_copy(local_path)
        except CorruptMirrorError as e:
            logger.warning(f"{e}")
            return MirrorState.CORRUPT, info

        return MirrorState.PRESENT, info

    def _bring_in_sync(self, local_path: Path, remote: CredentialedRemote) -> None:
        state, info = self.observe(local_path, remote)
        logger.debug(f"Mirror {local_path} observed as {state.value}")

        recoveries = 0
        while state is not MirrorState.SYNCED:
            if state is MirrorState.CORRUPT:
                if recoveries >= self.config.max_recoveries:
                    raise SyncError(
                        f"Mirror {local_path} still corrupt after {recoveries} re-clones",
                        details={"path": str(local_path)},
                    )
                recoveries += 1

            state = self.transition(state, local_path, remote, info)

    def transition(
        self,
        state: MirrorState,
        local_path: Path,
        remote: CredentialedRemote,
        info: MirrorInfo = None,
    ) -> MirrorState:
        """
        Perform the action for ``state`` and return the next state.

        Raises:
            RemoteMismatchError: On MISMATCH; nothing on disk is changed.
            SyncError: If a network operation fails.
        """
        if state is MirrorState.MISMATCH:
            actual = info.remote_url if info else None
            raise RemoteMismatchError(str(local_path), remote.url, actual)

        if state is MirrorState.CORRUPT:
            logger.warning(f"Removing corrupt mirror {local_path} for a fresh clone")
            self.git.remove(local_path)
            return MirrorState.EMPTY

        if state is MirrorState.EMPTY:
            self._clone(local_path, remote)
            return MirrorState.SYNCED

        if state is MirrorState.PRESENT:
            try:
                self._refresh(local_path, remote)
            except CorruptMirrorError as e:
                logger.warning(f"{e}")
                return MirrorState.CORRUPT
            return MirrorState.SYNCED

        return state

    def _clone(self, local_path: Path, remote: CredentialedRemote) -> None:
        existed = local_path.exists()
        local_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self.git.clone(remote, local_path)
        except SyncError:
            # Leave the directory as it was found
            if local_path.exists():
                if existed:
                    for child in local_path.iterdir():
                        if child.is_dir() and not child.is_symlink():
                            self.git.remove(child)
                        else:
                            child.unlink()
                else:
                    self.git.remove(local_path)
            raise

    def _refresh(self, local_path: Path, remote: CredentialedRemote) -> None:
        if remote.branch:
            branch = remote.branch
        else:
            branch = self.git.default_branch(local_path, remote)
            logger.debug(f"Remote default branch of {remote.url} is {branch}")

        self.git.fetch(local_path, remote, branch)
        self.git.checkout(local_path, branch, track_default=remote.branch is None)
