"""
Repository synchronization: remotes, git operations, mirror state
machine and file discovery.
"""

from gitsource.sync.remote import CredentialedRemote, RemoteUrl, parse_remote_url
from gitsource.sync.git_handler import GitHandler, MirrorInfo
from gitsource.sync.enumerator import FileEnumerator
from gitsource.sync.synchronizer import (
    MirrorState,
    RepositorySynchronizer,
    SyncResult,
    mirror_lock,
)
from gitsource.sync.stage import SyncStage

__all__ = [
    "CredentialedRemote",
    "RemoteUrl",
    "parse_remote_url",
    "GitHandler",
    "MirrorInfo",
    "FileEnumerator",
    "MirrorState",
    "RepositorySynchronizer",
    "SyncResult",
    "mirror_lock",
    "SyncStage",
]
