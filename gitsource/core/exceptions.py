"""
Custom exceptions for the git content source.

Provides a hierarchy of exceptions for the sync, import and
reference stages, enabling precise error handling and clear
failure reporting.
"""


class GitSourceError(Exception):
    """Base exception for all git source errors."""

    def __init__(self, message: str, stage: str = None, details: dict = None):
        super().__init__(message)
        self.stage = stage
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class SyncError(GitSourceError):
    """Raised when a network git operation (clone, fetch) fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Sync", details=details)


class CorruptMirrorError(GitSourceError):
    """Raised when the local mirror's index or metadata is unreadable."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Local mirror is corrupt: {reason}",
            stage="Sync",
            details={"path": path, "reason": reason},
        )


class ConfigurationError(GitSourceError):
    """Raised when source options are invalid."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Configuration", details=details)


class RemoteMismatchError(ConfigurationError):
    """Raised when a mirror directory is bound to a different remote."""

    def __init__(self, path: str, expected: str, actual: str = None):
        super().__init__(
            f"Can't sync {expected} into {path}: "
            f"directory is bound to {actual or 'a non-git tree'}",
            details={"path": path, "expected": expected, "actual": actual},
        )


class NodeImportError(GitSourceError):
    """Raised when file import fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Import", details=details)


class FileReadError(NodeImportError):
    """Raised when a single file can't be read during import."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Failed to read {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class ReferenceResolutionError(GitSourceError):
    """Raised when reference resolution fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="References", details=details)


class CollectionNotFoundError(GitSourceError):
    """Raised when a collection is looked up before it was added."""

    def __init__(self, type_name: str):
        super().__init__(
            f"No collection registered for type: {type_name}",
            stage="Store",
            details={"type_name": type_name},
        )
