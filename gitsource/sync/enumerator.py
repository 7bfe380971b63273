"""
File discovery inside a synced mirror.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Set

logger = logging.getLogger(__name__)


class FileEnumerator:
    """
    Lists files under a directory matching glob patterns.

    Patterns use ``**`` for any depth; a leading ``!`` excludes matches.
    Hidden paths are skipped unless a pattern names a dot segment, and
    git metadata is always skipped.
    """

    def list_files(self, root: Path, patterns: Iterable[str]) -> List[str]:
        """
        List files matching the patterns.

        Args:
            root: Directory to search.
            patterns: Inclusion patterns, with ``!`` prefixed exclusions.

        Returns:
            Sorted POSIX paths relative to ``root``.
        """
        root = Path(root)
        if not root.is_dir():
            return []

        includes = [p for p in patterns if not p.startswith("!")]
        excludes = [p[1:] for p in patterns if p.startswith("!")]

        matched: Set[str] = set()
        for pattern in includes:
            matched.update(self._glob(root, pattern))

        for pattern in excludes:
            matched.difference_update(self._glob(root, pattern))

        files = sorted(matched)
        logger.debug(f"Discovered {len(files)} files in {root}")
        return files

    def _glob(self, root: Path, pattern: str) -> Set[str]:
        include_hidden = any(
            segment.startswith(".") and segment not in (".", "..")
            for segment in pattern.split("/")
        )

        found = set()
        for path in root.glob(pattern):
            if not path.is_file():
                continue

            parts = path.relative_to(root).parts
            if ".git" in parts:
                continue
            if not include_hidden and any(part.startswith(".") for part in parts):
                continue

            found.add("/".join(parts))

        return found
