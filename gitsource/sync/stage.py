"""
Sync pipeline stage.

Resolves the mirror location for a source and runs the
synchronizer against it.
"""

from pathlib import Path
from typing import Any, Dict, Tuple

from gitsource.core.config import PipelineConfig, SourceOptions
from gitsource.core.pipeline import PipelineStage, PipelineState
from gitsource.sync.synchronizer import RepositorySynchronizer, SyncResult
from gitsource.utils.validation import validate_url


class SyncStage(PipelineStage):
    """
    Pipeline stage bringing a source's mirror up to date.

    The mirror lives at ``<base_dir>/<target>``. A sync that fails on
    the network completes with zero files so later stages run empty.
    """

    def __init__(
        self,
        config: PipelineConfig,
        options: SourceOptions,
        synchronizer: RepositorySynchronizer = None,
    ):
        super().__init__(config)
        self.options = options
        self.synchronizer = synchronizer or RepositorySynchronizer(config.sync)

    @property
    def name(self) -> str:
        return "sync"

    @property
    def base_dir(self) -> Path:
        return Path(self.options.base_dir or self.config.work_dir)

    @property
    def local_path(self) -> Path:
        return self.base_dir / self.options.resolve_target()

    def execute(self, state: PipelineState) -> Tuple[SyncResult, Dict[str, Any]]:
        """
        Sync the mirror and list the files selected by the source pattern.

        A remote that isn't a usable URL, such as a local repository
        that has gone away, degrades like an unreachable one.

        Args:
            state: Current pipeline state.

        Returns:
            Tuple of (sync_result, metrics).

        Raises:
            ConfigurationError: If credentials are missing or the mirror
                belongs to another remote.
        """
        is_valid, error = validate_url(self.options.remote)
        if is_valid:
            remote = self.options.to_remote(clone_depth=self.config.sync.clone_depth)
            self.logger.info(f"Syncing {remote.url} into {self.local_path}")
            result = self.synchronizer.sync(self.local_path, remote, self.options.pattern)
        else:
            self.logger.error(f"Can't sync {self.options.remote}: {error}")
            result = SyncResult(local_path=self.local_path.absolute(), error=error)

        metrics = {
            "files_discovered": len(result.files),
            "branch": result.branch,
            "degraded": not result.ok,
        }
        return result, metrics
