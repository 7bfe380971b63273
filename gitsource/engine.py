"""
Main engine for the git content source.

Provides a high-level interface for syncing a source's mirror and
importing it into a content store.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Union

from gitsource.core.config import Config, PipelineConfig, SourceOptions
from gitsource.core.exceptions import ConfigurationError
from gitsource.core.pipeline import Pipeline, PipelineState
from gitsource.content.importer import NodeImporter
from gitsource.content.references import ReferenceResolver
from gitsource.content.store import ContentStore
from gitsource.content.transformers import register_default_transformers
from gitsource.sync.stage import SyncStage
from gitsource.sync.synchronizer import RepositorySynchronizer

logger = logging.getLogger(__name__)


class GitSource:
    """
    One git repository imported as a collection of content nodes.

    Each ``run`` is a fresh import: sync, import, then references.
    """

    def __init__(
        self,
        options: Union[SourceOptions, Dict[str, Any]],
        store: ContentStore = None,
        config: PipelineConfig = None,
        synchronizer: RepositorySynchronizer = None,
    ):
        self.config = config or Config.get()
        self.options = (
            options if isinstance(options, SourceOptions)
            else SourceOptions.from_dict(options)
        )
        self.store = store or ContentStore()
        if "text/markdown" not in self.store.transformers:
            register_default_transformers(self.store)
        self.synchronizer = synchronizer
        self.pipeline = self._create_pipeline()

    def _create_pipeline(self) -> Pipeline:
        """Create and configure the import pipeline."""
        pipeline = Pipeline(self.config)

        pipeline.register_stage(SyncStage(self.config, self.options, self.synchronizer))
        pipeline.register_stage(NodeImporter(self.config, self.options, self.store))
        pipeline.register_stage(ReferenceResolver(self.config, self.store))

        pipeline.set_execution_order(["sync", "import", "references"])

        return pipeline

    def run(self) -> PipelineState:
        """
        Run one import without raising; failures are kept on the state.

        Returns:
            Final pipeline state.
        """
        return self.pipeline.run(self.options.remote)

    def load(self) -> PipelineState:
        """
        Run one import.

        Returns:
            Final pipeline state. A sync that failed on the network
            yields a completed state with zero nodes.

        Raises:
            ConfigurationError: If the source is misconfigured, including
                a mirror bound to another remote.
        """
        state = self.run()
        if isinstance(state.failure, ConfigurationError):
            raise state.failure
        return state


def load_sources(
    sources: Iterable[Union[SourceOptions, Dict[str, Any]]],
    store: ContentStore = None,
    config: PipelineConfig = None,
    max_workers: Optional[int] = 1,
) -> List[PipelineState]:
    """
    Import several sources into one store.

    A failing source is logged and does not stop the others. Sources
    must use distinct mirror directories to run in parallel.

    Args:
        sources: Source options.
        store: Shared content store; a new one is created if omitted.
        config: Optional configuration.
        max_workers: Sources imported at once.

    Returns:
        One pipeline state per source, in input order.
    """
    store = store or ContentStore()
    git_sources = [GitSource(options, store, config) for options in sources]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        states = list(executor.map(lambda source: source.run(), git_sources))

    for state in states:
        if state.failure is not None:
            logger.error(f"Source {state.source} failed: {state.failure}")

    return states
