"""
Node import pipeline stage.

Turns the files of a synced mirror into content nodes with stable
identifiers, route paths and file metadata.
"""

import posixpath
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from gitsource.core.config import PipelineConfig, SourceOptions
from gitsource.core.exceptions import FileReadError
from gitsource.core.pipeline import PipelineStage, PipelineState
from gitsource.content.references import ReferenceField, normalize_refs
from gitsource.content.store import Collection, ContentNode, ContentStore, FileInfo


class NodeImporter(PipelineStage):
    """
    Pipeline stage importing mirror files as content nodes.

    Registers the source's collection and the collections of its
    created references, then reads files concurrently and adds one
    node per readable file. Each run first drops the nodes an earlier
    run imported from the same mirror, so files deleted upstream lose
    their nodes and edges. Nodes of other sources sharing the
    collection are kept.
    """

    def __init__(self, config: PipelineConfig, options: SourceOptions, store: ContentStore):
        super().__init__(config)
        self.import_config = config.importer
        self.options = options
        self.store = store
        self.collection: Optional[Collection] = None
        self.refs: Dict[str, ReferenceField] = {}

    @property
    def name(self) -> str:
        return "import"

    @property
    def dependencies(self) -> List[str]:
        return ["sync"]

    @property
    def base_dir(self) -> Path:
        return Path(self.options.base_dir or self.config.work_dir).absolute()

    @property
    def target(self) -> str:
        return self.options.resolve_target()

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Import the files listed by the sync stage.

        Args:
            state: Pipeline state containing the sync result.

        Returns:
            Tuple of (output, metrics).
        """
        sync_result = state.data["sync"]

        self.create_collections()
        removed = self.clear_source_nodes()
        nodes, failures = self._import_all(sync_result.files)

        output = {
            "nodes": nodes,
            "refs": self.refs,
            "failures": failures,
        }
        metrics = {
            "nodes_created": len(nodes),
            "nodes_removed": removed,
            "read_failures": len(failures),
        }
        return output, metrics

    def create_collections(self) -> Collection:
        """
        Register the source collection and its reference collections.

        Raises:
            ConfigurationError: If the reference configuration is invalid.
        """
        self.refs = normalize_refs(
            self.options.refs, self.options.type_name, self.store.slugify
        )

        self.collection = self.store.add_collection(
            self.options.type_name, route=self.options.route
        )

        for field_name, ref in self.refs.items():
            self.collection.add_reference(field_name, ref.type_name)
            if ref.create:
                self.store.add_collection(ref.type_name, route=ref.route)

        return self.collection

    def from_this_source(self, node: ContentNode) -> bool:
        """Whether ``node`` was imported from this source's mirror."""
        if node.origin is None:
            return False
        return Path(node.origin).is_relative_to(self.base_dir / self.target)

    def clear_source_nodes(self) -> int:
        """
        Remove the file nodes this source imported before.

        Their edges go with them, and created reference nodes left
        without any referrer are dropped too.

        Returns:
            Number of file nodes removed.
        """
        if self.collection is None:
            self.create_collections()

        created = {ref.type_name for ref in self.refs.values() if ref.create}

        with self.store.lock:
            stale = [node for node in self.collection.nodes() if self.from_this_source(node)]
            targets = [
                target
                for node in stale
                for target in self.store.get_references(node)
                if target.type_name in created
            ]
            removed = self.collection.clear(self.from_this_source)
            self.store.drop_orphans(targets)

        if removed:
            self.logger.info(f"Removed {removed} nodes from the previous import")
        return removed

    def import_files(self, files: Iterable[str]) -> List[ContentNode]:
        """
        Import files as nodes; order of the result is not significant.

        Args:
            files: Paths relative to the mirror.

        Returns:
            One node per readable file.
        """
        nodes, _ = self._import_all(files)
        return nodes

    def _import_all(self, files: Iterable[str]) -> Tuple[List[ContentNode], List[str]]:
        if self.collection is None:
            self.create_collections()

        nodes: List[ContentNode] = []
        failures: List[str] = []

        with ThreadPoolExecutor(max_workers=self.import_config.max_workers) as executor:
            futures = {executor.submit(self.create_node, file): file for file in files}

            for future in as_completed(futures):
                try:
                    nodes.append(future.result())
                except FileReadError as e:
                    if self.import_config.fail_on_read_error:
                        for pending in futures:
                            pending.cancel()
                        executor.shutdown(wait=True)
                        # An aborted import leaves none of its nodes behind
                        self.clear_source_nodes()
                        raise
                    self.logger.warning(f"Skipping file: {e}")
                    failures.append(futures[future])

        return nodes, sorted(failures)

    def create_node(self, file: str) -> ContentNode:
        """
        Read one file and add its node to the collection.

        Raises:
            FileReadError: If the file can't be read.
        """
        options = self.create_node_options(file)
        return self.collection.add_node(**options)

    def create_node_options(self, file: str) -> Dict[str, Any]:
        """
        Build the node for a mirror-relative file path.

        The id hashes ``<target>/<file>``, so it stays unique across
        sources sharing a collection. File info and the derived path
        use ``file`` alone and leave out the target directory.

        Args:
            file: POSIX path relative to the mirror.

        Returns:
            Keyword arguments for Collection.add_node.
        """
        origin = self.base_dir / self.target / file
        rel_path = posixpath.join(Path(self.target).as_posix(), file)

        directory, basename = posixpath.split(file)
        name, extension = posixpath.splitext(basename)

        try:
            content = origin.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise FileReadError(str(origin), e.strerror or str(e))

        return {
            "node_id": self.store.make_uid(rel_path),
            "path": self.create_path(directory, name),
            "file_info": FileInfo(
                extension=extension,
                directory=directory,
                path=file,
                name=name,
            ),
            "mime_type": self.resolve_mime_type(file, extension),
            "content": content,
            "origin": str(origin),
        }

    def resolve_mime_type(self, file: str, extension: str) -> str:
        mime_type = self.store.lookup_mime(file)
        if mime_type:
            return mime_type
        if extension:
            return f"application/x-{extension.lstrip('.')}"
        return "application/octet-stream"

    def create_path(self, directory: str, name: str) -> Optional[str]:
        """
        Derive the route path of a file.

        Directory segments and the file name are slugified; index files
        map to their directory. Sources with a route template get no
        derived path.

        Args:
            directory: Mirror-relative directory of the file. The
                target directory is not part of it, so a source's
                paths don't change when its mirror moves.
            name: File name without extension.

        Returns:
            Route path, or None when the collection's route applies.
        """
        if self.options.route:
            return None

        joined = posixpath.join(self.options.path_prefix or "/", directory)
        segments = [self.store.slugify(s) for s in joined.split("/") if s]

        if name not in self.options.index:
            segments.append(self.store.slugify(name))

        path = "/" + "/".join(s for s in segments if s)

        if self.import_config.trailing_slash and path != "/":
            path += "/"

        return path
