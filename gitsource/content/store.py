"""
Content store data structures.

Collections of typed content nodes kept in a directed graph, with
reference fields stored as edges between nodes.
"""

import hashlib
import json
import logging
import mimetypes
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import networkx as nx

from gitsource.core.exceptions import CollectionNotFoundError, ConfigurationError
from gitsource.utils.text import slugify

logger = logging.getLogger(__name__)

Transformer = Callable[[str], Dict[str, Any]]


@dataclass
class FileInfo:
    """Where a node's file sits in the mirror."""

    extension: str
    directory: str
    path: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary."""
        return {
            "extension": self.extension,
            "directory": self.directory,
            "path": self.path,
            "name": self.name,
        }


@dataclass
class ContentNode:
    """
    Node in a collection.

    File nodes carry file info, MIME type, raw content and origin;
    reference nodes carry only an id and a title. Transformer output
    and other data live in ``fields``.
    """

    id: str
    type_name: str
    title: Optional[str] = None
    path: Optional[str] = None
    file_info: Optional[FileInfo] = None
    mime_type: Optional[str] = None
    content: Optional[str] = field(default=None, repr=False)
    origin: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return node_key(self.type_name, self.id)

    def to_dict(self, include_content: bool = False) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "type_name": self.type_name,
            "title": self.title,
            "path": self.path,
            "fields": self.fields,
        }
        if self.file_info is not None:
            data["file_info"] = self.file_info.to_dict()
            data["mime_type"] = self.mime_type
            data["origin"] = self.origin
        if include_content and self.content is not None:
            data["content"] = self.content
        return data


@dataclass
class ReferenceEdge:
    """Edge from a node's reference field to the node it names."""

    source: str
    target: str
    field_name: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary."""
        return {
            "source": self.source,
            "target": self.target,
            "field_name": self.field_name,
        }


def node_key(type_name: str, node_id: str) -> str:
    """Graph key of a node."""
    return f"{type_name}:{node_id}"


class Collection:
    """A named bucket of nodes of one type."""

    def __init__(self, store: "ContentStore", type_name: str, route: Optional[str] = None):
        self.store = store
        self.type_name = type_name
        self.route = route
        self._references: Dict[str, str] = {}
        self._nodes: Dict[str, ContentNode] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def references(self) -> Dict[str, str]:
        """Reference field name -> target type name."""
        return dict(self._references)

    def add_reference(self, field_name: str, type_name: str) -> None:
        """Declare that ``field_name`` on this collection's nodes links to ``type_name``."""
        self._references[field_name] = type_name

    def add_node(
        self,
        node_id: str,
        title: Optional[str] = None,
        path: Optional[str] = None,
        file_info: Optional[FileInfo] = None,
        mime_type: Optional[str] = None,
        content: Optional[str] = None,
        origin: Optional[str] = None,
        fields: Optional[Dict[str, Any]] = None,
    ) -> ContentNode:
        """
        Insert a node, or replace the node with the same id.

        Content of a MIME type with a registered transformer is parsed
        into fields; explicitly given fields win over parsed ones.

        Returns:
            The stored node.
        """
        node_fields: Dict[str, Any] = {}

        transformer = self.store.transformers.get(mime_type)
        if transformer is not None and content is not None:
            node_fields.update(transformer(content))

        node_fields.update(fields or {})

        if title is None and node_fields.get("title") is not None:
            title = str(node_fields["title"])

        node = ContentNode(
            id=str(node_id),
            type_name=self.type_name,
            title=title,
            path=path,
            file_info=file_info,
            mime_type=mime_type,
            content=content,
            origin=origin,
            fields=node_fields,
        )

        if node.path is None and self.route:
            node.path = self.resolve_route(node)

        with self.store._lock:
            self.store._insert(node)
            self._nodes[node.id] = node
        return node

    def get_node(self, node_id: str) -> Optional[ContentNode]:
        """Get a node by id."""
        return self._nodes.get(str(node_id))

    def nodes(self) -> List[ContentNode]:
        """All nodes of this collection."""
        return list(self._nodes.values())

    def clear(self, predicate: Optional[Callable[[ContentNode], bool]] = None) -> int:
        """
        Remove nodes and every edge touching them.

        Args:
            predicate: Selects the nodes to remove; all nodes when omitted.

        Returns:
            Number of nodes removed.
        """
        with self.store._lock:
            doomed = [
                node for node in self._nodes.values()
                if predicate is None or predicate(node)
            ]
            for node in doomed:
                del self._nodes[node.id]
                self.store._remove(node)
        return len(doomed)

    def resolve_route(self, node: ContentNode) -> str:
        """
        Fill a route template such as ``/tag/:slug`` for ``node``.

        Parameters resolve to the node's id, title, slug or a field
        value; every value is slugified.

        Raises:
            ConfigurationError: If the template names an unknown parameter.
        """
        params: Dict[str, Any] = {
            key: value for key, value in node.fields.items()
            if isinstance(value, (str, int, float))
        }
        params["id"] = node.id
        params["title"] = node.title or node.id
        params["slug"] = self.store.slugify(node.title or node.id)

        segments = []
        for segment in self.route.strip("/").split("/"):
            if segment.startswith(":"):
                name = segment[1:]
                if name not in params:
                    raise ConfigurationError(
                        f"Route {self.route} needs :{name}, which node {node.id} lacks",
                        details={"route": self.route, "param": name},
                    )
                segment = self.store.slugify(str(params[name]))
            if segment:
                segments.append(segment)

        return "/" + "/".join(segments)


class ContentStore:
    """
    Registry of collections backed by a NetworkX directed graph.

    Node keys are ``<type_name>:<id>``; reference edges carry the
    field name that produced them. Mutations are thread-safe.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._graph = nx.DiGraph()
        self._collections: Dict[str, Collection] = {}
        self._lock = threading.RLock()
        self.transformers: Dict[str, Transformer] = {}
        self.mime = mimetypes.MimeTypes()
        self.mime.add_type("text/markdown", ".md")
        self.mime.add_type("text/markdown", ".markdown")
        self.mime.add_type("text/yaml", ".yml")
        self.mime.add_type("text/yaml", ".yaml")

    @property
    def lock(self):
        """Lock guarding the graph; hold it to make several mutations atomic."""
        return self._lock

    @property
    def node_count(self) -> int:
        """Number of nodes in the store."""
        return self._graph.number_of_nodes()

    @property
    def edge_count(self) -> int:
        """Number of reference edges in the store."""
        return self._graph.number_of_edges()

    def add_collection(self, type_name: str, route: Optional[str] = None) -> Collection:
        """
        Register a collection, or return the existing one.

        A route given for an existing collection without one is adopted.
        """
        with self._lock:
            collection = self._collections.get(type_name)
            if collection is None:
                collection = Collection(self, type_name, route)
                self._collections[type_name] = collection
                logger.debug(f"Added collection: {type_name}")
            elif route and not collection.route:
                collection.route = route
            return collection

    def get_collection(self, type_name: str) -> Collection:
        """
        Look up a registered collection.

        Raises:
            CollectionNotFoundError: If no collection has that type name.
        """
        collection = self._collections.get(type_name)
        if collection is None:
            raise CollectionNotFoundError(type_name)
        return collection

    def has_collection(self, type_name: str) -> bool:
        return type_name in self._collections

    def collections(self) -> List[Collection]:
        return list(self._collections.values())

    def add_transformer(self, mime_type: str, transformer: Transformer) -> None:
        """Parse content of ``mime_type`` into node fields with ``transformer``."""
        self.transformers[mime_type] = transformer

    def slugify(self, text: str) -> str:
        return slugify(text)

    def make_uid(self, text: str) -> str:
        """Stable identifier for a string."""
        return hashlib.md5(text.encode("utf-8")).hexdigest()

    def lookup_mime(self, filename: str) -> Optional[str]:
        """MIME type for a file name, or None if unknown."""
        mime_type, _ = self.mime.guess_type(filename, strict=False)
        return mime_type

    def _insert(self, node: ContentNode) -> None:
        with self._lock:
            self._graph.add_node(node.key, node=node)

    def _remove(self, node: ContentNode) -> None:
        with self._lock:
            if node.key in self._graph:
                self._graph.remove_node(node.key)

    def drop_orphans(self, nodes: Iterable[ContentNode]) -> int:
        """
        Remove the reference nodes among ``nodes`` that nothing links to.

        File nodes are never removed.

        Returns:
            Number of nodes removed.
        """
        removed = 0
        with self._lock:
            for node in nodes:
                if node.file_info is not None or node.key not in self._graph:
                    continue
                if self._graph.in_degree(node.key) == 0:
                    collection = self.get_collection(node.type_name)
                    removed += collection.clear(lambda n, key=node.key: n.key == key)
        if removed:
            logger.debug(f"Dropped {removed} unreferenced nodes")
        return removed

    def get_node(self, type_name: str, node_id: str) -> Optional[ContentNode]:
        """Get a node by type name and id."""
        data = self._graph.nodes.get(node_key(type_name, str(node_id)))
        return data["node"] if data else None

    def add_edge(self, source: ContentNode, type_name: str, target_id: str, field_name: str) -> bool:
        """
        Link ``source`` to the node ``target_id`` of ``type_name``.

        Returns:
            False if either node is missing, True otherwise.
        """
        target = node_key(type_name, str(target_id))
        with self._lock:
            if source.key not in self._graph:
                logger.warning(f"Source node not found: {source.key}")
                return False
            if target not in self._graph:
                logger.debug(f"Reference target not found: {target}")
                return False
            self._graph.add_edge(source.key, target, field_name=field_name)
        return True

    def get_references(self, node: ContentNode) -> List[ContentNode]:
        """Nodes referenced by ``node``."""
        return [
            self._graph.nodes[key]["node"]
            for key in self._graph.successors(node.key)
        ]

    def get_referrers(self, node: ContentNode) -> List[ContentNode]:
        """Nodes referencing ``node``."""
        return [
            self._graph.nodes[key]["node"]
            for key in self._graph.predecessors(node.key)
        ]

    def iter_nodes(self) -> Iterator[ContentNode]:
        """Iterate over all nodes."""
        for _, data in self._graph.nodes(data=True):
            yield data["node"]

    def iter_edges(self) -> Iterator[ReferenceEdge]:
        """Iterate over all reference edges."""
        for source, target, data in self._graph.edges(data=True):
            yield ReferenceEdge(source=source, target=target, field_name=data["field_name"])

    def get_statistics(self) -> Dict[str, Any]:
        """Get store statistics."""
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "collections": {
                collection.type_name: len(collection)
                for collection in self._collections.values()
            },
        }

    def to_dict(self, include_content: bool = False) -> Dict[str, Any]:
        """Convert the store to a dictionary for serialization."""
        return {
            "name": self.name,
            "collections": [
                {
                    "type_name": collection.type_name,
                    "route": collection.route,
                    "references": collection.references,
                }
                for collection in self._collections.values()
            ],
            "nodes": [node.to_dict(include_content) for node in self.iter_nodes()],
            "edges": [edge.to_dict() for edge in self.iter_edges()],
            "statistics": self.get_statistics(),
        }

    def save(self, path: Path, include_content: bool = False) -> None:
        """
        Save the store to a JSON file.

        Args:
            path: Path to save the store.
            include_content: Whether to include raw file content.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.to_dict(include_content), f, indent=2, default=str)

        logger.info(f"Content store saved to {path}")
