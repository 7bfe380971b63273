"""
Reference resolution between content nodes.

Turns configured reference fields on imported nodes into reference
nodes in their target collections and edges in the content graph.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Set, Tuple

from gitsource.core.config import PipelineConfig
from gitsource.core.exceptions import (
    CollectionNotFoundError,
    ConfigurationError,
    ReferenceResolutionError,
)
from gitsource.core.pipeline import PipelineStage, PipelineState
from gitsource.content.store import ContentNode, ContentStore

_REF_KEYS = {"type_name": "type_name", "typeName": "type_name", "create": "create", "route": "route"}


@dataclass(frozen=True)
class ReferenceField:
    """Target of a reference field."""

    type_name: str
    create: bool = False
    route: Optional[str] = None


class RefCacheKey(NamedTuple):
    """Identity of a reference node within one run."""

    type_name: str
    field_name: str
    value: str


def normalize_refs(
    refs: Dict[str, Any], default_type: str, slugify: Callable[[str], str]
) -> Dict[str, ReferenceField]:
    """
    Validate raw reference configuration.

    A string value names the target type; a mapping may set
    ``type_name``, ``create`` and ``route``. A missing type name
    defaults to ``default_type``. Created collections get a
    ``/<type-slug>/:slug`` route unless one is given.

    Args:
        refs: Field name -> raw reference configuration.
        default_type: Type name of the source's own collection.
        slugify: Slug function for default routes.

    Returns:
        Field name -> ReferenceField.

    Raises:
        ConfigurationError: If a reference is malformed.
    """
    normalized = {}

    for field_name, ref in refs.items():
        if isinstance(ref, ReferenceField):
            normalized[field_name] = ref
            continue

        if isinstance(ref, str):
            ref = {"type_name": ref}

        if not isinstance(ref, dict):
            raise ConfigurationError(
                f"Reference '{field_name}' must be a type name or a mapping",
                details={"field_name": field_name, "ref": ref},
            )

        unknown = set(ref) - set(_REF_KEYS)
        if unknown:
            raise ConfigurationError(
                f"Reference '{field_name}' has unknown keys: {', '.join(sorted(unknown))}",
                details={"field_name": field_name},
            )

        values = {_REF_KEYS[key]: value for key, value in ref.items()}
        type_name = values.get("type_name") or default_type
        create = bool(values.get("create", False))
        route = values.get("route")

        if create and not route:
            route = f"/{slugify(type_name)}/:slug"

        normalized[field_name] = ReferenceField(type_name=type_name, create=create, route=route)

    return normalized


class ReferenceResolver(PipelineStage):
    """
    Pipeline stage creating reference nodes and edges.

    Every run starts with its own cache, so a reference node is
    created at most once per (type name, field name, value) per run.
    """

    def __init__(self, config: PipelineConfig, store: ContentStore):
        super().__init__(config)
        self.store = store

    @property
    def name(self) -> str:
        return "references"

    @property
    def dependencies(self) -> List[str]:
        return ["import"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Resolve the reference fields of every imported node.

        Args:
            state: Pipeline state containing the import output.

        Returns:
            Tuple of (output, metrics).
        """
        import_data = state.data.get("import", {})
        nodes = import_data.get("nodes", [])
        refs = import_data.get("refs", {})

        cache: Set[RefCacheKey] = set()
        edges_before = self.store.edge_count

        for node in nodes:
            self.resolve_references(node, refs, cache)

        created = sorted(cache)
        metrics = {
            "reference_nodes_created": len(created),
            "edges_recorded": self.store.edge_count - edges_before,
        }
        return {"created": created}, metrics

    def resolve_references(
        self,
        node: ContentNode,
        refs: Dict[str, ReferenceField],
        cache: Set[RefCacheKey],
    ) -> None:
        """
        Resolve the configured reference fields of one node.

        Args:
            node: Imported node.
            refs: Normalized reference configuration.
            cache: Keys of reference nodes created so far in this run.

        Raises:
            ReferenceResolutionError: If a reference node can't be created.
        """
        for field_name, ref in refs.items():
            value = node.fields.get(field_name)
            if not value:
                continue

            values = value if isinstance(value, (list, tuple)) else [value]

            for item in values:
                if item is None or item == "":
                    continue
                item = str(item)

                # Another source may drop unreferenced nodes between the two calls
                with self.store.lock:
                    if ref.create:
                        self._add_ref_node(cache, ref.type_name, field_name, item)

                    self.store.add_edge(node, ref.type_name, item, field_name)

    def _add_ref_node(
        self, cache: Set[RefCacheKey], type_name: str, field_name: str, value: str
    ) -> None:
        key = RefCacheKey(type_name, field_name, value)
        if key in cache:
            return

        try:
            self.store.get_collection(type_name).add_node(value, title=value)
        except (CollectionNotFoundError, ConfigurationError) as e:
            raise ReferenceResolutionError(
                f"Can't create {type_name} node for {field_name}={value!r}: {e}",
                details={"type_name": type_name, "field_name": field_name, "value": value},
            )

        cache.add(key)
        self.logger.debug(f"Created reference node {type_name}:{value}")
