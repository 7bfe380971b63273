"""
Content graph: store, node import, reference resolution and
content transformers.
"""

from gitsource.content.store import (
    Collection,
    ContentNode,
    ContentStore,
    FileInfo,
    ReferenceEdge,
)
from gitsource.content.importer import NodeImporter
from gitsource.content.references import (
    RefCacheKey,
    ReferenceField,
    ReferenceResolver,
    normalize_refs,
)
from gitsource.content.transformers import parse_front_matter, register_default_transformers

__all__ = [
    "Collection",
    "ContentNode",
    "ContentStore",
    "FileInfo",
    "ReferenceEdge",
    "NodeImporter",
    "RefCacheKey",
    "ReferenceField",
    "ReferenceResolver",
    "normalize_refs",
    "parse_front_matter",
    "register_default_transformers",
]
