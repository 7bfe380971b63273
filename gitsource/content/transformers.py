"""
Content transformers turning raw file content into node fields.
"""

import logging
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

FRONT_MATTER_DELIMITER = "---"


def parse_front_matter(content: str) -> Dict[str, Any]:
    """
    Extract YAML front matter from a markdown document.

    Args:
        content: Raw document text.

    Returns:
        Front matter fields; empty when the document has none or it
        is not a YAML mapping.
    """
    if not content.startswith(FRONT_MATTER_DELIMITER):
        return {}

    parts = content.split(FRONT_MATTER_DELIMITER, 2)
    if len(parts) < 3:
        return {}

    try:
        data = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring unparsable front matter: {e}")
        return {}

    if not isinstance(data, dict):
        return {}

    return {str(key): value for key, value in data.items()}


def register_default_transformers(store) -> None:
    """Register the built-in transformers on a content store."""
    store.add_transformer("text/markdown", parse_front_matter)
