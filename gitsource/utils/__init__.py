"""
Utility functions and helpers.

Provides common utilities used across the codebase.
"""

from gitsource.utils.logging_config import setup_logging
from gitsource.utils.text import slugify
from gitsource.utils.validation import validate_path, validate_url

__all__ = [
    "setup_logging",
    "slugify",
    "validate_path",
    "validate_url",
]
