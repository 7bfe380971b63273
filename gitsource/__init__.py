"""
Git Content Source.

Keeps a local mirror of a remote git repository in sync and imports
its tracked files into an addressable content graph with stable
identifiers, route paths and deduplicated references.
"""

__version__ = "1.0.0"
__author__ = "Git Content Source"
