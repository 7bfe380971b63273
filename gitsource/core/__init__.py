"""
Core module containing pipeline orchestration, configuration, and base classes.
"""

from gitsource.core.config import Config, PipelineConfig, SourceOptions
from gitsource.core.pipeline import Pipeline, PipelineStage, PipelineState
from gitsource.core.exceptions import (
    GitSourceError,
    SyncError,
    CorruptMirrorError,
    ConfigurationError,
    RemoteMismatchError,
    NodeImportError,
    FileReadError,
    ReferenceResolutionError,
    CollectionNotFoundError,
)

__all__ = [
    "Config",
    "PipelineConfig",
    "SourceOptions",
    "Pipeline",
    "PipelineStage",
    "PipelineState",
    "GitSourceError",
    "SyncError",
    "CorruptMirrorError",
    "ConfigurationError",
    "RemoteMismatchError",
    "NodeImportError",
    "FileReadError",
    "ReferenceResolutionError",
    "CollectionNotFoundError",
]
