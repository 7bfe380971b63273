"""
Configuration management for the git content source.

Provides centralized configuration for the pipeline stages and the
per-source options with sensible defaults and validation.
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from gitsource.core.exceptions import ConfigurationError


@dataclass
class SyncConfig:
    """Configuration for repository synchronization."""

    # Clone depth for mirrors (0 = full clone)
    clone_depth: int = 1

    # Timeout for network git operations (seconds)
    git_timeout: int = 300

    # How many times a corrupt mirror is deleted and re-cloned per run
    max_recoveries: int = 1


@dataclass
class ImportConfig:
    """Configuration for node import."""

    # Worker threads for file reads (None = executor default)
    max_workers: Optional[int] = None

    # Append a trailing slash to derived route paths
    trailing_slash: bool = False

    # Abort the run on the first unreadable file instead of skipping it
    fail_on_read_error: bool = False


@dataclass
class PipelineConfig:
    """Master configuration combining all stage configurations."""

    sync: SyncConfig = field(default_factory=SyncConfig)
    importer: ImportConfig = field(default_factory=ImportConfig)

    # Enable verbose logging
    verbose: bool = False

    # Base directory for mirrors when a source sets no base_dir
    work_dir: str = "./data/repos"


@dataclass
class Credentials:
    """Username/token pair for private repositories."""

    username: Optional[str] = None
    token: Optional[str] = None

    def is_complete(self) -> bool:
        return bool(self.username and self.token)


# Accepted camelCase spellings of option keys
_OPTION_ALIASES = {
    "baseDir": "base_dir",
    "pathPrefix": "path_prefix",
    "typeName": "type_name",
    "privateRepo": "private_repo",
}


@dataclass
class SourceOptions:
    """Options for one git content source."""

    remote: str
    branch: Optional[str] = None
    target: Optional[str] = None
    pattern: List[str] = field(default_factory=lambda: ["**/*"])
    base_dir: Optional[str] = None
    route: Optional[str] = None
    path_prefix: Optional[str] = None
    index: List[str] = field(default_factory=lambda: ["index"])
    type_name: str = "GitNode"
    refs: Dict[str, Any] = field(default_factory=dict)
    private_repo: bool = False
    credentials: Credentials = field(default_factory=Credentials)
    proxy: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.pattern, str):
            self.pattern = [self.pattern]
        if isinstance(self.index, str):
            self.index = [self.index]
        if isinstance(self.credentials, dict):
            self.credentials = Credentials(**self.credentials)
        self.validate()

    def validate(self) -> None:
        """
        Validate the options.

        Raises:
            ConfigurationError: If an option is missing or malformed.
        """
        if not self.remote:
            raise ConfigurationError("Option 'remote' is required")

        if not self.pattern:
            raise ConfigurationError("Option 'pattern' must not be empty")

        if not self.type_name:
            raise ConfigurationError("Option 'type_name' must not be empty")

        if not isinstance(self.refs, dict):
            raise ConfigurationError(
                "Option 'refs' must be a mapping of field name to reference",
                details={"refs": self.refs},
            )

        if self.target and (Path(self.target).is_absolute() or ".." in Path(self.target).parts):
            raise ConfigurationError(
                f"Option 'target' must be a relative path inside base_dir: {self.target}"
            )

        creds = self.credentials
        if bool(creds.username) != bool(creds.token):
            raise ConfigurationError(
                "Credentials need both a username and a token"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceOptions":
        """
        Build options from a mapping.

        Args:
            data: Option values, in snake_case or camelCase.

        Returns:
            Validated SourceOptions.
        """
        known = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown source option: {key}")
            kwargs[name] = value

        if "remote" not in kwargs:
            raise ConfigurationError("Option 'remote' is required")

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization. Tokens are never written."""
        return {
            "remote": self.remote,
            "branch": self.branch,
            "target": self.target,
            "pattern": self.pattern,
            "base_dir": self.base_dir,
            "route": self.route,
            "path_prefix": self.path_prefix,
            "index": self.index,
            "type_name": self.type_name,
            "refs": self.refs,
            "private_repo": self.private_repo,
            "proxy": self.proxy,
        }

    def resolve_target(self) -> str:
        """Target subdirectory, defaulting to the repository name."""
        if self.target:
            return self.target

        from gitsource.sync.remote import parse_remote_url

        return parse_remote_url(self.remote).name

    def to_remote(self, clone_depth: int = 1):
        """
        Build the CredentialedRemote for these options.

        Args:
            clone_depth: Shallow depth for clone and fetch.

        Returns:
            CredentialedRemote carrying credentials only for private repos.
        """
        from gitsource.sync.remote import CredentialedRemote

        username = token = None
        if self.private_repo:
            if not self.credentials.is_complete():
                raise ConfigurationError(
                    "Private repositories need credentials.username and credentials.token",
                    details={"remote": self.remote},
                )
            username = self.credentials.username
            token = self.credentials.token

        return CredentialedRemote(
            url=self.remote,
            branch=self.branch,
            shallow_depth=clone_depth,
            username=username,
            token=token,
            proxy_url=self.proxy,
        )


class Config:
    """
    Central configuration manager providing access to all settings.

    Supports loading from environment variables and configuration files.
    """

    _instance: Optional["Config"] = None
    _config: PipelineConfig = None
    _sources: List[SourceOptions] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = PipelineConfig()
            cls._instance._sources = []
        return cls._instance

    @classmethod
    def get(cls) -> PipelineConfig:
        """Get the current pipeline configuration."""
        if cls._instance is None:
            cls()
        return cls._instance._config

    @classmethod
    def sources(cls) -> List[SourceOptions]:
        """Get the sources loaded from a configuration file."""
        if cls._instance is None:
            cls()
        return cls._instance._sources

    @classmethod
    def reset(cls) -> None:
        """Drop the loaded configuration."""
        cls._instance = None

    @classmethod
    def load_from_file(cls, config_path: str) -> PipelineConfig:
        """
        Load configuration from a JSON file.

        The file holds pipeline settings and an optional ``sources`` list
        of source options.

        Args:
            config_path: Path to the configuration file.

        Returns:
            Loaded PipelineConfig instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        instance = cls()
        instance._config = cls._dict_to_config(data)
        instance._sources = [
            SourceOptions.from_dict(source) for source in data.get("sources", [])
        ]
        return instance._config

    @classmethod
    def load_from_env(cls) -> PipelineConfig:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with GITSOURCE_. A ``.env`` file
        in the working directory is read first.

        Returns:
            PipelineConfig with environment overrides applied.
        """
        load_dotenv()

        instance = cls()
        config = instance._config

        if os.getenv("GITSOURCE_WORK_DIR"):
            config.work_dir = os.getenv("GITSOURCE_WORK_DIR")

        if os.getenv("GITSOURCE_CLONE_DEPTH"):
            config.sync.clone_depth = int(os.getenv("GITSOURCE_CLONE_DEPTH"))

        if os.getenv("GITSOURCE_GIT_TIMEOUT"):
            config.sync.git_timeout = int(os.getenv("GITSOURCE_GIT_TIMEOUT"))

        if os.getenv("GITSOURCE_TRAILING_SLASH"):
            config.importer.trailing_slash = (
                os.getenv("GITSOURCE_TRAILING_SLASH").lower() in ("true", "1", "yes")
            )

        if os.getenv("GITSOURCE_VERBOSE"):
            config.verbose = os.getenv("GITSOURCE_VERBOSE").lower() in ("true", "1", "yes")

        # Private repos without inline credentials take them from the environment
        username = os.getenv("GITSOURCE_USERNAME")
        token = os.getenv("GITSOURCE_TOKEN")
        if username and token:
            for source in instance._sources:
                if source.private_repo and not source.credentials.is_complete():
                    source.credentials = Credentials(username=username, token=token)

        return config

    @staticmethod
    def _dict_to_config(data: dict) -> PipelineConfig:
        """Convert a dictionary to PipelineConfig."""
        config = PipelineConfig()

        if "sync" in data:
            config.sync = SyncConfig(**data["sync"])

        if "importer" in data:
            config.importer = ImportConfig(**data["importer"])

        if "verbose" in data:
            config.verbose = data["verbose"]

        if "work_dir" in data:
            config.work_dir = data["work_dir"]

        return config

    @classmethod
    def save_to_file(cls, config_path: str) -> None:
        """
        Save current configuration to a JSON file.

        Args:
            config_path: Path to save the configuration file.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config = cls.get()
        data = cls._config_to_dict(config)
        data["sources"] = [source.to_dict() for source in cls.sources()]

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _config_to_dict(config: PipelineConfig) -> dict:
        """Convert PipelineConfig to a dictionary."""
        return {
            "sync": {
                "clone_depth": config.sync.clone_depth,
                "git_timeout": config.sync.git_timeout,
                "max_recoveries": config.sync.max_recoveries,
            },
            "importer": {
                "max_workers": config.importer.max_workers,
                "trailing_slash": config.importer.trailing_slash,
                "fail_on_read_error": config.importer.fail_on_read_error,
            },
            "verbose": config.verbose,
            "work_dir": config.work_dir,
        }
