"""Configuration management for Code Search."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".code-search"
INDEXER_URL_ENV = "CODE_SEARCH_INDEXER_URL"


class IndexerConfig(BaseModel):
    """Configuration for the full-text search backend."""

    type: Literal["elasticsearch", "tantivy"] = Field(
        default="tantivy",
        description="Backend to use: 'elasticsearch' for a remote engine, 'tantivy' for an embedded index",
    )
    url: str = Field(
        default="http://localhost:9200", description="Elasticsearch base URL"
    )
    index_name: str = Field(
        default="code_search", description="Name of the Elasticsearch index"
    )
    index_dir: Path = Field(
        default=Path(CONFIG_DIR_NAME) / "index",
        description="Directory of the embedded Tantivy index",
    )
    username: Optional[str] = Field(
        default=None, description="Elasticsearch basic auth user"
    )
    password: Optional[str] = Field(
        default=None, description="Elasticsearch basic auth password"
    )
    timeout: float = Field(
        default=30.0, description="Backend request timeout in seconds"
    )
    fuzziness: str = Field(
        default="AUTO", description="Elasticsearch query_string fuzziness"
    )
    edit_distance: int = Field(
        default=1, description="Tantivy fuzzy term edit distance (0-2)"
    )
    language_facet_size: int = Field(
        default=10, description="Maximum number of language facets returned"
    )
    # With a language filter active, facets either count the whole result set
    # (siblings of the active language stay visible) or only the filtered one.
    facets_ignore_language_filter: bool = Field(
        default=True,
        description="Compute language facets from the query without the language filter",
    )

    @field_validator("index_dir", mode="before")
    @classmethod
    def convert_path(cls, v: Any) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        if isinstance(v, Path):
            return v
        raise ValueError(f"Expected str or Path, got {type(v)}")

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("edit_distance")
    @classmethod
    def validate_edit_distance(cls, v: int) -> int:
        if not (0 <= v <= 2):
            raise ValueError(f"edit_distance must be 0-2, got {v}")
        return v


class IndexingConfig(BaseModel):
    """Configuration for indexing behavior."""

    max_file_size: int = Field(
        default=1048576,
        description="Files larger than this many bytes are removed from the index instead of indexed",
    )


class SearchConfig(BaseModel):
    """Configuration for search result rendering."""

    context_lines: int = Field(
        default=2, description="Lines of context shown around matches"
    )
    page_size: int = Field(default=10, description="Results per page")

    @field_validator("context_lines", "page_size")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Expected a non-negative value, got {v}")
        return v


class Config(BaseModel):
    """Main configuration for Code Search."""

    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    DEFAULT_CONFIG_PATH = Path(CONFIG_DIR_NAME) / "config.json"

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Load configuration from file or create default.

        The CODE_SEARCH_INDEXER_URL environment variable overrides the
        configured Elasticsearch URL.
        """
        if self.config_path.exists():
            try:
                with open(self.config_path, "r") as f:
                    data = json.load(f)

                # Relative index directories are relative to the project root.
                indexer = data.get("indexer", {})
                if "index_dir" in indexer:
                    indexer["index_dir"] = str(
                        self._resolve_relative_path(indexer["index_dir"])
                    )

                self._config = Config(**data)
            except Exception as e:
                raise ValueError(f"Failed to load config from {self.config_path}: {e}")
        else:
            self._config = Config()

        env_url = os.environ.get(INDEXER_URL_ENV)
        if env_url:
            logger.debug(f"Using indexer URL from {INDEXER_URL_ENV}")
            self._config.indexer.url = env_url.rstrip("/")

        return self._config

    def save(self, config: Optional[Config] = None) -> None:
        """Save configuration to file."""
        if config is None:
            config = self._config

        if config is None:
            raise ValueError("No configuration to save")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = config.model_dump(mode="json")
        with open(self.config_path, "w") as f:
            json.dump(config_dict, f, indent=2)

    def get_config(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self.load()
        if self._config is None:
            raise RuntimeError("Failed to load configuration")
        return self._config

    def create_default_config(self) -> Config:
        """Create and save a default configuration."""
        config = Config()
        self._config = config
        self.save()
        return config

    @staticmethod
    def find_config_path(start_dir: Optional[Path] = None) -> Optional[Path]:
        """Find .code-search/config.json by walking up the directory tree.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            Path to config.json if found, None otherwise
        """
        current = start_dir or Path.cwd()

        for path in [current] + list(current.parents):
            config_path = path / CONFIG_DIR_NAME / "config.json"
            if config_path.exists():
                return config_path

        return None

    @classmethod
    def create_with_backtrack(cls, start_dir: Optional[Path] = None) -> "ConfigManager":
        """Create ConfigManager by finding config through directory backtracking.

        Args:
            start_dir: Directory to start searching from (default: current directory)

        Returns:
            ConfigManager instance with found config path or default path
        """
        config_path = cls.find_config_path(start_dir)
        if config_path is None:
            start = start_dir or Path.cwd()
            config_path = start / CONFIG_DIR_NAME / "config.json"
        return cls(config_path)

    def _resolve_relative_path(self, path_str: str) -> Path:
        """Resolve a path relative to the project root (parent of .code-search)."""
        path = Path(path_str)
        if path.is_absolute():
            return path
        project_root = self.config_path.parent.parent
        return (project_root / path).resolve()
