"""Configuration management for DepGraph."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from depgraph.exceptions import ConfigError
from depgraph.names import (
    DEFAULT_ENTRY_POINT_NAMES,
    DEFAULT_NOISE_NAMES,
    DEFAULT_TERMINAL_NAMES,
    DYNAMIC_NAME_INDICATORS,
    TEST_PATH_INDICATORS,
)

DEPGRAPH_DIR = ".depgraph"
CONFIG_FILE = "config.json"
GRAPH_DB_FILE = "graph.db"
EMBEDDINGS_FILE = "embeddings.json"


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"
    api_key_env: str = ""
    max_tokens: int = 1024
    temperature: float = 0.0
    base_url: str | None = None

    @property
    def api_key(self) -> str | None:
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        env_map = {
            "openai": "OPENAI_API_KEY",
            "anthropic": "ANTHROPIC_API_KEY",
        }
        env_var = env_map.get(self.provider, "")
        return os.environ.get(env_var)


class IndexerConfig(BaseModel):
    """Which files get scanned."""

    exclude_patterns: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            "__pycache__",
            ".git",
            ".depgraph",
            "target",
            "dist",
            "build",
            ".venv",
            "venv",
            ".env",
            "*.pyc",
            "*.min.js",
            "*.d.ts",
            "*.map",
            "*.lock",
        ]
    )
    max_file_size_kb: int = 500
    languages: list[str] = Field(default_factory=list)  # empty = all supported


class TraversalConfig(BaseModel):
    """Bounded BFS settings."""

    max_depth: int = 3
    # Index i is the cap at depth i; the last value covers every deeper level.
    per_depth_caps: list[int] = Field(default_factory=lambda: [50, 30, 15, 5])
    stop_at_terminal_names: bool = True
    terminal_names: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_TERMINAL_NAMES)
    )


class SearchConfig(BaseModel):
    """Graph search settings."""

    top_k: int = 10
    graph_depth: int = 2
    filter_generic: bool = True
    noise_names: list[str] = Field(default_factory=lambda: sorted(DEFAULT_NOISE_NAMES))


class DeadCodeConfig(BaseModel):
    """Dead code heuristics."""

    entry_point_names: list[str] = Field(
        default_factory=lambda: sorted(DEFAULT_ENTRY_POINT_NAMES)
    )
    test_path_indicators: list[str] = Field(
        default_factory=lambda: list(TEST_PATH_INDICATORS)
    )
    dynamic_name_indicators: list[str] = Field(
        default_factory=lambda: list(DYNAMIC_NAME_INDICATORS)
    )
    include_exported: bool = False
    llm_confidence_threshold: float = 0.8


class ContextConfig(BaseModel):
    """Defaults for gather_context."""

    depth: int = 2
    mode: str = "skeleton"  # skeleton | full
    format: str = "standard"  # standard | llm_edit
    max_tokens: int | None = None


class EmbeddingConfig(BaseModel):
    """Embedding backend configuration."""

    provider: str = "hashing"  # hashing | openai
    model: str = "text-embedding-3-small"
    dimensions: int = 256


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    llm: LLMConfig = Field(default_factory=LLMConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    traversal: TraversalConfig = Field(default_factory=TraversalConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    dead_code: DeadCodeConfig = Field(default_factory=DeadCodeConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .depgraph directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / DEPGRAPH_DIR).is_dir():
            return current
        current = current.parent
    if (current / DEPGRAPH_DIR).is_dir():
        return current
    return None


def get_depgraph_dir(root: Path) -> Path:
    """Get the .depgraph directory for a project root."""
    return root / DEPGRAPH_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .depgraph/config.json, or defaults if absent."""
    config_path = get_depgraph_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
            return ProjectConfig(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
    return ProjectConfig(name=root.name, root_path=str(root))


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .depgraph/config.json."""
    dg_dir = get_depgraph_dir(root)
    dg_dir.mkdir(parents=True, exist_ok=True)
    config_path = dg_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'search.top_k')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    try:
        return ProjectConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {e}") from e
