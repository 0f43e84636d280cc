"""Configuration management for rsmap."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from rsmap.errors import CONFIG_001, CONFIG_002, CONFIG_003, ConfigError
from rsmap.relationships import DEFAULT_HOTSPOT_MIN_MODULES, DEFAULT_TYPE_STOPLIST

DEFAULT_CONFIG_FILENAME = "rsmap.yaml"
DEFAULT_OUTPUT_DIR = ".codebase-index"

logger = logging.getLogger(__name__)


class RelationshipsConfig(BaseModel):
    hotspot_min_modules: int = Field(default=DEFAULT_HOTSPOT_MIN_MODULES, ge=1)
    type_stoplist: list[str] = Field(default_factory=lambda: sorted(DEFAULT_TYPE_STOPLIST))


class RsmapConfig(BaseModel):
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)
    cache_file: str = "cache.json"
    annotations_file: str = "annotations.yaml"
    use_cargo_metadata: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    relationships: RelationshipsConfig = Field(default_factory=RelationshipsConfig)

    def resolve_output_dir(self, project_path: Path) -> Path:
        if self.output_dir.is_absolute():
            return self.output_dir
        return project_path / self.output_dir


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
    project_path: Path | None = None,
) -> RsmapConfig:
    """Load ``rsmap.yaml`` and apply ``overrides`` on top.

    Without an explicit path, ``rsmap.yaml`` in ``project_path`` (or the
    working directory) is used when present.
    """
    resolved_path = _resolve_config_path(config_path, project_path or Path.cwd())
    data: dict[str, Any] = {}
    if resolved_path is not None:
        logger.debug("Loading config from %s", resolved_path)
        data = _load_yaml(resolved_path)
    if overrides:
        data = _deep_update(data, overrides)
    try:
        return RsmapConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(CONFIG_003, f"Invalid configuration: {exc}") from exc


def serialize_config(config: RsmapConfig) -> dict[str, Any]:
    return config.model_dump(mode="json")


def _resolve_config_path(config_path: Path | None, base_dir: Path) -> Path | None:
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(CONFIG_001, f"Config file not found: {config_path}")
        return config_path
    default_path = base_dir / DEFAULT_CONFIG_FILENAME
    return default_path if default_path.exists() else None


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(CONFIG_002, f"Failed to read config file: {path}") from exc
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ConfigError(CONFIG_002, f"Invalid YAML in config file: {path}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(CONFIG_003, "Config file must define a mapping.")
    return data


def _deep_update(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = value
    return merged


__all__ = ["DEFAULT_CONFIG_FILENAME", "RelationshipsConfig", "RsmapConfig", "load_config", "serialize_config"]
