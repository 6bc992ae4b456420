# SPDX-License-Identifier: MIT
"""Configuration management for cache relay."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_CACHE_ROOT,
    DEFAULT_DB_PATH,
    DEFAULT_RETENTION_HOURS,
    DEFAULT_STALE_AFTER_SECONDS,
    DEFAULT_SYNC_INTERVAL_SECONDS,
    IDENTITY_SUFFIX,
)
from .markers import is_filesystem_root, marker_path


ENV_PREFIX = "CACHE_RELAY_"


class StoreConfig(BaseModel):
    """Configuration for the shared row store."""

    db_path: str = Field(DEFAULT_DB_PATH, description="SQLite file shared by instances")
    timeout: float = Field(5.0, gt=0, description="Busy timeout in seconds")
    enable_wal: bool = Field(True, description="Use WAL journal mode")


class CacheConfig(BaseModel):
    """Configuration for the local page cache."""

    root: str = Field(
        DEFAULT_CACHE_ROOT, min_length=1, description="Cache engine base directory"
    )
    deployment_root: str = Field(
        ".", description="Root that replayed filesCleared paths are relative to"
    )

    @field_validator("root", mode="after")
    @classmethod
    def reject_filesystem_root(cls, v: str) -> str:
        """Markers live next to the cache root, so it needs a parent."""
        if is_filesystem_root(v):
            raise ValueError("cache root must not be a filesystem root")
        return v


class SyncConfig(BaseModel):
    """Configuration for the reconciliation protocol."""

    interval_seconds: float = Field(
        DEFAULT_SYNC_INTERVAL_SECONDS,
        ge=0,
        description="Minimum time between reconciliation passes",
    )
    stale_after_seconds: float = Field(
        DEFAULT_STALE_AFTER_SECONDS,
        gt=0,
        description="Age after which a run marker is treated as abandoned",
    )
    retention_hours: float = Field(
        DEFAULT_RETENTION_HOURS, gt=0, description="Log rows older than this are pruned"
    )
    collapse_redundant: bool = Field(
        True, description="Reduce a batch to clearAll when it contains one"
    )
    identity_file: str | None = Field(
        None, description="Instance identity file (default: <cacheRoot>.instance-id)"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    store: StoreConfig = StoreConfig()
    cache: CacheConfig = CacheConfig()
    sync: SyncConfig = SyncConfig()

    def identity_path(self) -> Path:
        if self.sync.identity_file:
            return Path(self.sync.identity_file)
        return marker_path(Path(self.cache.root), IDENTITY_SUFFIX)


class ConfigManager:
    """Manages application configuration from files and environment."""

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path or self._find_config_file()
        self._config: AppConfig | None = None

    def _find_config_file(self) -> Path | None:
        """Find configuration file in standard locations."""
        search_paths = [
            Path.cwd() / ".cache-relay" / "config.yaml",
            Path.cwd() / "config" / "config.yaml",
            Path.cwd() / "config.yaml",
            Path.home() / ".config" / "cache-relay" / "config.yaml",
            Path("/etc/cache-relay/config.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def load_config(self) -> AppConfig:
        """Load configuration from file or create default."""
        if self._config is not None:
            return self._config

        default_config = self.get_default_config()

        if self.config_path and self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                file_config = yaml.safe_load(f) or {}
            config_data = self._deep_merge_configs(default_config, file_config)
        else:
            config_data = default_config

        config_data = self._apply_env_overrides(config_data)

        self._config = AppConfig(**config_data)
        return self._config

    def _deep_merge_configs(
        self, default_config: dict[str, Any], override_config: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge override config into default config, one section at a time.

        Example:
            Default: {"sync": {"interval_seconds": 30, "retention_hours": 24}}
            Override: {"sync": {"retention_hours": 48}}
            Result: {"sync": {"interval_seconds": 30, "retention_hours": 48}}
        """
        result = copy.deepcopy(default_config)

        for key, value in override_config.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key].update(value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        """Apply environment variable overrides to config."""
        # Example: CACHE_RELAY_SYNC_RETENTION_HOURS=48
        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            section, _, field = key[len(ENV_PREFIX) :].lower().partition("_")
            if section not in AppConfig.model_fields or not field:
                continue
            section_model = AppConfig.model_fields[section].annotation
            if field not in section_model.model_fields:  # type: ignore[union-attr]
                continue
            config_data.setdefault(section, {})[field] = value

        return config_data

    def get_complete_config_dict(self) -> dict[str, Any]:
        """Get the complete configuration as a dictionary for display."""
        config = self.load_config()
        return config.model_dump()

    def show_config(self) -> str:
        """Show the complete configuration in YAML format."""
        config_dict = self.get_complete_config_dict()
        return yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    def get_default_config(self) -> dict[str, Any]:
        """Get the default configuration as plain data."""
        return AppConfig().model_dump()

    def create_default_config(self, output_path: Path) -> None:
        """Write the default configuration to a YAML file."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.get_default_config(), f, default_flow_style=False, sort_keys=False
            )


# Global config manager instance with factory pattern
_config_manager_instance: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create the global config manager instance.

    Args:
        config_path: Optional path to config file (only used on first call)

    Returns:
        The global ConfigManager instance
    """
    global _config_manager_instance
    if _config_manager_instance is None:
        _config_manager_instance = ConfigManager(config_path)
    return _config_manager_instance


def set_config_manager(manager: ConfigManager) -> None:
    """Set the config manager instance (primarily for testing).

    Args:
        manager: ConfigManager instance to use globally
    """
    global _config_manager_instance
    _config_manager_instance = manager


def reset_config_manager() -> None:
    """Reset the config manager instance (primarily for testing)."""
    global _config_manager_instance
    _config_manager_instance = None
