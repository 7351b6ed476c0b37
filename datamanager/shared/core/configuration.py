"""
Configuration Management System for the data manager

This module provides a centralized configuration system that supports a 4-tier
precedence hierarchy: environment → project → user → system defaults.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class EndpointConfig(BaseModel):
    """One remote endpoint exposed by the API proxy"""
    model_config = ConfigDict(extra='forbid')

    path: str = Field(description="Path relative to base_url, may contain {placeholders}")
    method: str = Field(default="GET", description="HTTP method")


def _default_endpoints() -> Dict[str, EndpointConfig]:
    return {
        "project": EndpointConfig(path="/project"),
        "users": EndpointConfig(path="/users"),
        "actions": EndpointConfig(path="/actions"),
        "tabs": EndpointConfig(path="/views"),
        "tasks": EndpointConfig(path="/tasks"),
        "task": EndpointConfig(path="/tasks/{taskID}"),
        "annotations": EndpointConfig(path="/annotations"),
        "annotation": EndpointConfig(path="/annotations/{annotationID}"),
        "invokeAction": EndpointConfig(path="/actions", method="POST"),
    }


class ApiConfig(BaseModel):
    """Backend API Configuration"""
    model_config = ConfigDict(extra='forbid')

    base_url: str = Field(default="http://localhost:8080/api", description="API root URL")
    timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="Request timeout (seconds)")
    endpoints: Dict[str, EndpointConfig] = Field(default_factory=_default_endpoints)


class PollingConfig(BaseModel):
    """Project metadata polling"""
    model_config = ConfigDict(extra='forbid')

    enabled: bool = Field(default=True, description="Poll project metadata in the background")
    interval: float = Field(default=10.0, ge=0.01, le=3600.0, description="Seconds between polls")


class StorageConfig(BaseModel):
    """User preference storage"""
    model_config = ConfigDict(extra='forbid')

    preferences_path: Optional[str] = Field(default=None, description="YAML file for user preferences, in-memory if unset")
    default_page_size: int = Field(default=30, ge=1, le=1000, description="Page size when none is stored")


class LoggingConfig(BaseModel):
    """Logging Configuration"""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="DEBUG", description="File log level")
    log_dir: str = Field(default="data/logs", description="Directory for rotating log files")


class SystemConfig(BaseModel):
    """Complete system configuration"""
    model_config = ConfigDict(extra='forbid')

    api: ApiConfig = Field(default_factory=ApiConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Metadata
    schema_version: int = Field(default=1, description="Configuration schema version")


# Environment variable -> dotted config path. Values stay strings and are
# coerced by SystemConfig validation.
ENV_OVERRIDES: Dict[str, str] = {
    'DM_API_BASE_URL': 'api.base_url',
    'DM_API_TIMEOUT': 'api.timeout',
    'DM_POLLING_ENABLED': 'polling.enabled',
    'DM_POLLING_INTERVAL': 'polling.interval',
    'DM_PREFERENCES_PATH': 'storage.preferences_path',
    'DM_DEFAULT_PAGE_SIZE': 'storage.default_page_size',
    'LOG_LEVEL': 'logging.level',
}

# File layers in ascending precedence; the environment sits on top
FILE_LAYERS = ("defaults", "user", "project")


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Merge updates into base in place, recursing into nested mappings."""
    for key, value in updates.items():
        if isinstance(base.get(key), dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class ConfigManager:
    """Resolves SystemConfig from config/{defaults,user,project}.yaml and the environment.

    File layers are read once and cached until reload_config().
    """

    def __init__(self, project_root: Optional[Path] = None):
        self.project_root = project_root or Path.cwd()
        self.config_dir = self.project_root / "config"
        self._layers: Dict[str, Dict[str, Any]] = {}

    def layer_path(self, layer: str) -> Path:
        return self.config_dir / f"{layer}.yaml"

    def _read_layer(self, layer: str) -> Dict[str, Any]:
        if layer not in self._layers:
            path = self.layer_path(layer)
            data: Any = {}
            if path.exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        data = yaml.safe_load(f) or {}
                except (OSError, yaml.YAMLError) as e:
                    logger.warning(f"Ignoring unreadable config layer {path}: {e}")

            if not isinstance(data, dict):
                logger.warning(f"Ignoring config layer {path}: expected a mapping")
                data = {}
            self._layers[layer] = data

        return self._layers[layer]

    @staticmethod
    def env_overrides() -> Dict[str, Any]:
        """Nested overrides from the DM_* / LOG_LEVEL environment variables."""
        overrides: Dict[str, Any] = {}
        for env_key, dotted in ENV_OVERRIDES.items():
            value = os.getenv(env_key)
            if value is None:
                continue
            section, key = dotted.split('.')
            overrides.setdefault(section, {})[key] = value
        return overrides

    def merged(self) -> Dict[str, Any]:
        """Raw merged mapping: built-ins → defaults → user → project → environment."""
        merged = SystemConfig().model_dump()
        for layer in FILE_LAYERS:
            deep_merge(merged, self._read_layer(layer))
        return deep_merge(merged, self.env_overrides())

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
        """Validated configuration.

        Raises:
            ValueError: In STRICT mode when the merged layers do not validate
        """
        try:
            return SystemConfig.model_validate(self.merged())
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return SystemConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Merge updates into config/project.yaml. Returns False if the write failed."""
        path = self.layer_path("project")
        self._layers.pop("project", None)
        data = deep_merge(dict(self._read_layer("project")), config_updates)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
        except OSError as e:
            logger.error(f"Failed to save {path}: {e}")
            return False
        finally:
            self._layers.pop("project", None)

        return True

    def reload_config(self) -> None:
        """Forget cached file layers."""
        self._layers.clear()


# Global instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(project_root: Optional[Path] = None) -> ConfigManager:
    """Shared manager; passing a root replaces it."""
    global _config_manager
    if _config_manager is None or project_root is not None:
        _config_manager = ConfigManager(project_root)
    return _config_manager


def get_config(validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
    return get_config_manager().get_config(validation_level)
