"""
Configuration management for relctl.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file (~/.relctl/config.yaml or --config path)
3. Environment variables (RELCTL_* prefix, __ for nesting)
4. Command-line arguments (highest precedence)
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from relctl.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("~/.relctl/config.yaml")
DEFAULT_ENV_PREFIX = "RELCTL_"

_VALID_PLATFORMS = {"linux", "darwin", "windows"}
_VALID_ARCHITECTURES = {"x86_64", "amd64", "arm64", "aarch64"}


def _normalize_platform_name(value: str) -> str:
    v_lower = value.strip().lower()
    if v_lower not in _VALID_PLATFORMS:
        raise ValueError(
            f"Invalid platform: {value}. Must be one of: {', '.join(sorted(_VALID_PLATFORMS))}"
        )
    return v_lower


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level.
        json_format: Emit JSON log lines instead of plain text.
        debug_mode: Enable extra diagnostic logging.
    """

    level: str = Field(
        default="warning",
        description="Log level: debug, info, warn, error",
    )
    json_format: bool = Field(
        default=True,
        description="Emit JSON-formatted log lines",
    )
    debug_mode: bool = Field(
        default=False,
        description="Log plain-text lines at debug level instead of JSON",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        if v_lower == "warn":
            return "warning"
        return v_lower


# =============================================================================
# Upgrade Configuration
# =============================================================================


class UpgradeConfig(BaseModel):
    """Self-upgrade configuration.

    Attributes:
        repository: Release repository in "owner/name" form.
        binary_name: Executable name inside release archives.
        api_url: Base URL of the release hosting API.
        timeout_seconds: Transport timeout for release queries and downloads.
        github_token: Optional token for authenticated API requests.
        override_executable: Explicit path of the executable to replace.
        platform: Platform override; None means detect from the host.
        architecture: Architecture override; None means detect from the host.
        upgrade_platforms: Platforms on which upgrade is supported.
        rollback_platforms: Platforms on which rollback is supported.
    """

    repository: str = Field(
        default="relctl/relctl",
        description="Release repository in 'owner/name' form",
    )
    binary_name: str = Field(
        default="relctl",
        description="Executable name inside release archives",
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the release hosting API",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Transport timeout in seconds",
    )
    github_token: str | None = Field(
        default=None,
        description="Token for authenticated API requests",
    )
    override_executable: str | None = Field(
        default=None,
        description="Path of the executable to replace (defaults to the running one)",
    )
    platform: str | None = Field(
        default=None,
        description="Platform override: linux, darwin, windows (default: detect)",
    )
    architecture: str | None = Field(
        default=None,
        description="Architecture override: x86_64, arm64 (default: detect)",
    )
    upgrade_platforms: list[str] = Field(
        default_factory=lambda: ["linux", "darwin"],
        description="Platforms on which self-upgrade is supported",
    )
    rollback_platforms: list[str] = Field(
        default_factory=lambda: ["linux", "darwin"],
        description="Platforms on which rollback is supported",
    )

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        """Validate the repository has an owner and a name."""
        owner, _, name = v.partition("/")
        if not owner or not name or "/" in name:
            raise ValueError(f"Invalid repository: {v}. Expected 'owner/name'")
        return v

    @field_validator("platform")
    @classmethod
    def validate_platform(cls, v: str | None) -> str | None:
        """Validate the platform override if present."""
        if v is None:
            return v
        return _normalize_platform_name(v)

    @field_validator("architecture")
    @classmethod
    def validate_architecture(cls, v: str | None) -> str | None:
        """Validate the architecture override if present."""
        if v is None:
            return v
        v_lower = v.strip().lower()
        if v_lower not in _VALID_ARCHITECTURES:
            raise ValueError(
                f"Invalid architecture: {v}. Must be one of: {', '.join(sorted(_VALID_ARCHITECTURES))}"
            )
        return v_lower

    @field_validator("upgrade_platforms", "rollback_platforms", mode="before")
    @classmethod
    def split_platform_list(cls, v: Any) -> Any:
        """Accept a single platform name where a list is expected."""
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("upgrade_platforms", "rollback_platforms")
    @classmethod
    def validate_platform_list(cls, v: list[str]) -> list[str]:
        """Validate each platform name in a support list."""
        return [_normalize_platform_name(item) for item in v]


# =============================================================================
# Main Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """
    Main application configuration model.

    Attributes:
        logging: Logging configuration.
        upgrade: Self-upgrade configuration.
    """

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )
    upgrade: UpgradeConfig = Field(
        default_factory=UpgradeConfig,
        description="Self-upgrade configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: The base dictionary.
        override: The dictionary with values to override.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Dictionary with configuration values.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"path": str(config_path)},
        )

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML in {config_path}: {e}",
            details={"path": str(config_path)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration file must contain a mapping: {config_path}",
            details={"path": str(config_path)},
        )
    return data


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to appropriate Python type.

    Args:
        value: String value from environment variable.

    Returns:
        Parsed value (bool, int, float, list, or string).
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if "," in value:
        return [_parse_env_value(item.strip()) for item in value.split(",")]

    return value


def _load_env_config(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Load configuration from environment variables.

    Environment variables are parsed with the following rules:
    - Prefix: RELCTL_ (configurable)
    - Nested keys: Double underscore (__) separator
    - Example: RELCTL_UPGRADE__TIMEOUT_SECONDS=60

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary with configuration values.
    """
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})

        current[parts[-1]] = _parse_env_value(value)

    return result


def cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """
    Translate parsed command-line arguments into configuration overrides.

    Args:
        args: Namespace produced by the relctl argument parser.

    Returns:
        Dictionary with configuration overrides.
    """
    result: dict[str, Any] = {}

    log_level = getattr(args, "log_level", None)
    if log_level:
        result["logging"] = {"level": log_level}

    if getattr(args, "debug", False):
        result.setdefault("logging", {})
        result["logging"]["debug_mode"] = True
        result["logging"]["level"] = "debug"

    executable = getattr(args, "executable", None)
    if executable:
        result.setdefault("upgrade", {})["override_executable"] = executable

    return result


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration from all sources with layered precedence.

    Args:
        config_path: Path to YAML configuration file. If None, the default
            path is used when it exists.
        env_prefix: Prefix for environment variables.
        overrides: Command-line overrides, applied last.

    Returns:
        Fully configured AppConfig instance.

    Raises:
        ConfigError: If the file is missing or the configuration is invalid.

    Example:
        >>> config = load_config()
        >>> config.upgrade.repository
        'relctl/relctl'
    """
    config_dict: dict[str, Any] = {}

    if config_path is None:
        default_path = DEFAULT_CONFIG_PATH.expanduser()
        if default_path.exists():
            config_path = default_path
    elif isinstance(config_path, str):
        config_path = Path(config_path).expanduser()

    if config_path is not None:
        config_dict = _deep_merge(config_dict, _load_yaml_config(config_path))

    config_dict = _deep_merge(config_dict, _load_env_config(env_prefix))

    if overrides:
        config_dict = _deep_merge(config_dict, overrides)

    try:
        return AppConfig(**config_dict)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration: {e}",
            details={"errors": e.errors(include_url=False)},
        ) from e
