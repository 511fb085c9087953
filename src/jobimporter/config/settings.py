"""
Configuration settings management for jobimporter.

This module handles loading, validating, and saving configuration settings
from YAML files with support for environment variable overrides and
command-line advanced options.

Configuration is loaded from ~/.jobimporter/config.yaml by default, with the
path overridable via the JOBIMPORTER_CONFIG environment variable.

Precedence (lowest to highest):
    defaults -> config file -> environment -> advanced options
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".jobimporter"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"

REGISTRY_FILE_NAME = "registry.sqlite"
JOBS_DIR_NAME = "jobs"

_TRUE_VALUES = {"1", "on", "true", "yes"}
_FALSE_VALUES = {"0", "off", "false", "no"}


@dataclass
class RegistryConfig:
    """Job registry settings."""

    # None means <data_dir>/registry.sqlite
    file: str | None = None


@dataclass
class JobsConfig:
    """Per-job execution store settings."""

    # None means <data_dir>/jobs
    data_dir: str | None = None


@dataclass
class Settings:
    """
    Complete jobimporter configuration settings.

    Attributes:
        data_dir: Directory holding the registry and job stores.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
        registry: Job registry settings.
        jobs: Per-job execution store settings.
        extra_options: Advanced options that no setting consumed.
    """

    data_dir: str = str(DEFAULT_CONFIG_DIR / "data")
    log_level: str = "WARNING"

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)

    extra_options: dict[str, str] = field(default_factory=dict)

    @property
    def registry_path(self) -> Path:
        """Resolved path of the registry database."""
        if self.registry.file:
            return Path(self.registry.file).expanduser()
        return Path(self.data_dir).expanduser() / REGISTRY_FILE_NAME

    @property
    def jobs_dir(self) -> Path:
        """Resolved directory for per-job execution stores."""
        if self.jobs.data_dir:
            return Path(self.jobs.data_dir).expanduser()
        return Path(self.data_dir).expanduser() / JOBS_DIR_NAME


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def parse_bool(value: str | bool | None, default: bool | None = None) -> bool:
    """
    Parse a boolean option value.

    Accepts true/false, yes/no, on/off and 1/0 in any case.

    Args:
        value: The value to parse.
        default: Returned for unrecognised values. If None, they raise.

    Returns:
        The parsed boolean.

    Raises:
        ValueError: If the value is not recognised and no default is given.
    """
    if isinstance(value, bool):
        return value
    text = (value or "").strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    if default is not None:
        return default
    raise ValueError(f"Invalid boolean value: {value!r}")


def get_config_path() -> Path:
    """
    Get the configuration file path.

    Returns the path from JOBIMPORTER_CONFIG environment variable if set,
    otherwise returns the default path (~/.jobimporter/config.yaml).
    """
    env_path = os.environ.get("JOBIMPORTER_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config(
    config_path: Path | None = None,
    options: dict[str, str] | None = None,
) -> Settings:
    """
    Load configuration from YAML file.

    Reads configuration from the specified path (or default if not provided),
    applies environment variable overrides, then advanced options, and
    validates the result.

    Args:
        config_path: Optional path to configuration file. If not provided,
                    uses JOBIMPORTER_CONFIG environment variable or default path.
        options: Advanced options from the command line (``key=value``).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If the configuration file cannot be read or
                          contains invalid settings.
    """
    if config_path is None:
        config_path = get_config_path()

    settings = Settings()

    if config_path.exists():
        try:
            with open(config_path) as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(
                f"Config file must contain a mapping: {config_path}"
            )

        settings = _apply_config_data(settings, config_data)

    settings = _apply_environment_overrides(settings)

    if options:
        settings = apply_options(settings, options)

    _validate_config(settings)

    return settings


def save_config(settings: Settings, config_path: Path | None = None) -> None:
    """
    Save configuration to YAML file.

    Raises:
        ConfigurationError: If the configuration cannot be written.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_data = _settings_to_dict(settings)

    try:
        with open(config_path, "w") as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write config file: {e}") from e


def apply_options(settings: Settings, options: dict[str, str]) -> Settings:
    """
    Apply command-line advanced options to settings.

    Recognised keys:
        server-datafolder: data directory
        registry-file: registry database path
        jobs-datafolder: directory for per-job stores
        log-level: logging verbosity

    Unrecognised keys are kept in ``settings.extra_options``.
    """
    option_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "server-datafolder": ("data_dir", str),
        "registry-file": ("registry.file", str),
        "jobs-datafolder": ("jobs.data_dir", str),
        "log-level": ("log_level", lambda x: x.upper()),
    }

    for key, value in options.items():
        normalized = key.strip().lower()
        if normalized in option_map:
            attr_path, converter = option_map[normalized]
            _set_nested_attr(settings, attr_path, converter(value))
        else:
            logger.debug(f"Ignoring unrecognized option: {key}")
            settings.extra_options[key] = value

    return settings


def _apply_config_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply configuration data from parsed YAML to settings."""
    main_data = _section(data, "jobimporter")

    if "data_dir" in main_data:
        settings.data_dir = str(main_data["data_dir"])
    if "log_level" in main_data:
        settings.log_level = str(main_data["log_level"]).upper()

    registry = _section(data, "registry")
    if registry.get("file"):
        settings.registry.file = str(registry["file"])

    jobs = _section(data, "jobs")
    if jobs.get("data_dir"):
        settings.jobs.data_dir = str(jobs["data_dir"])

    return settings


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a top-level config section, which must be a mapping if present."""
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Config section '{name}' must be a mapping")
    return section


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "JOBIMPORTER_DATA_DIR": ("data_dir", str),
        "JOBIMPORTER_LOG_LEVEL": ("log_level", lambda x: x.upper()),
        "JOBIMPORTER_REGISTRY_FILE": ("registry.file", str),
        "JOBIMPORTER_JOBS_DIR": ("jobs.data_dir", str),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_config(settings: Settings) -> None:
    """
    Validate configuration settings.

    Raises:
        ConfigurationError: If configuration is invalid.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    if settings.log_level not in valid_log_levels:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(sorted(valid_log_levels))}"
        )

    if not str(settings.data_dir).strip():
        raise ConfigurationError("data_dir must not be empty")


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert Settings instance to dictionary for YAML serialization."""
    return {
        "jobimporter": {
            "data_dir": settings.data_dir,
            "log_level": settings.log_level,
        },
        "registry": {
            "file": settings.registry.file,
        },
        "jobs": {
            "data_dir": settings.jobs.data_dir,
        },
    }
