"""
Configuration management for jobimporter.

This module handles loading, validating, and saving configuration settings.
"""

from jobimporter.config.settings import (
    ConfigurationError,
    Settings,
    apply_options,
    load_config,
    parse_bool,
    save_config,
)

__all__ = [
    "Settings",
    "load_config",
    "save_config",
    "apply_options",
    "parse_bool",
    "ConfigurationError",
]
