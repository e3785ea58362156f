"""Configuration, rendering and the command-line harness."""

from .config import (
    Config,
    ConfigError,
    DEFAULT_CONFIG,
    default_config,
    get_config_path,
    load_config,
    save_config,
)

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULT_CONFIG",
    "default_config",
    "get_config_path",
    "load_config",
    "save_config",
]
