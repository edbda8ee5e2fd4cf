"""Configuration loading for mailcraft."""

from mailcraft.config.exceptions import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigFormatError,
    MailcraftError,
)
from mailcraft.config.loader import CONFIG_FILENAME, deep_merge, find_config_file, load_config, load_from_dict

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "MailcraftError",
    "deep_merge",
    "find_config_file",
    "load_config",
    "load_from_dict",
]
