"""YAML configuration loader for mailcraft.

The packaged ``mailcraft.conf.yml`` provides defaults. A user file found in
the working directory (or ``~/.config/mailcraft/``) is deep-merged on top.
Values are returned as :class:`box.Box` objects for attribute access.

Examples:
    >>> from mailcraft.config import load_config
    >>> config = load_config()  # doctest: +SKIP
    >>> config.mail.session.port  # doctest: +SKIP
    25
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from box import Box

from mailcraft.config.exceptions import ConfigFileNotFoundError, ConfigFormatError

log = logging.getLogger(__name__)

#: Configuration file name, both packaged and user side.
CONFIG_FILENAME = "mailcraft.conf.yml"

#: User-level configuration directory searched after the working directory.
USER_CONFIG_DIR = Path("~/.config/mailcraft")


def _read_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file into a mapping.

    Raises:
        ConfigFormatError: If the YAML is malformed or not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigFormatError(f"Invalid YAML in {path}: {e}", details={"path": str(path)}) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFormatError(
            f"Top-level YAML value in {path} must be a mapping, got {type(data).__name__}",
            details={"path": str(path)},
        )
    return data


def _load_default_config() -> dict[str, Any]:
    """Load the configuration file shipped with the package."""
    text = resources.files("mailcraft").joinpath(CONFIG_FILENAME).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    return dict(data)


def deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Nested mappings are merged key by key; any other value replaces the base.

    Examples:
        >>> deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3}})
        {'a': {'b': 1, 'c': 3}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def find_config_file(filename: str = CONFIG_FILENAME) -> Path | None:
    """Return the first user configuration file found, if any."""
    candidates = (Path.cwd() / filename, USER_CONFIG_DIR.expanduser() / filename)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path | None = None, *, defaults: bool = True) -> Box:
    """Load the mailcraft configuration.

    Args:
        path: Explicit configuration file. When omitted the working
            directory and the user configuration directory are searched.
        defaults: Merge the user file over the packaged defaults.

    Returns:
        The merged configuration as a :class:`box.Box`.

    Raises:
        ConfigFileNotFoundError: If ``path`` is given but does not exist.
        ConfigFormatError: If a file cannot be parsed.
    """
    data: dict[str, Any] = _load_default_config() if defaults else {}

    if path is not None:
        source: Path | None = Path(path).expanduser()
        if not source.is_file():
            raise ConfigFileNotFoundError(f"Config file not found: {source}", details={"path": str(source)})
    else:
        source = find_config_file()

    if source is not None:
        log.debug("Loading configuration from %s", source)
        data = deep_merge(data, _read_yaml(source))

    return Box(data, default_box=False)


def load_from_dict(data: Mapping[str, Any], *, defaults: bool = True) -> Box:
    """Build a configuration from an in-memory mapping.

    Examples:
        >>> cfg = load_from_dict({"mail": {"session": {"host": "smtp.example.com"}}})
        >>> cfg.mail.session.host
        'smtp.example.com'
    """
    base = _load_default_config() if defaults else {}
    return Box(deep_merge(base, data), default_box=False)


__all__ = [
    "CONFIG_FILENAME",
    "deep_merge",
    "find_config_file",
    "load_config",
    "load_from_dict",
]
