"""Logging utilities for mailcraft.

Library modules log through ``logging.getLogger(__name__)`` and stay silent
until an application calls :func:`init_logging`, which attaches Rich handlers
to the ``mailcraft`` logger hierarchy.

Examples:
    >>> from mailcraft.logging import init_logging
    >>> log = init_logging(preset="dev")  # doctest: +SKIP
    >>> log.success("Message sent", message_id="<abc@example.com>")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from mailcraft.config import load_config
from mailcraft.logging.manager import PRESETS, SUCCESS_LEVEL, TRACE_LEVEL, LogManager

ROOT_LOGGER_NAME = "mailcraft"

_root_logger: LogManager | None = None


def init_logging(*, preset: str | None = None, config: Mapping[str, Any] | None = None) -> LogManager:
    """Configure logging for the ``mailcraft`` logger hierarchy.

    Handlers of the returned :class:`LogManager` are installed on the standard
    ``mailcraft`` logger so every ``mailcraft.*`` module logger emits through
    them.

    When neither ``preset`` nor ``config`` is given, the ``logger`` section
    of ``mailcraft.conf.yml`` is used.

    Args:
        preset: Logging preset (``dev``, ``prod`` or ``debug``).
        config: Explicit configuration merged over the preset.

    Returns:
        The configured root LogManager.
    """
    global _root_logger  # pylint: disable=global-statement

    if preset is None and config is None:
        section = dict(load_config().get("logger") or {})
        preset = section.pop("preset", None)
        config = section

    manager = LogManager(name=ROOT_LOGGER_NAME, preset=preset, config=config)

    std_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(std_logger.handlers):
        std_logger.removeHandler(handler)
    for handler in manager.handlers:
        std_logger.addHandler(handler)
    std_logger.setLevel(TRACE_LEVEL)
    std_logger.propagate = False

    _root_logger = manager
    return manager


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger inside the ``mailcraft`` namespace.

    ``get_logger(None)`` returns the root LogManager once
    :func:`init_logging` ran, the plain ``mailcraft`` logger otherwise.
    """
    if name is None:
        if _root_logger is not None:
            return _root_logger
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


__all__ = [
    "PRESETS",
    "SUCCESS_LEVEL",
    "TRACE_LEVEL",
    "LogManager",
    "get_logger",
    "init_logging",
]
