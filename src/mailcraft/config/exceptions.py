"""Base exceptions shared by every mailcraft module.

Exception hierarchy::

    MailcraftError (root of all mailcraft errors)
        ConfigError (configuration loading problems)
            ConfigFileNotFoundError (explicit file is missing, also FileNotFoundError)
            ConfigFormatError (file cannot be parsed, also ValueError)
"""

from __future__ import annotations

from typing import Any


class MailcraftError(Exception):
    """Root exception for the mailcraft package.

    Attributes:
        message: Human-readable error message.
        details: Additional error context as key-value pairs.

    Examples:
        >>> raise MailcraftError("Something went wrong", details={"field": "to"})
        Traceback (most recent call last):
        ...
        mailcraft.config.exceptions.MailcraftError: Something went wrong
    """

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        """Initialize MailcraftError.

        Args:
            message: Human-readable error message.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(MailcraftError):
    """Base class for configuration loading errors."""


class ConfigFileNotFoundError(ConfigError, FileNotFoundError):
    """An explicitly requested configuration file does not exist."""


class ConfigFormatError(ConfigError, ValueError):
    """A configuration file could not be parsed or has the wrong shape."""


__all__ = [
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigFormatError",
    "MailcraftError",
]
