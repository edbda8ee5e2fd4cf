"""Rich-backed logger with presets and structured context.

``LogManager`` is a :class:`logging.Logger` subclass. The logger itself
always accepts every level down to TRACE; handlers decide what is emitted.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

from mailcraft.config.loader import deep_merge

#: Level below DEBUG used for wire-level transport details.
TRACE_LEVEL = 5

#: Level between INFO and WARNING for positive outcomes.
SUCCESS_LEVEL = 25

logging.addLevelName(TRACE_LEVEL, "TRACE")
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

DEFAULT_CONFIG: dict[str, Any] = {
    "output": "console",
    "console": {"level": "INFO", "tracebacks_show_locals": False},
    "file": {"level": "DEBUG", "file_path": "./logs/mailcraft.log"},
}

PRESETS: dict[str, dict[str, Any]] = {
    "dev": {"output": "console", "console": {"level": "DEBUG"}},
    "prod": {"output": "file", "file": {"level": "INFO"}},
    "debug": {
        "output": "both",
        "console": {"level": "TRACE", "tracebacks_show_locals": True},
        "file": {"level": "TRACE", "file_path": "./logs/mailcraft-debug.log"},
    },
}


def _parse_level(level: str | int) -> int:
    """Convert a level name (including TRACE/SUCCESS) to its numeric value."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def _format_context(context: Mapping[str, Any]) -> str:
    return " ".join(f"{key}={value!r}" for key, value in context.items())


class LogManager(logging.Logger):
    """Logger with Rich console output, optional file output and presets.

    Args:
        name: Logger name.
        preset: One of ``dev``, ``prod`` or ``debug``.
        config: Explicit configuration merged over the preset.

    Examples:
        >>> log = LogManager(name="demo", config={"console": {"level": "WARNING"}})
        >>> log.handlers[0].level == logging.WARNING
        True
        >>> log.info("Message built", to="user@example.com")  # doctest: +SKIP
    """

    def __init__(
        self,
        name: str = "mailcraft",
        *,
        preset: str | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(name, TRACE_LEVEL)
        resolved = dict(DEFAULT_CONFIG)
        if preset is not None:
            if preset not in PRESETS:
                raise ValueError(f"Unknown logging preset: {preset!r} (choose from {', '.join(PRESETS)})")
            resolved = deep_merge(resolved, PRESETS[preset])
        if config:
            resolved = deep_merge(resolved, config)
        self.config = resolved
        self._configure_handlers()

    def _configure_handlers(self) -> None:
        output = self.config.get("output", "console")
        if output in ("console", "both"):
            self.addHandler(self._console_handler(self.config.get("console", {})))
        if output in ("file", "both"):
            self.addHandler(self._file_handler(self.config.get("file", {})))

    @staticmethod
    def _console_handler(options: Mapping[str, Any]) -> logging.Handler:
        handler = RichHandler(
            console=Console(stderr=True),
            rich_tracebacks=True,
            tracebacks_show_locals=bool(options.get("tracebacks_show_locals", False)),
            show_path=False,
        )
        handler.setLevel(_parse_level(options.get("level", "INFO")))
        return handler

    @staticmethod
    def _file_handler(options: Mapping[str, Any]) -> logging.Handler:
        path = Path(options.get("file_path", DEFAULT_CONFIG["file"]["file_path"])).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handler.setLevel(_parse_level(options.get("level", "DEBUG")))
        return handler

    def _log(  # type: ignore[override]
        self,
        level: int,
        msg: object,
        args: Any,
        exc_info: Any = None,
        extra: Mapping[str, object] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **context: Any,
    ) -> None:
        if context:
            msg = f"{msg} | {_format_context(context)}"
        super()._log(level, msg, args, exc_info, extra, stack_info, stacklevel + 1)

    def trace(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log at TRACE level."""
        if self.isEnabledFor(TRACE_LEVEL):
            self._log(TRACE_LEVEL, msg, args, **kwargs)

    def success(self, msg: object, *args: Any, **kwargs: Any) -> None:
        """Log at SUCCESS level."""
        if self.isEnabledFor(SUCCESS_LEVEL):
            self._log(SUCCESS_LEVEL, msg, args, **kwargs)

    def traceback(self, exc: BaseException) -> None:
        """Log an exception with its Rich-formatted traceback."""
        self._log(logging.ERROR, str(exc), (), exc_info=(type(exc), exc, exc.__traceback__))


__all__ = ["PRESETS", "SUCCESS_LEVEL", "TRACE_LEVEL", "LogManager"]
