"""Shared helpers for the mailcraft CLI."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

console = Console()


def exit_error(message: str, code: int = 1) -> NoReturn:
    """Print an error message and exit with ``code``."""
    console.print(f"[red]Error:[/] {escape(message)}")
    raise typer.Exit(code=code)


__all__ = ["console", "exit_error"]
