"""Command line interface for mailcraft."""

from mailcraft.cli.app import app, main

__all__ = ["app", "main"]
