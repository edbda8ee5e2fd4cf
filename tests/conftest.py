"""Shared pytest fixtures for the mailcraft test suite."""

from __future__ import annotations

# Disable Rich colors and force a wide terminal before Rich is imported
import os

os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"
os.environ["FORCE_COLOR"] = "0"
os.environ["COLUMNS"] = "200"
os.environ["LINES"] = "50"

import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from mailcraft.mail import Email

# pylint: disable=redefined-outer-name


@pytest.fixture
def email() -> Email:
    """Return a fresh builder for each test."""
    return Email()


@pytest.fixture
def ready_email(email: Email) -> Email:
    """Return a builder holding everything a build needs."""
    return (
        email.set_host_name("smtp.example.com")
        .set_from("sender@example.com")
        .add_to("recipient@example.com")
        .set_subject("Test Subject")
        .set_content("This is a test", "text/plain")
    )


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no user configuration."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("mailcraft.config.loader.USER_CONFIG_DIR", tmp_path / "no-user-config")
    return tmp_path


@pytest.fixture
def restore_mailcraft_logger() -> Generator[None, None, None]:
    """Undo handler and propagation changes made by ``init_logging``."""
    std_logger = logging.getLogger("mailcraft")
    handlers = list(std_logger.handlers)
    level = std_logger.level
    propagate = std_logger.propagate
    yield
    for handler in list(std_logger.handlers):
        std_logger.removeHandler(handler)
    for handler in handlers:
        std_logger.addHandler(handler)
    std_logger.setLevel(level)
    std_logger.propagate = propagate
