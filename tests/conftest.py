"""Shared test fixtures for clipipe.

Provides a captured console, isolated XDG directories, and resets of the
process-wide state clipipe keeps (current cultures, the registration memo,
the version cache). These fixtures are automatically discovered by pytest
and available to all test modules without explicit imports.
"""

from __future__ import annotations

import os
from io import StringIO
from pathlib import Path
from typing import Iterator

import pytest

from clipipe.culture import reset_culture
from clipipe.models import Command, Option
from clipipe.output import Console
from clipipe.pipeline.steps import resolve_version
from clipipe.suggest.registration import FeatureRegistration


class CapturedConsole(Console):
    """A :class:`Console` writing into two ``StringIO`` buffers."""

    def __init__(self) -> None:
        self.out = StringIO()
        self.err = StringIO()
        super().__init__(stdout=self.out, stderr=self.err, no_color=True)

    @property
    def stdout_text(self) -> str:
        return self.out.getvalue()

    @property
    def stderr_text(self) -> str:
        return self.err.getvalue()


# ---------------------------------------------------------------------------
# Auto-reset process-wide state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Start every test from the environment's culture and an empty memo."""
    for var in (
        "CLIPIPE_GLOBALIZATION_INVARIANT",
        "CLIPIPE_GLOBALIZATION_UIINVARIANT",
        "CLIPIPE_GLOBALIZATION_CULTURE",
        "CLIPIPE_GLOBALIZATION_UICULTURE",
        "CLIPIPE_MAX_TYPO_DISTANCE",
        "CLIPIPE_DEBUG_POLL_INTERVAL",
        "CLIPIPE_SUGGEST_TOOL",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("LANG", "C")
    monkeypatch.delenv("LC_ALL", raising=False)
    monkeypatch.delenv("LC_MESSAGES", raising=False)
    reset_culture()
    FeatureRegistration.reset_cache()
    resolve_version.cache_clear()
    yield
    reset_culture()
    FeatureRegistration.reset_cache()
    resolve_version.cache_clear()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or leave registration sentinels behind, and makes sure the
    suggestion tool cannot be found on PATH.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("PATH", str(tmp_path / "bin") + os.pathsep + os.environ.get("PATH", ""))
    monkeypatch.delenv("NO_COLOR", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Console and command fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def console() -> CapturedConsole:
    return CapturedConsole()


@pytest.fixture
def sample_command() -> Command:
    """A small tool: ``tool [--verbose] [--output <v>] {copy <source>|list}``."""
    copy = Command(name="copy", description="Copy files.", arguments=["source"], handler=lambda c: 0)
    listing = Command(name="list", aliases=["ls"], description="List files.", handler=lambda c: 0)
    return Command(
        name="tool",
        description="A sample tool.",
        options=[
            Option(name="--verbose", aliases=["-v"], description="Chatty output", is_global=True),
            Option(name="--output", aliases=["-o"], takes_value=True, description="Output file"),
        ],
        subcommands=[copy, listing],
        handler=lambda c: 0,
    )


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner for the ``clipipe`` admin command."""
    from typer.testing import CliRunner

    return CliRunner()
