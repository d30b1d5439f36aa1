"""Tests for clipipe.config -- XDG paths, atomic writes, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from clipipe.config import (
    _atomic_write,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_user_config,
    resolve_config,
    save_user_config,
)
from clipipe.exceptions import ConfigError
from clipipe.models import PipelineConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("clipipe.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "clipipe"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("clipipe.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        assert get_config_dir() == custom / "clipipe"

    def test_cache_and_data_dirs(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("clipipe.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".cache" / "clipipe"
        assert get_data_dir() == tmp_path / ".local" / "share" / "clipipe"


class TestFallbackPaths:
    """macOS / Windows use a single dot-directory."""

    def test_fallback_layout(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("clipipe.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".clipipe"
        assert get_cache_dir() == tmp_path / ".clipipe" / "cache"
        assert get_data_dir() == tmp_path / ".clipipe" / "logs"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_writes_content(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "file.txt"
        _atomic_write(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_replaces_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        target.write_text("old")
        _atomic_write(target, "new")
        assert target.read_text() == "new"

    def test_failure_leaves_no_temp_file(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        with patch("clipipe.config.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                _atomic_write(target, "data")

        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# User config
# ---------------------------------------------------------------------------


class TestUserConfig:
    def test_missing_file_gives_defaults(self, isolated_config: Path) -> None:
        assert load_user_config() == PipelineConfig()

    def test_round_trip(self, isolated_config: Path) -> None:
        save_user_config(PipelineConfig(max_typo_distance=2, suggest_tool="my-suggest"))

        loaded = load_user_config()
        assert loaded.max_typo_distance == 2
        assert loaded.suggest_tool == "my-suggest"

    def test_invalid_json(self, isolated_config: Path) -> None:
        path = isolated_config / "config" / "clipipe" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid config"):
            load_user_config()

    def test_non_object_json(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "config" / "clipipe" / "config.json", [1, 2])

        with pytest.raises(ConfigError, match="expected a JSON object"):
            load_user_config()

    def test_invalid_value(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "config" / "clipipe" / "config.json", {"max_typo_distance": -1})

        with pytest.raises(ConfigError):
            load_user_config()


# ---------------------------------------------------------------------------
# Precedence resolution
# ---------------------------------------------------------------------------


class TestResolveConfig:
    def test_defaults(self, isolated_config: Path) -> None:
        assert resolve_config() == PipelineConfig()

    def test_file_over_defaults(self, isolated_config: Path) -> None:
        _write_json(isolated_config / "config" / "clipipe" / "config.json", {"debug_poll_interval": 0.1})

        assert resolve_config().debug_poll_interval == 0.1

    def test_env_over_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_json(isolated_config / "config" / "clipipe" / "config.json", {"max_typo_distance": 1})
        monkeypatch.setenv("CLIPIPE_MAX_TYPO_DISTANCE", "2")

        assert resolve_config().max_typo_distance == 2

    def test_overrides_over_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLIPIPE_SUGGEST_TOOL", "from-env")

        assert resolve_config(suggest_tool="explicit").suggest_tool == "explicit"
        assert resolve_config(suggest_tool=None).suggest_tool == "from-env"

    def test_invalid_env_value(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLIPIPE_DEBUG_POLL_INTERVAL", "soon")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            resolve_config()
