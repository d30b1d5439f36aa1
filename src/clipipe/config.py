"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent state owned by clipipe:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.clipipe/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **User config** -- a single :class:`~clipipe.models.PipelineConfig` JSON
  file storing defaults for the built-in middleware.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  overrides, environment variables and the user config into the effective
  configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`); the suggestion-tool sentinel files in
:mod:`clipipe.suggest.registration` rely on it as well.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from clipipe.exceptions import ConfigError
from clipipe.models import PipelineConfig

_APP_NAME = "clipipe"
_CONFIG_FILENAME = "config.json"

_ENV_OVERRIDES = {
    "CLIPIPE_MAX_TYPO_DISTANCE": "max_typo_distance",
    "CLIPIPE_DEBUG_POLL_INTERVAL": "debug_poll_interval",
    "CLIPIPE_SUGGEST_TOOL": "suggest_tool",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/clipipe/`` (default ``~/.config/clipipe/``).
    On macOS/Windows: ``~/.clipipe/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the registration sentinel files. Cached data can be safely deleted
    at any time; the next run simply registers again.

    On Linux/BSD: ``$XDG_CACHE_HOME/clipipe/`` (default ``~/.cache/clipipe/``).
    On macOS/Windows: ``~/.clipipe/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/clipipe/`` (default ``~/.local/share/clipipe/``).
    On macOS/Windows: ``~/.clipipe/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- User config ---


def _user_config_path() -> Path:
    """Path to the user config file."""
    return get_config_dir() / _CONFIG_FILENAME


def _load_user_config_data() -> dict[str, Any]:
    path = _user_config_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config at {path}: expected a JSON object")
    return data


def load_user_config() -> PipelineConfig:
    """Load the user configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~clipipe.models.PipelineConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    data = _load_user_config_data()
    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {_user_config_path()}: {exc}") from exc


def save_user_config(config: PipelineConfig) -> None:
    """Persist the user configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json", exclude_none=True)
    _atomic_write(_user_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(**overrides: Any) -> PipelineConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. Explicit keyword overrides (``None`` values are ignored)
        2. Environment variables (``CLIPIPE_MAX_TYPO_DISTANCE``,
           ``CLIPIPE_DEBUG_POLL_INTERVAL``, ``CLIPIPE_SUGGEST_TOOL``)
        3. User config (``~/.config/clipipe/config.json``)
        4. Defaults

    Returns:
        The merged :class:`~clipipe.models.PipelineConfig`.

    Raises:
        ConfigError: If any layer supplies an invalid value.
    """
    # 4 + 3. Defaults, then the user file
    data = _load_user_config_data()

    # 2. Environment variables
    for env_var, field_name in _ENV_OVERRIDES.items():
        env_value = os.environ.get(env_var)
        if env_value:
            data[field_name] = env_value

    # 1. Explicit overrides (highest precedence)
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return PipelineConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
