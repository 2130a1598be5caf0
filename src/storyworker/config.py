"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for storyworker:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.storyworker/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Worker config** -- A single :class:`~storyworker.models.WorkerConfig`
  JSON file holding the version tag, origins, and shell asset list.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and the user config into the
  effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from storyworker.exceptions import ConfigError
from storyworker.models import WorkerConfig

_APP_NAME = "storyworker"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "storyworker.json"

ENV_VERSION = "STORYWORKER_VERSION"
ENV_API_ORIGIN = "STORYWORKER_API_ORIGIN"
ENV_APP_ORIGIN = "STORYWORKER_APP_ORIGIN"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports the XDG Base Directory spec."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/storyworker/`` (default
    ``~/.config/storyworker/``). Elsewhere: ``~/.storyworker/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the root directory of the versioned cache stores.

    On Linux/BSD: ``$XDG_CACHE_HOME/storyworker/`` (default
    ``~/.cache/storyworker/``). Elsewhere: ``~/.storyworker/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (local record queue, crash logs).

    On Linux/BSD: ``$XDG_DATA_HOME/storyworker/`` (default
    ``~/.local/share/storyworker/``). Elsewhere: ``~/.storyworker/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def resolve_cache_dir(config: WorkerConfig) -> Path:
    """Return the cache root, honouring ``config.cache.directory`` when set."""
    if config.cache.directory:
        path = Path(config.cache.directory).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path
    return get_cache_dir()


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX. On failure the temp file is
    removed and the original file is left untouched.
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
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Worker config ---


def _config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, label: str) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} at {path}: expected a JSON object")
    return data


def load_worker_config() -> WorkerConfig:
    """Load the user configuration.

    Returns:
        The deserialised :class:`~storyworker.models.WorkerConfig`, or a
        default instance when no file exists.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _config_path()
    if not path.is_file():
        return WorkerConfig()
    data = _read_json(path, "config")
    try:
        return WorkerConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_worker_config(config: WorkerConfig) -> None:
    """Persist the user configuration atomically."""
    data = config.model_dump(mode="json")
    _atomic_write(_config_path(), json.dumps(data, indent=2) + "\n")


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local overrides from ``./storyworker.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_json(path, "project config")


# --- Precedence resolution ---


def resolve_config(
    cli_version: Optional[str] = None,
    cli_api_origin: Optional[str] = None,
    cli_app_origin: Optional[str] = None,
) -> WorkerConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``STORYWORKER_VERSION``,
           ``STORYWORKER_API_ORIGIN``, ``STORYWORKER_APP_ORIGIN``)
        3. Project config (``./storyworker.json``)
        4. User config (``~/.config/storyworker/config.json``)
        5. Defaults
    """
    data = load_worker_config().model_dump(mode="json")

    project = load_project_config()
    if project:
        data.update(project)

    overrides = {
        "version": cli_version or os.environ.get(ENV_VERSION),
        "api_origin": cli_api_origin or os.environ.get(ENV_API_ORIGIN),
        "app_origin": cli_app_origin or os.environ.get(ENV_APP_ORIGIN),
    }
    data.update({key: value for key, value in overrides.items() if value})

    try:
        return WorkerConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
