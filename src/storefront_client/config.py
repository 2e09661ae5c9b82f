"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for storefront-client:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.storefront-client/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Settings file** -- A single :class:`~storefront_client.models.Settings`
  JSON file storing the API endpoint and the cache policy.
* **Precedence resolution** -- :func:`resolve_settings` merges CLI flags,
  the ``STOREFRONT_API_URL`` environment variable and the settings file
  into the effective configuration.  It runs once at startup; the resulting
  base endpoint is never changed while the process runs.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from storefront_client.exceptions import ConfigError
from storefront_client.models import Settings

_APP_NAME = "storefront-client"
_CONFIG_FILENAME = "config.json"

ENV_API_URL = "STOREFRONT_API_URL"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
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

    On Linux/BSD: ``$XDG_CONFIG_HOME/storefront-client/``.
    On macOS/Windows: ``~/.storefront-client/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (session store, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/storefront-client/``
    (default ``~/.local/share/storefront-client/``).
    On macOS/Windows: ``~/.storefront-client/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure the
    temp file is cleaned up and the original file is left untouched.
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
        fd = None  # prevent double-close below
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


# --- Settings file ---


def settings_path() -> Path:
    """Path to the settings file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_settings() -> Settings:
    """Load settings from the config directory.

    Returns:
        The stored :class:`~storefront_client.models.Settings`, or the
        defaults when no file exists yet.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            validation.
    """
    path = settings_path()
    if not path.is_file():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Settings.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid settings at {path}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist settings atomically to disk."""
    data = settings.model_dump(mode="json")
    _atomic_write(settings_path(), json.dumps(data, indent=2) + "\n")


def validate_base_url(url: str) -> str:
    """Check that *url* is an absolute http(s) URL and strip any trailing slash.

    Raises:
        ConfigError: If the URL has no scheme/host or uses another scheme.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigError(f"Invalid API base URL '{url}': {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigError(
            f"Invalid API base URL '{url}': expected an absolute http(s) URL"
        )
    return url.rstrip("/")


# --- Precedence resolution ---


def resolve_settings(cli_base_url: Optional[str] = None) -> Settings:
    """Resolve the effective settings.

    Precedence (high to low):
        1. CLI flag (``cli_base_url``)
        2. Environment variable ``STOREFRONT_API_URL``
        3. Settings file (``~/.config/storefront-client/config.json``)
        4. Defaults

    Returns:
        A fresh :class:`~storefront_client.models.Settings` instance.

    Raises:
        ConfigError: If the settings file is invalid or the resolved base URL
            is not an absolute http(s) URL.
    """
    settings = load_settings()

    env_url = os.environ.get(ENV_API_URL)
    if cli_base_url:
        settings.base_url = cli_base_url
    elif env_url:
        settings.base_url = env_url

    settings.base_url = validate_base_url(settings.base_url)
    return settings
