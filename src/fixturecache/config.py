"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for fixturecache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.fixturecache/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~fixturecache.models.GlobalConfig`
  JSON file holding store defaults (root, error retry cap, header names).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the global config file into the effective
  :class:`~fixturecache.models.StoreConfig`.
* **Store construction** -- :func:`build_store` turns a resolved config into
  a :class:`~fixturecache.cache.store.CacheStore`.

All config writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`).
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from fixturecache.exceptions import ConfigError
from fixturecache.models import GlobalConfig, StoreConfig

if TYPE_CHECKING:
    from fixturecache.cache.store import CacheStore
    from fixturecache.client.transport import Transport

_APP_NAME = "fixturecache"
_CONFIG_FILENAME = "config.json"

ENV_ROOT = "FIXTURECACHE_ROOT"
ENV_MAX_ERROR_VERSION = "FIXTURECACHE_MAX_ERROR_VERSION"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/fixturecache/`` (default ``~/.config/fixturecache/``).
    On macOS/Windows: ``~/.fixturecache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the default cache root, creating it if necessary.

    Used when neither the CLI, the environment, nor the config file names a
    store root.

    On Linux/BSD: ``$XDG_CACHE_HOME/fixturecache/`` (default ``~/.cache/fixturecache/``).
    On macOS/Windows: ``~/.fixturecache/cache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/fixturecache/`` (default ``~/.local/share/fixturecache/``).
    On macOS/Windows: ``~/.fixturecache/logs/``.
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
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
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
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~fixturecache.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_root: Optional[str] = None,
    cli_max_error_version: Optional[int] = None,
) -> StoreConfig:
    """Resolve the effective store configuration.

    Precedence (high to low):
        1. CLI flags (``cli_root``, ``cli_max_error_version``)
        2. Environment variables (``FIXTURECACHE_ROOT``,
           ``FIXTURECACHE_MAX_ERROR_VERSION``)
        3. User config (``~/.config/fixturecache/config.json``)
        4. Defaults; an unset root falls back to :func:`get_cache_dir`.

    Raises:
        ConfigError: If the config file or an environment value is invalid.
    """
    store = load_global_config().store.model_copy(deep=True)

    env_root = os.environ.get(ENV_ROOT)
    if env_root:
        store.root = env_root

    env_max = os.environ.get(ENV_MAX_ERROR_VERSION)
    if env_max:
        try:
            store.max_error_version = int(env_max)
        except ValueError:
            raise ConfigError(
                f"{ENV_MAX_ERROR_VERSION} must be an integer, got: {env_max}"
            ) from None

    if cli_root is not None:
        store.root = cli_root
    if cli_max_error_version is not None:
        store.max_error_version = cli_max_error_version

    if store.root is None:
        store.root = str(get_cache_dir())

    try:
        return StoreConfig.model_validate(store.model_dump())
    except ValidationError as exc:
        raise ConfigError(f"Invalid store configuration: {exc}") from exc


def build_store(config: StoreConfig, transport: Optional[Transport] = None) -> CacheStore:
    """Create a :class:`~fixturecache.cache.store.CacheStore` from *config*.

    Args:
        config: A resolved store configuration (``root`` must be set).
        transport: Optional transport; defaults to an :class:`httpx.Client`
            using ``config.timeout``.
    """
    from fixturecache.cache.store import CacheStore
    from fixturecache.client.transport import create_default_transport

    if config.root is None:
        raise ConfigError("Store root is not set")
    return CacheStore(
        config.root,
        transport=transport or create_default_transport(config.timeout),
        max_error_version=config.max_error_version,
        timestamp_header=config.headers.timestamp,
        version_header=config.headers.version,
        error_statuses=config.error_statuses,
    )
