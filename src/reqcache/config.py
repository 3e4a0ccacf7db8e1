"""Configuration loading and precedence resolution.

Client settings (:class:`~reqcache.models.ClientConfig`) come from, in
order of precedence:

1. Explicit arguments (CLI flags).
2. Environment variables: ``REQCACHE_BASE_URL``, ``REQCACHE_TIMEOUT``,
   ``REQCACHE_CACHE_TTL``.
3. A JSON config file: the path passed in, else ``REQCACHE_CONFIG``, else
   ``config.json`` in the user config directory if it exists.
4. Model defaults.

The user config directory is XDG compliant on Linux/BSD
(``$XDG_CONFIG_HOME/reqcache/``) and ``~/.reqcache/`` elsewhere.  Nothing
is ever written; the cache itself lives only in memory.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from reqcache.cache import CacheStore
from reqcache.client import JSON_HEADERS, CachedRequest
from reqcache.exceptions import ConfigError
from reqcache.models import ClientConfig

_APP_NAME = "reqcache"
_CONFIG_FILENAME = "config.json"

ENV_BASE_URL = "REQCACHE_BASE_URL"
ENV_TIMEOUT = "REQCACHE_TIMEOUT"
ENV_CACHE_TTL = "REQCACHE_CACHE_TTL"
ENV_CONFIG = "REQCACHE_CONFIG"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the user configuration directory.  It is not created."""
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


# --- Config file ---


def load_config_file(path: str | Path) -> ClientConfig:
    """Load and validate a JSON config file.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or fails
            validation.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def _default_config_path() -> Optional[Path]:
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        return Path(env_path)
    path = get_config_dir() / _CONFIG_FILENAME
    return path if path.is_file() else None


def _env_float(name: str) -> Optional[float]:
    value = os.environ.get(name)
    if not value:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_timeout: Optional[float] = None,
    config_path: Optional[str | Path] = None,
) -> ClientConfig:
    """Resolve the effective client configuration.

    Args:
        cli_base_url: Base URL flag (highest precedence).
        cli_timeout: Timeout flag in seconds.
        config_path: Explicit config file; overrides ``REQCACHE_CONFIG``.

    Returns:
        The merged :class:`~reqcache.models.ClientConfig`.

    Raises:
        ConfigError: On an unreadable config file or a malformed
            environment value.
    """
    path = Path(config_path) if config_path is not None else _default_config_path()
    config = load_config_file(path) if path is not None else ClientConfig()

    overrides: dict[str, Any] = {}
    env_base_url = os.environ.get(ENV_BASE_URL)
    if cli_base_url is not None:
        overrides["base_url"] = cli_base_url
    elif env_base_url:
        overrides["base_url"] = env_base_url

    timeout = cli_timeout if cli_timeout is not None else _env_float(ENV_TIMEOUT)
    if timeout is not None:
        overrides["request"] = config.request.model_copy(update={"timeout": timeout})

    ttl = _env_float(ENV_CACHE_TTL)
    if ttl is not None:
        if ttl <= 0:
            raise ConfigError(f"{ENV_CACHE_TTL} must be positive, got {ttl}")
        overrides["cache"] = config.cache.model_copy(update={"default_ttl_seconds": ttl})

    if overrides:
        config = config.model_copy(update=overrides)
    return config


def build_client(config: ClientConfig, cache: Optional[CacheStore] = None) -> CachedRequest:
    """Create a :class:`~reqcache.client.CachedRequest` from *config*.

    Args:
        config: Resolved client configuration.
        cache: Store to share; a new one built from ``config.cache`` when
            omitted.
    """
    headers = {**JSON_HEADERS, **config.headers} if config.json_headers else dict(config.headers)
    return CachedRequest(
        config.base_url,
        headers=headers,
        config=config.request,
        cache=cache,
        cache_config=config.cache,
    )
