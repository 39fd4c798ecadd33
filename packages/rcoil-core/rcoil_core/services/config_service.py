"""Shared configuration service for the director, transports and CLI."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

from ..transport.base import TransportConfig

CONFIG_ENV_VAR = "RCOIL_CONFIG_PATH"
DEFAULT_CONFIG_FILE = "rcoil.yaml"

_CONFIG_CACHE: Dict[str, Dict[str, Any]] = {}


def _default_config_path() -> Path:
    """Resolve the default config path (supports RCOIL_CONFIG_PATH override)."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_FILE


def clear_config_cache() -> None:
    """Clear cached config (primarily for tests)."""
    _CONFIG_CACHE.clear()


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """
    Load YAML configuration with caching.

    Args:
        path: Optional custom path. Defaults to RCOIL_CONFIG_PATH or ./rcoil.yaml.
            A missing default file yields an empty config; a missing explicit
            file raises FileNotFoundError.
    """
    explicit = path is not None or os.getenv(CONFIG_ENV_VAR) is not None
    resolved = Path(path).expanduser() if path else _default_config_path()
    key = str(resolved.resolve())
    if key not in _CONFIG_CACHE:
        if not resolved.exists():
            if explicit:
                raise FileNotFoundError(f"Config file not found: {resolved}")
            return {}
        with open(resolved, "r", encoding="utf-8") as f:
            _CONFIG_CACHE[key] = yaml.safe_load(f) or {}
    return _CONFIG_CACHE[key]


def _get_section(section_path: str, path: str | Path | None = None) -> Dict[str, Any]:
    """
    Return nested configuration section by dotted path (e.g. ``transport``).
    """
    config = load_config(path)
    section: Any = config
    for key in section_path.split("."):
        if not isinstance(section, dict):
            return {}
        section = section.get(key)
        if section is None:
            return {}
    return section if isinstance(section, dict) else {}


def get_transport_settings(path: str | Path | None = None) -> Dict[str, Any]:
    """Return the ``transport`` section (timeout, default_headers, verify_ssl)."""
    return _get_section("transport", path)


def get_director_settings(path: str | Path | None = None) -> Dict[str, Any]:
    """Return the ``director`` section (debug)."""
    return _get_section("director", path)


def get_logging_settings(path: str | Path | None = None) -> Dict[str, Any]:
    """Return the ``logging`` section (level, color)."""
    return _get_section("logging", path)


def get_transport_config(path: str | Path | None = None) -> TransportConfig:
    """Build a TransportConfig from the ``transport`` section."""
    return TransportConfig.from_dict(get_transport_settings(path))
