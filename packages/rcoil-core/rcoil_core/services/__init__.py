"""Configuration and logging services."""
from .config_service import (
    clear_config_cache,
    get_director_settings,
    get_logging_settings,
    get_transport_config,
    get_transport_settings,
    load_config,
)
from .logging_setup import ConsoleFormatter, configure_logging

__all__ = [
    "clear_config_cache",
    "get_director_settings",
    "get_logging_settings",
    "get_transport_config",
    "get_transport_settings",
    "load_config",
    "ConsoleFormatter",
    "configure_logging",
]
