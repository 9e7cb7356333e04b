"""scriptsearch configuration: settings and logging."""

from __future__ import annotations

from typing import Any

from scriptsearch.config.logging import configure_logging
from scriptsearch.config.logging import get_logger as _structlog_logger
from scriptsearch.config.settings import (
    ScriptSearchSettings,
    clear_settings_cache,
    get_settings,
    get_settings_for_cli,
    set_settings,
)

__all__ = [
    "ScriptSearchSettings",
    "clear_settings_cache",
    "configure_logging",
    "get_logger",
    "get_settings",
    "get_settings_for_cli",
    "set_settings",
]

_configured = False
_loggers: dict[str, Any] = {}


def get_logger(name: str) -> Any:
    """Return the logger for ``name``, configuring logging on first use.

    The first call applies :func:`configure_logging` with the global settings;
    later calls for the same name return the cached logger.
    """
    global _configured
    logger = _loggers.get(name)
    if logger is None:
        if not _configured:
            configure_logging(get_settings())
            _configured = True
        logger = _loggers[name] = _structlog_logger(name)
    return logger

