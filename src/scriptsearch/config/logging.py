"""structlog setup for scriptsearch.

Application code logs through structlog with keyword events; records are
handed to stdlib logging so the console handler, an optional rotating log
file and pytest's ``caplog`` all see the same output.
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import (
    CallsiteParameter,
    CallsiteParameterAdder,
    TimeStamper,
    add_log_level,
    dict_tracebacks,
    format_exc_info,
)
from structlog.stdlib import (
    ProcessorFormatter,
    add_logger_name,
    filter_by_level,
    render_to_log_kwargs,
)

from scriptsearch.config.settings import ScriptSearchSettings

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Libraries that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def _console_renderer() -> structlog.dev.ConsoleRenderer:
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.rich_traceback,
    )


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "structured":
        return structlog.processors.KeyValueRenderer(
            key_order=["timestamp", "level", "logger", "event"],
            drop_missing=True,
        )
    return _console_renderer()


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        valid = ", ".join(["CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING"])
        raise ValueError(f"Invalid log level '{name}'. Valid levels are: {valid}")
    return level


def _handlers(settings: ScriptSearchSettings, level: int) -> list[logging.Handler]:
    formatter = ProcessorFormatter(
        processor=_renderer(settings.log_format),
        foreign_pre_chain=[TimeStamper(fmt="iso"), add_log_level, add_logger_name],
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=str(log_path),
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
    return handlers


def configure_logging(settings: ScriptSearchSettings) -> None:
    """Configure stdlib logging and structlog from settings.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        settings: Application settings carrying ``log_level``, ``log_format``,
            ``log_file`` and ``debug``

    Raises:
        ValueError: If the log level is not a known level name
    """
    level = _level(settings.log_level)

    logging.basicConfig(
        level=level, handlers=_handlers(settings, level), force=True
    )
    logging.getLogger().setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if settings.debug else logging.WARNING
        )

    processors: list[Any] = [
        merge_contextvars,
        filter_by_level,
        TimeStamper(fmt="iso"),
        add_log_level,
        dict_tracebacks,
    ]
    if settings.debug:
        processors.append(
            CallsiteParameterAdder(
                parameters=[
                    CallsiteParameter.FILENAME,
                    CallsiteParameter.LINENO,
                    CallsiteParameter.FUNC_NAME,
                ]
            )
        )

    processors.append(format_exc_info)
    under_pytest = "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ
    if settings.log_format != "console" or under_pytest:
        processors.extend([render_to_log_kwargs, ProcessorFormatter.wrap_for_formatter])
    else:
        processors.append(_console_renderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return the structlog logger for ``name``."""
    return structlog.get_logger(name)
