"""Logging setup and configuration."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from connector.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "asyncio",
    "urllib3",
]


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def setup_logging(
    level: int | str = DEFAULT_CONSOLE_LEVEL,
    json_format: bool = False,
    log_file: Path | str | None = None,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    suppress_noisy: bool = True,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure root logging for applications using the connector.

    Args:
        level: Console log level
        json_format: Emit JSON lines on the console instead of human-readable text
        log_file: Optional path for a rotating JSON log file
        file_level: Log level for the file handler
        suppress_noisy: Raise third-party loggers to WARNING
        stream: Console stream (default: stdout)

    Returns:
        The configured root logger
    """
    console_level = _coerce_level(level)
    root = logging.getLogger()

    # Remove handlers from previous calls so setup is idempotent
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(stream or sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root.addHandler(console)

    root_level = console_level
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=DEFAULT_MAX_BYTES,
            backupCount=DEFAULT_BACKUP_COUNT,
            encoding="utf-8",
        )
        resolved_file_level = _coerce_level(file_level)
        file_handler.setLevel(resolved_file_level)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)
        root_level = min(root_level, resolved_file_level)

    root.setLevel(root_level)

    if suppress_noisy:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
