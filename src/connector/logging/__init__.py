"""
Structured logging module.

Provides JSON logging with client request ids and operation context.
"""

from connector.logging.context import (
    LogContext,
    clear_log_context,
    get_log_context,
    set_log_context,
)
from connector.logging.formatters import ConsoleFormatter, JSONFormatter
from connector.logging.setup import get_logger, setup_logging

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "LogContext",
]
