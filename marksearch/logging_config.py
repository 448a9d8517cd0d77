"""Logging configuration for the search service."""

import logging
import sys
from contextvars import ContextVar
from typing import Any

from marksearch.config import get_settings

# Context variable for request ID tracking
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(request_id)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


class RequestIdFilter(logging.Filter):
    """Add request ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "N/A"
        return True


class ColoredFormatter(logging.Formatter):
    """Colored log formatter for console output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers must see the plain level name
            record.levelname = levelname


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the application.

    Installs a single stdout handler on the root logger with request ID
    tracking, replacing whatever handlers were there before.

    Args:
        level: Log level name; defaults to ``Settings.log_level``
    """
    level = level or get_settings().log_level

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if sys.stdout.isatty():
        formatter = ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RequestIdFilter())

    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured with level: {level}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def set_request_id(request_id: str) -> None:
    """Set the request ID for the current context."""
    request_id_var.set(request_id)


def clear_request_id() -> None:
    """Clear the request ID from the current context."""
    request_id_var.set(None)


def log_progress(
    logger: logging.Logger,
    operation: str,
    current: int,
    total: int,
    **kwargs: Any,
) -> None:
    """Log progress for long-running operations such as cache warm-up.

    Args:
        logger: Logger instance
        operation: Operation name
        current: Current progress count
        total: Total count
        **kwargs: Additional context to log
    """
    percentage = (current / total * 100) if total > 0 else 0
    context = " | ".join(f"{k}={v}" for k, v in kwargs.items())
    message = f"{operation}: {current}/{total} ({percentage:.1f}%)"
    if context:
        message += f" | {context}"
    logger.info(message)
