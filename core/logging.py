"""
Logging Module - Centralized logging configuration
=================================================

This module provides logging setup and utilities including:
- Colored console output
- Plain file logs and a JSON error log
- Structured fields passed with ``extra={...}``
- Context-aware logging
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any
import json
import threading

ROOT_LOGGER = "simple_bot"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "extra_data", "taskName"}


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """
    Collect the structured fields of a log record.

    Args:
        record: Log record to inspect

    Returns:
        Fields passed with ``extra={...}``, in the order they were set
    """
    return {
        key: value for key, value in vars(record).items()
        if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
    }


def _format_fields(fields: Dict[str, Any]) -> str:
    return " ".join(f"{key}={value!r}" for key, value in fields.items())


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs log records as JSON objects for easy parsing and
    integration with log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add thread context
        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        # Add fields passed with the call
        fields = record_fields(record)
        if fields:
            log_data["fields"] = fields

        return json.dumps(log_data, default=str)


class PlainFormatter(logging.Formatter):
    """
    Line formatter for plain text log files.

    Appends structured fields as ``key=value`` pairs.
    """

    def __init__(self):
        super().__init__("%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        fields = record_fields(record)
        if fields:
            first, newline, rest = formatted.partition("\n")
            formatted = f"{first} | {_format_fields(fields)}{newline}{rest}"
        return formatted


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for readable terminal output.

    Uses ANSI color codes to highlight different log levels.
    """

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    BOLD = "\033[1m"

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record with colors.

        Args:
            record: Log record to format

        Returns:
            Colored log string
        """
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        formatted = (
            f"{color}{self.BOLD}[{record.levelname}]{self.RESET} "
            f"{timestamp} | {record.name}:{record.lineno} | "
            f"{record.getMessage()}"
        )

        fields = record_fields(record)
        if fields:
            formatted += f" | {_format_fields(fields)}"

        # Add exception info if present
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


class ContextFilter(logging.Filter):
    """
    Logging filter that adds context information to records.

    Adds thread-local context data to each log record. Attached to
    handlers so records from every ``simple_bot.*`` logger pass it.
    """

    _context = threading.local()

    @classmethod
    def set_context(cls, **kwargs) -> None:
        """
        Set context values for current thread.

        Args:
            **kwargs: Context key-value pairs
        """
        if not hasattr(cls._context, "data"):
            cls._context.data = {}
        cls._context.data.update(kwargs)

    @classmethod
    def clear_context(cls) -> None:
        """Clear context for current thread."""
        cls._context.data = {}

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Add context to log record.

        Args:
            record: Log record to modify

        Returns:
            Always True (allows all records)
        """
        if getattr(self._context, "data", None):
            record.extra_data = self._context.data.copy()
        return True


class LoggerAdapter(logging.LoggerAdapter):
    """
    Custom logger adapter with extra context support.

    Allows passing extra context data that will be included
    in structured log output.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        """
        Process the logging call to add extra context.

        Args:
            msg: Log message
            kwargs: Keyword arguments

        Returns:
            Tuple of (message, kwargs)
        """
        extra = kwargs.get("extra", {})
        extra.update(self.extra)
        kwargs["extra"] = extra
        return msg, kwargs


# Global logger registry
_loggers: Dict[str, logging.Logger] = {}
_configured = False


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    json_format: bool = False,
    console_output: bool = True
) -> None:
    """
    Set up logging configuration for the application.

    This should be called once at application startup. Later calls
    are ignored.

    Args:
        log_dir: Directory for log files (optional)
        log_level: Minimum log level to capture
        json_format: Use JSON format for the main file log
        console_output: Also output to console

    Example:
        setup_logging(
            log_dir="/var/log/simple-bot",
            log_level="DEBUG",
            json_format=True
        )
    """
    global _configured

    if _configured:
        return

    # Get root logger
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    context_filter = ContextFilter()

    # Console handler
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(ColoredFormatter())
        console_handler.addFilter(context_filter)
        root_logger.addHandler(console_handler)

    # File handler
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path / "simple-bot.log", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter() if json_format else PlainFormatter())
        file_handler.addFilter(context_filter)
        root_logger.addHandler(file_handler)

        # Error log file
        error_handler = logging.FileHandler(log_path / "errors.log", encoding="utf-8")
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(JSONFormatter())
        error_handler.addFilter(context_filter)
        root_logger.addHandler(error_handler)

    _configured = True


def get_logger(name: str, **extra) -> LoggerAdapter:
    """
    Get a logger instance for a module.

    Returns a logger adapter that can include extra context
    in log messages.

    Args:
        name: Logger name, placed below the ``simple_bot`` namespace
        **extra: Extra context to include in all log messages

    Returns:
        LoggerAdapter instance

    Example:
        logger = get_logger("services.bot", component="bot")
        logger.info("Message received", extra={"sender": "alice"})
    """
    full_name = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"

    if full_name not in _loggers:
        _loggers[full_name] = logging.getLogger(full_name)

    return LoggerAdapter(_loggers[full_name], extra)


def set_log_context(**kwargs) -> None:
    """
    Set thread-local logging context.

    Context values will be included in all subsequent log messages
    in the current thread.

    Args:
        **kwargs: Context key-value pairs

    Example:
        set_log_context(sender="alice", target="channel")
        logger.info("Handling message")  # Will include context
    """
    ContextFilter.set_context(**kwargs)


def clear_log_context() -> None:
    """Clear thread-local logging context."""
    ContextFilter.clear_context()
