"""Logging configuration for MCP Jira Cloud."""

import logging
import os
import sys
import time
import types
import uuid
from contextvars import ContextVar, Token
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# Default logger configuration
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] [%(context)s] %(message)s"
DEFAULT_LOG_LEVEL = "INFO"
MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
LOG_BACKUP_COUNT = 5

# Per-task operation context; each tool call runs in its own task and
# therefore sees only its own values.
_log_context: ContextVar[dict[str, Any] | None] = ContextVar(
    "mcp_jira_cloud_log_context", default=None
)


def get_log_context() -> dict[str, Any]:
    return dict(_log_context.get() or {})


def format_log_context() -> str:
    """Format the current context as ``operation=X,trace_id=Y``."""
    context = _log_context.get()
    if not context:
        return "no-context"
    return ",".join(f"{k}={v}" for k, v in context.items())


class ContextFilter(logging.Filter):
    """Adds the current operation context to every record as ``context``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "context"):
            record.context = format_log_context()
        return True


class LoggingContextManager:
    """Context manager for logging with tracking."""

    def __init__(self, logger: logging.Logger, operation: str, **context: Any) -> None:
        """
        Initializes the logging context manager.

        Args:
            logger: Logger for start/finish messages
            operation: Name of the operation being executed
            **context: Additional context data
        """
        self.logger = logger
        self.operation = operation
        self.context = context.copy()
        self.start_time = time.monotonic()
        self.trace_id = str(context.get("trace_id") or uuid.uuid4().hex[:8])
        self._token: Token | None = None

    def __enter__(self) -> "LoggingContextManager":
        """Starts the logging context."""
        context = get_log_context()
        context.update(self.context)
        context["operation"] = self.operation
        context["trace_id"] = self.trace_id
        self._token = _log_context.set(context)

        self.logger.info(f"Operation started: {self.operation}")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Finalizes the logging context."""
        duration = time.monotonic() - self.start_time
        if exc_type:
            self.logger.error(
                f"Operation failed: {self.operation} after {duration:.3f}s - {exc_val}"
            )
        else:
            self.logger.debug(
                f"Operation completed: {self.operation} in {duration:.3f}s"
            )
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def setup_logger(
    name: str = "mcp-jira-cloud",
    level: str | int | None = None,
    log_to_file: bool | None = None,
    log_dir: str | None = None,
    log_format: str | None = None,
) -> logging.Logger:
    """
    Configures and returns the package logger.

    Console output goes to stderr; stdout is reserved for the stdio transport.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, etc.)
        log_to_file: If True, also logs to a rotating file. Defaults to True
            when LOG_DIR is set.
        log_dir: Directory to store log files
        log_format: Log format

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    log_level = level if level is not None else os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(log_level)

    # Repeated setup replaces rather than duplicates handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(log_format or os.getenv("LOG_FORMAT", DEFAULT_FORMAT))
    context_filter = ContextFilter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    log_directory = log_dir or os.getenv("LOG_DIR")
    if log_to_file is None:
        log_to_file = bool(log_directory)
    if log_to_file:
        directory = Path(log_directory or "logs")
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            directory / f"{name}.log", maxBytes=MAX_LOG_SIZE, backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        file_handler.addFilter(context_filter)
        logger.addHandler(file_handler)

    # Prevents propagation to the root logger
    logger.propagate = False

    return logger


def log_operation(
    logger: logging.Logger, operation: str, **context: Any
) -> LoggingContextManager:
    """
    Creates a context manager for operation logging.

    Args:
        logger: Logger for start/finish messages
        operation: Name of the operation
        **context: Additional context data

    Returns:
        Context manager configured for operation logging
    """
    return LoggingContextManager(logger, operation, **context)
