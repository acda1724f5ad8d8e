"""
Structured logging utilities for the memory importer.

This module provides:
- Structured JSON logging for unattended runs
- Console logging for interactive runs
- Run ID support so every event of one ingestion job can be correlated
- Context-aware logging with bound variables
"""

import logging
import sys
from contextvars import ContextVar
from typing import TextIO
from uuid import uuid4

import structlog
from structlog.types import EventDict, Processor

APP_NAME = "memory-importer"

# Context variable for the ingestion run ID
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)


def get_run_id() -> str | None:
    """
    Get the current run ID from context.

    Returns:
        The run ID if set, None otherwise.
    """
    return run_id_var.get()


def set_run_id(run_id: str | None = None) -> str:
    """
    Set or generate a run ID in the current context.

    Args:
        run_id: Optional run ID to set. If None, generates a new UUID.

    Returns:
        The run ID that was set.
    """
    rid = run_id or str(uuid4())
    run_id_var.set(rid)
    return rid


def clear_run_id() -> None:
    """Clear the run ID from the current context."""
    run_id_var.set(None)


def add_run_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Structlog processor to add the run ID to log entries.

    Args:
        logger: The logger instance.
        method_name: The logging method name.
        event_dict: The event dictionary.

    Returns:
        Updated event dictionary with run ID.
    """
    run_id = get_run_id()
    if run_id:
        event_dict["run_id"] = run_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Structlog processor to add application context to log entries.

    Args:
        logger: The logger instance.
        method_name: The logging method name.
        event_dict: The event dictionary.

    Returns:
        Updated event dictionary with app context.
    """
    event_dict["app"] = APP_NAME
    return event_dict


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Logs go to stderr by default so that progress output on stdout stays
    readable.

    Args:
        log_level: The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: The log format ('json' or 'console').
        stream: Optional output stream, defaults to stderr.
    """
    stream = stream or sys.stderr

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_run_id,
        add_app_context,
    ]

    if log_format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(
                colors=stream.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, log_level),
        force=True,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("chromadb").setLevel(logging.WARNING)
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.

    Returns:
        A bound structlog logger instance.
    """
    return structlog.get_logger(name)


class LoggerMixin:
    """
    Mixin class to add logging capabilities to any class.

    Usage:
        class MySink(LoggerMixin):
            async def save(self, ...):
                self.logger.info("unit_saved", memory_id="42")
    """

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get a logger bound to this class."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
