"""
Structured Logging Configuration

Provides JSON-formatted logs with correlation IDs so a notebook session or a
CLI run can be followed across KEGG and MGnify requests.
"""

import asyncio
import functools
import logging
import json
import uuid
import os
import time
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar


# Context variable for correlation ID
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with correlation IDs and additional context.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        log_data["process_id"] = os.getpid()
        log_data["thread_id"] = record.thread

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        if hasattr(record, 'duration_ms'):
            log_data["duration_ms"] = record.duration_ms

        if hasattr(record, 'study_id'):
            log_data["study_id"] = record.study_id

        return json.dumps(log_data, default=str)


def setup_structured_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        enable_console: Whether to enable console logging
    """
    formatter = StructuredFormatter()

    handlers = []

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    root_logger.info("Structured logging configured", extra={
        "extra_fields": {
            "log_level": log_level,
            "log_file": log_file,
            "handlers": len(handlers)
        }
    })


def get_correlation_id() -> str:
    """Get current correlation ID or create a new one."""
    correlation_id = correlation_id_var.get()
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        correlation_id_var.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for current context."""
    correlation_id_var.set(correlation_id)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields
) -> None:
    """
    Log with structured context.

    Example:
        >>> log_with_context(
        ...     logger,
        ...     "warning",
        ...     "pathway_lookup_skipped",
        ...     pathway_id="00010",
        ...     error="HTTP 404"
        ... )
    """
    log_func = getattr(logger, level.lower())
    log_func(message, extra={"extra_fields": extra_fields})


def log_execution_time(logger: logging.Logger):
    """
    Decorator to log function execution time.

    Works for both plain and ``async def`` functions.

    Example:
        >>> @log_execution_time(logger)
        ... async def select(...):
        ...     pass
    """
    def _log(func_name: str, start: float, status: str, error: Optional[Exception] = None) -> None:
        fields = {
            "function": func_name,
            "duration_ms": (time.perf_counter() - start) * 1000,
            "status": status,
        }
        if error is None:
            logger.info(f"{func_name} completed", extra={"extra_fields": fields})
        else:
            fields["error"] = str(error)
            fields["error_type"] = type(error).__name__
            logger.error(f"{func_name} failed", extra={"extra_fields": fields})

    def decorator(func):
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log(func.__name__, start, "error", e)
                    raise
                _log(func.__name__, start, "success")
                return result
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log(func.__name__, start, "error", e)
                raise
            _log(func.__name__, start, "success")
            return result
        return sync_wrapper
    return decorator
