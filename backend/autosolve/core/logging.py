"""
Logging configuration for AutoSolve.

Provides:
- Structured JSON logging via python-json-logger
- Human-readable output for development
- Configurable log levels per module
- Performance logging for store writes and aggregation
"""

from __future__ import annotations

import logging
import os
import sys
import time
import traceback
from collections.abc import Callable
from datetime import datetime, UTC
from functools import wraps
from typing import Any, TypeVar

from pythonjsonlogger import jsonlogger

from autosolve import __version__
from autosolve.core.config import settings

# Type variable for generic function decorator
F = TypeVar("F", bound=Callable[..., Any])


class StructuredJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with service and source context.

    Adds:
    - Timestamp in ISO format
    - Log level with severity number
    - Logger name
    - Service name, version, and environment
    - Source location
    - Exception info with stack frames when present
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._pid = os.getpid()

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()

        log_record["level"] = record.levelname
        log_record["severity"] = record.levelname.lower()
        log_record["level_num"] = record.levelno

        log_record["logger"] = record.name

        log_record["service"] = {
            "name": settings.PROJECT_NAME,
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

        log_record["source"] = {
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": self._pid,
        }

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            log_record["error"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "stack_trace": self.formatException(record.exc_info),
                "frames": self._extract_stack_frames(exc_tb),
            }
            if exc_value.__cause__:
                log_record["error"]["cause"] = {
                    "type": type(exc_value.__cause__).__name__,
                    "message": str(exc_value.__cause__),
                }

        self._remove_none_values(log_record)

    def _extract_stack_frames(self, tb, limit: int = 10) -> list[dict[str, Any]]:
        """Extract structured stack frame information."""
        frames = []
        if tb is None:
            return frames

        for frame_info in traceback.extract_tb(tb, limit=limit):
            frames.append({
                "file": frame_info.filename,
                "line": frame_info.lineno,
                "function": frame_info.name,
            })
        return frames

    def _remove_none_values(self, d: dict[str, Any]) -> None:
        """Recursively remove None values from dictionary."""
        keys_to_remove = []
        for key, value in d.items():
            if value is None:
                keys_to_remove.append(key)
            elif isinstance(value, dict):
                self._remove_none_values(value)
        for key in keys_to_remove:
            del d[key]


class PerformanceLogger:
    """
    Context manager and decorator for logging operation durations.

    Usage as context manager:
        with PerformanceLogger("store_write", key="settings-storage"):
            store.set(key, payload)

    Usage as decorator:
        @PerformanceLogger.track("calculate_stats")
        def calculate_stats(submissions): ...
    """

    def __init__(
        self,
        operation_name: str,
        logger_name: str = "performance",
        warn_threshold_ms: float = 250.0,
        **extra_fields: Any,
    ):
        self.operation_name = operation_name
        self.logger = get_logger(logger_name)
        self.warn_threshold_ms = warn_threshold_ms
        self.extra_fields = extra_fields
        self.start_time: float | None = None

    def __enter__(self) -> PerformanceLogger:
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration_ms = (time.perf_counter() - self.start_time) * 1000 if self.start_time else 0

        log_data = {
            "event": "performance_metric",
            "operation": self.operation_name,
            "duration_ms": round(duration_ms, 2),
            "success": exc_type is None,
            **self.extra_fields,
        }

        if exc_type:
            log_data["error_type"] = exc_type.__name__
            log_data["error_message"] = str(exc_val)
            self.logger.error(f"Operation failed: {self.operation_name}", extra=log_data)
        elif duration_ms >= self.warn_threshold_ms:
            self.logger.warning(f"Operation slow: {self.operation_name}", extra=log_data)
        else:
            self.logger.debug(f"Operation completed: {self.operation_name}", extra=log_data)

    @classmethod
    def track(cls, operation_name: str, warn_threshold_ms: float = 250.0) -> Callable[[F], F]:
        """Decorator for tracking function performance."""
        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(*args, **kwargs):
                with cls(operation_name, warn_threshold_ms=warn_threshold_ms):
                    return func(*args, **kwargs)

            return wrapper  # type: ignore

        return decorator


# Logger configuration by module
LOGGER_CONFIG: dict[str, int] = {
    "asyncio": logging.WARNING,
    "performance": logging.INFO,
}


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure application logging.

    JSON output for production, human-readable lines for development.
    Explicit arguments override LOG_LEVEL / LOG_FORMAT from settings.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))

    # Remove existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)

    if (log_format or settings.LOG_FORMAT) == "json":
        formatter: logging.Formatter = StructuredJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for logger_name, logger_level in LOGGER_CONFIG.items():
        logging.getLogger(logger_name).setLevel(logger_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


