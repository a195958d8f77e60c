"""
Core module for AutoSolve.

This module provides:
- Configuration management (config.py)
- Custom exceptions (exceptions.py)
- Structured logging (logging.py)
- Clock and week-boundary helpers (clock.py)
"""

from autosolve.core.clock import (
    Clock,
    SystemClock,
    days_between,
    ensure_aware,
    get_week_start,
    is_same_week,
)
from autosolve.core.config import Settings, get_settings, settings
from autosolve.core.exceptions import (
    AutoSolveException,
    BillingException,
    DiagnosisException,
    ErrorCode,
    StorageCorruptedException,
    StorageException,
    ValidationException,
    get_error_message,
)
from autosolve.core.logging import (
    PerformanceLogger,
    get_logger,
    setup_logging,
)

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    "days_between",
    "ensure_aware",
    "get_week_start",
    "is_same_week",
    # Config
    "Settings",
    "settings",
    "get_settings",
    # Exceptions
    "AutoSolveException",
    "ValidationException",
    "StorageException",
    "StorageCorruptedException",
    "DiagnosisException",
    "BillingException",
    "ErrorCode",
    "get_error_message",
    # Logging
    "setup_logging",
    "get_logger",
    "PerformanceLogger",
]
