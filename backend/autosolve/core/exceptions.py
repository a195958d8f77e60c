"""
Custom exception classes for AutoSolve.

Expected conditions (quota exhausted, cache miss, unknown ids, empty input)
are reported through return values. These exceptions cover the rest:
- Invalid caller input
- Local storage failures
- Diagnostic call failures
- Billing collaborator failures
"""

from enum import StrEnum
from typing import Any

# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(StrEnum):
    """Standardized error codes for client-side handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"

    # Storage errors (2xxx)
    STORAGE_ERROR = "ERR_2000"
    STORAGE_READ = "ERR_2001"
    STORAGE_WRITE = "ERR_2002"
    STORAGE_CORRUPTED = "ERR_2003"

    # External collaborator errors (3xxx)
    DIAGNOSIS_ERROR = "ERR_3010"
    BILLING_ERROR = "ERR_3020"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INTERNAL_ERROR: "An internal error occurred. Please try again.",
    ErrorCode.VALIDATION_ERROR: "The provided input is invalid.",
    ErrorCode.STORAGE_ERROR: "Local storage error.",
    ErrorCode.STORAGE_READ: "Unable to read local data.",
    ErrorCode.STORAGE_WRITE: "Unable to save local data.",
    ErrorCode.STORAGE_CORRUPTED: "Local data is corrupted and was reset.",
    ErrorCode.DIAGNOSIS_ERROR: "Failed to analyze vehicle. Please try again.",
    ErrorCode.BILLING_ERROR: "Unable to reach the store. Please try again.",
}


def get_error_message(code: ErrorCode, fallback: str | None = None) -> str:
    """Get the user-facing message for an error code."""
    return ERROR_MESSAGES.get(code, fallback or "An unknown error occurred.")


# =============================================================================
# Base Exception Classes
# =============================================================================


class AutoSolveException(Exception):
    """
    Base exception class for all AutoSolve exceptions.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "user_message": get_error_message(self.code, self.message),
                "details": self.details,
            }
        }


class ValidationException(AutoSolveException):
    """Exception for validation errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field

        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details=error_details,
        )


# =============================================================================
# Storage Exceptions
# =============================================================================


class StorageException(AutoSolveException):
    """Base exception for local key-value storage errors."""

    def __init__(
        self,
        message: str = "Local storage error.",
        code: ErrorCode = ErrorCode.STORAGE_ERROR,
        key: str | None = None,
        original_error: Exception | None = None,
    ):
        details: dict[str, Any] = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(message=message, code=code, details=details)
        self.original_error = original_error


class StorageCorruptedException(StorageException):
    """Raised when a stored blob cannot be decoded into its schema."""

    def __init__(
        self,
        message: str = "Stored data could not be decoded.",
        key: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(
            message=message,
            code=ErrorCode.STORAGE_CORRUPTED,
            key=key,
            original_error=original_error,
        )


# =============================================================================
# External Collaborator Exceptions
# =============================================================================


class DiagnosisException(AutoSolveException):
    """Exception for failures of the external diagnostic call."""

    def __init__(
        self,
        message: str = "Failed to analyze vehicle.",
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        error_details = details or {}
        if original_error:
            error_details["original_error"] = str(original_error)

        super().__init__(
            message=message,
            code=ErrorCode.DIAGNOSIS_ERROR,
            details=error_details,
        )
        self.original_error = original_error


class BillingException(AutoSolveException):
    """Exception for failures raised by the billing client."""

    def __init__(
        self,
        message: str = "Billing request failed.",
        operation: str | None = None,
        original_error: Exception | None = None,
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if original_error:
            details["original_error"] = str(original_error)

        super().__init__(
            message=message,
            code=ErrorCode.BILLING_ERROR,
            details=details,
        )
        self.original_error = original_error
