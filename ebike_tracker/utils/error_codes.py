"""
Error Code Taxonomy for the e-bike tracker

Structured error codes for alerting, debugging, and API error bodies.

Error Code Format:
- E001-E099: Validation errors (bad input data)
- E200-E299: Record store errors
- E300-E399: Parsing errors (day keys, JSON)
- E500-E599: System errors
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """High-level error categories for grouping and alerting."""

    VALIDATION = "validation"
    STORAGE = "storage"
    PARSING = "parsing"
    SYSTEM = "system"


class ErrorCode(str, Enum):
    """Structured error codes with consistent format."""

    # Validation Errors (E001-E099)
    E001_INVALID_TOKEN = "E001"  # Missing, invalid or expired credentials
    E002_MISSING_REQUIRED_FIELD = "E002"  # Required field missing in request
    E003_INVALID_DATA_TYPE = "E003"  # Body or field has wrong type

    # Record Store Errors (E200-E299)
    E200_STORE_READ_FAILED = "E200"  # Reading a document failed
    E201_STORE_WRITE_FAILED = "E201"  # Writing a document failed

    # Parsing Errors (E300-E399)
    E300_INVALID_DAY_KEY = "E300"  # Client date is not YYYY-MM-DD

    # System Errors (E500-E599)
    E500_INTERNAL_SERVER_ERROR = "E500"  # Unhandled internal error


ERROR_METADATA = {
    ErrorCode.E001_INVALID_TOKEN: {
        "category": ErrorCategory.VALIDATION,
        "description": "Missing or invalid credentials",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E002_MISSING_REQUIRED_FIELD: {
        "category": ErrorCategory.VALIDATION,
        "description": "Required field missing in request",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E003_INVALID_DATA_TYPE: {
        "category": ErrorCategory.VALIDATION,
        "description": "Field has wrong data type",
        "severity": "warning",
        "alert": False,
    },
    ErrorCode.E200_STORE_READ_FAILED: {
        "category": ErrorCategory.STORAGE,
        "description": "Record store read failed",
        "severity": "critical",
        "alert": True,
    },
    ErrorCode.E201_STORE_WRITE_FAILED: {
        "category": ErrorCategory.STORAGE,
        "description": "Record store write failed",
        "severity": "critical",
        "alert": True,
    },
    ErrorCode.E300_INVALID_DAY_KEY: {
        "category": ErrorCategory.PARSING,
        "description": "Client date is not a valid day key",
        "severity": "info",
        "alert": False,
    },
    ErrorCode.E500_INTERNAL_SERVER_ERROR: {
        "category": ErrorCategory.SYSTEM,
        "description": "Unhandled internal error",
        "severity": "critical",
        "alert": True,
    },
}


def get_error_metadata(error_code: ErrorCode) -> dict:
    """Get metadata for an error code."""
    return ERROR_METADATA.get(
        error_code,
        {
            "category": ErrorCategory.SYSTEM,
            "description": "Unknown error",
            "severity": "error",
            "alert": False,
        },
    )


class StructuredError:
    """Structured error with code, category, and metadata."""

    def __init__(self, code: ErrorCode, message: str, exception: Optional[Exception] = None, **context):
        """
        Create a structured error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            exception: Original exception (if applicable)
            **context: Additional context fields (user_id, key, etc.)
        """
        self.code = code
        self.message = message
        self.exception = exception
        self.context = context
        self.metadata = get_error_metadata(code)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        error_dict = {
            "code": self.code.value,
            "message": self.message,
            "category": self.metadata["category"].value,
        }

        if self.exception:
            error_dict["exception_type"] = type(self.exception).__name__
            error_dict["exception_message"] = str(self.exception)

        if self.context:
            error_dict["context"] = self.context

        return error_dict

    def to_response(self) -> dict:
        """Public error body: message and code only."""
        return {"error": self.message, "code": self.code.value}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"
