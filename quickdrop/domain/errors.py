"""
Error Handling Module

Defines domain exceptions and error categories for the application.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry user-facing messaging for HTTP responses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    INVALID_REQUEST = "invalid_request"
    MISSING_FILE = "missing_file"
    FILE_TOO_LARGE = "file_too_large"
    STORAGE_FULL = "storage_full"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    NOT_FOUND = "not_found"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request could not be processed.",
        "action": "Check the request parameters and try again.",
    },
    ErrorCategory.MISSING_FILE: {
        "title": "No File Uploaded",
        "message": "The upload did not contain a file.",
        "action": "Send the file in the 'file' field of a multipart form.",
    },
    ErrorCategory.FILE_TOO_LARGE: {
        "title": "File Too Large",
        "message": "The file exceeds the maximum upload size.",
        "action": "Try a smaller file or split it into parts.",
    },
    ErrorCategory.STORAGE_FULL: {
        "title": "Storage Full",
        "message": "The server has no room for this file right now.",
        "action": "Wait for pending transfers to complete and try again later.",
    },
    ErrorCategory.STORAGE_UNAVAILABLE: {
        "title": "Storage Unavailable",
        "message": "The storage backend is temporarily unavailable.",
        "action": "Please try again in a few moments.",
    },
    ErrorCategory.NOT_FOUND: {
        "title": "Not Found",
        "message": "File not found or already destroyed.",
        "action": "Ask the sender for a new link.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred.",
        "action": "Please try again later.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions are pure and have no external dependencies.
    They can optionally wrap original errors for context.
    """

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class StorageFullError(DomainError):
    """
    Raised when the object store has no capacity left for a write.

    Recoverable: the caller may retry once space has been reclaimed.
    """
    pass


class StorageUnavailableError(DomainError):
    """
    Raised when the object store or record store cannot be reached,
    fails with an I/O error, or does not answer within its timeout.
    """
    pass


class TokenCollisionError(DomainError):
    """
    Raised when a write targets a token that already exists.

    Tokens are never reused, so this is a programming invariant violation.
    The write is rejected rather than overwriting existing data.
    """
    pass


class InvalidTokenError(DomainError):
    """Raised when a token string is not a well-formed access token."""
    pass


class ServiceShuttingDownError(StorageUnavailableError):
    """Raised when an operation arrives after shutdown has begun."""
    pass


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for API response.

        Returns:
            Dictionary with error information
        """
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 400,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details for logging
        context: Additional context information
        status_code: HTTP status code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    return error.to_dict(), status_code
