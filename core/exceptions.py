"""
Exception Definitions - Custom exceptions for Bar Order Relay
=============================================================

This module defines all custom exceptions used throughout the application.
Relay-side errors carry the HTTP status and the short error code that ends
up in the JSON response body.
"""


class RelayError(Exception):
    """
    Base exception for all Bar Order Relay errors.

    All custom exceptions in this application inherit from this base class,
    allowing for easy catching of all application-specific errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
        status_code (int): HTTP status returned to the caller
        error_code (str): Short error code placed in the response body
    """

    status_code = 500
    error_code = "server_error"

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_response(self) -> dict:
        """Body sent back to the caller."""
        return {"ok": False, "error": self.error_code}


class ConfigError(RelayError):
    """
    Configuration-related errors.

    Raised when there are issues with:
    - Missing shared token
    - Missing or unreadable gateway hook file
    - Hooks disabled or hook token absent
    - Invalid configuration values
    """
    pass


class RateLimitError(RelayError):
    """
    Too many requests from one address inside the current window.

    Attributes:
        retry_after (float): Seconds until the window resets
    """

    status_code = 429
    error_code = "rate_limited"

    def __init__(self, message: str, retry_after: float = 0, details: dict = None):
        """
        Initialize rate limit error with retry information.

        Args:
            message: Human-readable error description
            retry_after: Seconds until rate limit resets
            details: Optional dictionary with additional error context
        """
        self.retry_after = retry_after
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return formatted error message with retry time."""
        base = super().__str__()
        return f"{base} | Retry after: {self.retry_after:.1f}s"


class AuthError(RelayError):
    """Missing or mismatching shared order token."""

    status_code = 401
    error_code = "unauthorized"


class ValidationError(RelayError):
    """Guest or drink empty after cleaning."""

    status_code = 400
    error_code = "missing_fields"


class PayloadTooLargeError(RelayError):
    """Request body exceeded the size ceiling."""

    error_code = "payload_too_large"


class InvalidPayloadError(RelayError):
    """Request body is not a JSON object."""

    error_code = "invalid_json"


class ForwardError(RelayError):
    """
    Agent hook errors.

    Raised when:
    - The hook answers with a non-2xx status
    - The hook cannot be reached

    The upstream error text is returned to the caller as-is.
    """

    def to_response(self) -> dict:
        return {"ok": False, "error": self.message}


class ClientError(RelayError):
    """
    Guest client errors.

    Raised when the local state store cannot be read or written.
    """
    pass
