"""
Base exception classes for the Guidepost session client.

Each module should define its own exceptions that inherit from these bases.
This module also holds the transport-level error kinds shared by every
remote client (invalid URL, malformed response, HTTP status, decoding,
network, missing data, 401 and unmapped server errors).
"""

from typing import Optional, Any


class GuidepostError(Exception):
    """
    Base exception for all Guidepost errors.

    All custom exceptions should inherit from this class. The message is
    human readable and safe to show on the current screen.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for display or logging."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(GuidepostError):
    """Input validation failed."""

    pass


class AuthenticationError(GuidepostError):
    """Authentication failed (invalid, expired or missing credentials)."""

    pass


class ExternalServiceError(GuidepostError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class InvalidRequestTargetError(ExternalServiceError):
    """Raised when a request URL cannot be built."""

    def __init__(self, url: str, service: str = "api"):
        super().__init__(
            "Invalid URL",
            service=service,
            code="INVALID_URL",
            details={"url": url},
        )


class MalformedResponseError(ExternalServiceError):
    """Raised when the server answers with something that is not an envelope."""

    def __init__(self, service: str = "api", reason: Optional[str] = None):
        super().__init__(
            "Invalid response from server",
            service=service,
            code="INVALID_RESPONSE",
            details={"reason": reason} if reason else {},
        )


class HTTPStatusError(ExternalServiceError):
    """Raised for a non-2xx status the error mapper could not classify."""

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        service: str = "api",
    ):
        super().__init__(
            message or f"HTTP error: {status_code}",
            service=service,
            code="HTTP_ERROR",
            details={"status_code": status_code},
        )
        self.status_code = status_code


class DecodeError(ExternalServiceError):
    """Raised when a response body cannot be decoded into the expected model."""

    def __init__(self, reason: str, service: str = "api"):
        super().__init__(
            f"Failed to decode response: {reason}",
            service=service,
            code="DECODING_ERROR",
            details={"reason": reason},
        )


class NetworkError(ExternalServiceError):
    """Raised on connection failures and timeouts."""

    def __init__(self, reason: str, service: str = "api"):
        super().__init__(
            f"Network error: {reason}",
            service=service,
            code="NETWORK_ERROR",
            details={"reason": reason},
        )


class NoDataError(ExternalServiceError):
    """Raised when a successful envelope carries no payload."""

    def __init__(self, service: str = "api"):
        super().__init__("No data received", service=service, code="NO_DATA")


class UnauthorizedError(AuthenticationError):
    """
    Raised when the server rejects a token with 401.

    Distinct from NotAuthenticatedError, which means no token exists at all.
    Raising this is always paired with clearing the stored tokens.
    """

    def __init__(self, message: str = "Your session is no longer valid. Please sign in again."):
        super().__init__(message, code="UNAUTHORIZED")


class UnknownError(GuidepostError):
    """Raised for server errors no mapping rule recognises."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            detail or "An unknown error occurred",
            code="UNKNOWN_ERROR",
            details={"detail": detail} if detail else {},
        )
