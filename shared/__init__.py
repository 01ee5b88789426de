"""
Shared infrastructure for the Guidepost session client.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- exceptions: Base exception classes and the transport error taxonomy
- http: JSON envelope client built on httpx

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings, configure_logging
from .exceptions import (
    GuidepostError,
    ValidationError,
    AuthenticationError,
    ExternalServiceError,
    InvalidRequestTargetError,
    MalformedResponseError,
    HTTPStatusError,
    DecodeError,
    NetworkError,
    NoDataError,
    UnauthorizedError,
    UnknownError,
)
from .http import APIClient, APIEnvelope

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "GuidepostError",
    "ValidationError",
    "AuthenticationError",
    "ExternalServiceError",
    "InvalidRequestTargetError",
    "MalformedResponseError",
    "HTTPStatusError",
    "DecodeError",
    "NetworkError",
    "NoDataError",
    "UnauthorizedError",
    "UnknownError",
    "APIClient",
    "APIEnvelope",
]
