"""
Identity module exceptions and server error mapping.

The identity API reports failures as free text. map_auth_error() derives the
domain error by substring matching; anything unrecognised falls through to
UnknownError so it is still surfaced.
"""

from typing import Optional

from shared.exceptions import (
    AuthenticationError,
    GuidepostError,
    HTTPStatusError,
    UnknownError,
    ValidationError,
)


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password is wrong."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class UserAlreadyExistsError(GuidepostError):
    """Raised when signing up or upgrading with an email that is taken."""

    def __init__(self, message: str = "An account with this email already exists"):
        super().__init__(message, code="USER_ALREADY_EXISTS")


class InvalidConfirmationCodeError(ValidationError):
    """Raised when a password-reset code is wrong or expired."""

    def __init__(self, message: str = "Invalid or expired confirmation code"):
        super().__init__(message, code="INVALID_CONFIRMATION_CODE")


class PasswordRequirementsNotMetError(ValidationError):
    """Raised when the server rejects a password as too weak."""

    def __init__(self, message: str = "Password does not meet requirements"):
        super().__init__(message, code="PASSWORD_REQUIREMENTS_NOT_MET")


class NotGuestAccountError(ValidationError):
    """Raised when upgrading an identity that is not a guest."""

    def __init__(self):
        super().__init__(
            "Only guest accounts can be upgraded",
            code="NOT_GUEST_ACCOUNT",
        )


class AuthFlowValidationError(ValidationError):
    """Raised when an auth form is incomplete or inconsistent."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            code="AUTH_FLOW_VALIDATION",
            details={"field": field} if field else {},
        )


def map_auth_error(message: Optional[str], status_code: Optional[int]) -> GuidepostError:
    """
    Map identity API error text to a domain error.

    Args:
        message: The envelope's ``error`` text, if any
        status_code: HTTP status for non-2xx answers, None for success:false

    Returns:
        The exception to raise
    """
    if not message:
        if status_code is not None:
            return HTTPStatusError(status_code, service="auth")
        return UnknownError()

    text = message.lower()
    if "already exists" in text:
        return UserAlreadyExistsError()
    if "invalid email or password" in text or "invalid credentials" in text:
        return InvalidCredentialsError()
    if "invalid confirmation code" in text or "expired" in text:
        return InvalidConfirmationCodeError()
    if "password" in text and "requirement" in text:
        return PasswordRequirementsNotMetError()

    return UnknownError(message)
