"""
Token module exceptions.

TokenExpiredError is only raised after a refresh attempt failed, and always
after the stored tokens were cleared, so callers can drop straight to the
signed-out state.
"""

from shared.exceptions import AuthenticationError


class NotAuthenticatedError(AuthenticationError):
    """Raised when no token set is stored at all."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class TokenExpiredError(AuthenticationError):
    """Raised when the token set expired and could not be refreshed."""

    def __init__(self, message: str = "Session expired. Please sign in again."):
        super().__init__(message, code="TOKEN_EXPIRED")
