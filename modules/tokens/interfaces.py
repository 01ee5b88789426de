"""
Token module interfaces.

ITokenRefresher is implemented by the identity API client; ITokenProvider is
what protected API clients depend on instead of the concrete TokenManager.
"""

from typing import Protocol, runtime_checkable

from .models import AuthTokens


@runtime_checkable
class ITokenRefresher(Protocol):
    """Remote call exchanging a refresh token for a new token set."""

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """
        POST /api/auth/refresh.

        Raises:
            NetworkError: On transport failures
            GuidepostError: When the server rejects the refresh token
        """
        ...


@runtime_checkable
class ITokenProvider(Protocol):
    """Source of a valid identity token for protected requests."""

    async def ensure_valid(self) -> str:
        """
        Return a non-expired identity token, refreshing once if needed.

        Raises:
            NotAuthenticatedError: If no token set exists
            TokenExpiredError: If the refresh failed (tokens are cleared)
        """
        ...

    def handle_unauthorized(self) -> None:
        """Drop all tokens after the server answered 401."""
        ...
