"""
Token management module.

Owns the access/identity/refresh token triple and its expiry, decides when a
refresh is needed and exposes ensure_valid() to every protected caller.

Public API:
- ITokenRefresher: Interface for the remote refresh call
- ITokenProvider: Interface consumed by protected API clients
- TokenManager: Concrete token manager over an ICredentialStore
- TokenSet, AuthTokens: Stored credential bundle and its wire form
- Token exceptions: NotAuthenticatedError, TokenExpiredError
"""

from .interfaces import ITokenRefresher, ITokenProvider
from .models import TokenSet, AuthTokens
from .service import TokenManager, TokenKey
from .exceptions import NotAuthenticatedError, TokenExpiredError

__all__ = [
    # Interfaces
    "ITokenRefresher",
    "ITokenProvider",
    # Models
    "TokenSet",
    "AuthTokens",
    # Service
    "TokenManager",
    "TokenKey",
    # Exceptions
    "NotAuthenticatedError",
    "TokenExpiredError",
]
