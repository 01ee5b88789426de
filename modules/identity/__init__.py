"""
Identity module.

Sign-up, sign-in, sign-out, password reset, guest accounts and their upgrade,
and account deletion against the remote identity API.

Public API:
- IIdentityService: Interface consumed by the session facade
- IAuthActions: Session operations the auth-flow driver triggers
- IdentityService: Concrete service over AuthAPIClient and TokenManager
- AuthAPIClient: Client for /api/auth/*
- AuthFlow, AuthFlowState, AuthFlowStep: Auth form state machine
- Models: User, Identity, IdentityKind, UserRole, GuestCredentials
- Identity exceptions and map_auth_error()
"""

from .interfaces import IIdentityService, IAuthActions
from .models import (
    User,
    UserRole,
    Identity,
    IdentityKind,
    GuestCredentials,
    SignUpResult,
)
from .client import AuthAPIClient
from .service import IdentityService, GUEST_FLAG_KEY
from .flow import AuthFlow, AuthFlowState, AuthFlowStep
from .exceptions import (
    InvalidCredentialsError,
    UserAlreadyExistsError,
    InvalidConfirmationCodeError,
    PasswordRequirementsNotMetError,
    NotGuestAccountError,
    AuthFlowValidationError,
    map_auth_error,
)

__all__ = [
    # Interfaces
    "IIdentityService",
    "IAuthActions",
    # Models
    "User",
    "UserRole",
    "Identity",
    "IdentityKind",
    "GuestCredentials",
    "SignUpResult",
    # Client and service
    "AuthAPIClient",
    "IdentityService",
    "GUEST_FLAG_KEY",
    # Auth flow
    "AuthFlow",
    "AuthFlowState",
    "AuthFlowStep",
    # Exceptions
    "InvalidCredentialsError",
    "UserAlreadyExistsError",
    "InvalidConfirmationCodeError",
    "PasswordRequirementsNotMetError",
    "NotGuestAccountError",
    "AuthFlowValidationError",
    "map_auth_error",
]
