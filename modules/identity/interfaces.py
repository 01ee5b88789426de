"""
Identity module interfaces.

The session facade depends on IIdentityService. The auth-flow driver depends
on IAuthActions, which the session facade implements, so this module never
imports the session module.
"""

from typing import Optional, Protocol, runtime_checkable

from modules.tokens.models import TokenSet

from .models import User


@runtime_checkable
class IIdentityService(Protocol):
    """
    Interface for account operations against the remote identity API.

    Every method is one remote call plus a local side effect unless noted.
    """

    @property
    def is_guest_account(self) -> bool:
        """Whether the stored session belongs to a guest."""
        ...

    async def sign_up(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        """
        Create an account. Does not sign in.

        Returns:
            The new user ID

        Raises:
            UserAlreadyExistsError, PasswordRequirementsNotMetError,
            network and decoding errors
        """
        ...

    async def sign_in(self, email: str, password: str) -> TokenSet:
        """
        Sign in and persist the token set.

        Raises:
            InvalidCredentialsError, network and decoding errors
        """
        ...

    async def fetch_profile(self) -> User:
        """
        GET /api/auth/me with a valid identity token.

        Raises:
            NotAuthenticatedError, TokenExpiredError, UnauthorizedError,
            network and decoding errors
        """
        ...

    async def create_guest_account(self) -> TokenSet:
        """Register synthetic credentials, sign in and flag the session as guest."""
        ...

    async def upgrade_guest_account(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        """
        Claim the current guest account with real credentials.

        Returns:
            The (unchanged) user ID of the account
        """
        ...

    async def delete_account(self) -> None:
        """Delete the account remotely, then clear the tokens and guest flag."""
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def confirm_forgot_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> None:
        ...

    def sign_out(self) -> None:
        """Local only: clear the tokens and the guest flag."""
        ...

    def resolve_user_id(self) -> Optional[str]:
        """User ID of the stored session, if it can be determined locally."""
        ...


@runtime_checkable
class IAuthActions(Protocol):
    """Session operations the auth-flow driver can trigger."""

    async def sign_in(self, email: str, password: str) -> None:
        ...

    async def sign_up(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        ...

    async def try_as_guest(self) -> None:
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def confirm_forgot_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> None:
        ...
