"""
Identity service implementation.

Composes the remote identity API client with the token manager. Guest-ness
is a client-local flag stored next to the tokens in the credential store,
backed by a real account registered with synthetic credentials.
"""

import logging
import secrets
import uuid
from typing import Awaitable, Callable, Optional, TypeVar

from shared.exceptions import GuidepostError, UnauthorizedError
from modules.credentials.interfaces import ICredentialStore
from modules.tokens.service import TokenManager
from modules.tokens.models import TokenSet

from .client import AuthAPIClient
from .models import User, SignUpRequest, UpgradeGuestRequest, GuestCredentials
from .exceptions import NotGuestAccountError

logger = logging.getLogger(__name__)

T = TypeVar("T")

GUEST_FLAG_KEY = "com.guidepost.isGuestAccount"

GUEST_GIVEN_NAME = "Guest"
GUEST_FAMILY_NAME = "User"


class IdentityService:
    """
    Account operations against /api/auth/*.

    Local side effects are limited to the token set and the guest flag.
    Upload counters belong to the entitlement tracker and are handled by the
    session facade.
    """

    def __init__(
        self,
        api: AuthAPIClient,
        tokens: TokenManager,
        store: ICredentialStore,
        guest_email_domain: str = "guest.guidepost.app",
    ):
        self._api = api
        self._tokens = tokens
        self._store = store
        self._guest_email_domain = guest_email_domain

    # ------------------------------------------------------------------
    # Guest flag

    @property
    def is_guest_account(self) -> bool:
        return self._store.load(GUEST_FLAG_KEY, self._tokens.scope) == b"1"

    def _set_guest_flag(self) -> None:
        if not self._store.save(GUEST_FLAG_KEY, b"1", self._tokens.scope):
            logger.warning("Could not persist the guest account flag")

    def clear_guest_flag(self) -> None:
        self._store.delete(GUEST_FLAG_KEY, self._tokens.scope)

    # ------------------------------------------------------------------
    # Helpers

    async def _authorized(self, call: Callable[[str], Awaitable[T]]) -> T:
        """Run a protected call with a valid identity token, clearing tokens on 401."""
        identity_token = await self._tokens.ensure_valid()
        try:
            return await call(identity_token)
        except UnauthorizedError:
            self._tokens.handle_unauthorized()
            raise

    def generate_guest_credentials(self) -> GuestCredentials:
        """Random, unguessable credentials that are never shown to the user."""
        # Suffix satisfies upper, lower, digit and symbol password rules
        return GuestCredentials(
            email=f"guest-{uuid.uuid4().hex}@{self._guest_email_domain}",
            password=f"{secrets.token_urlsafe(24)}Aa1!",
        )

    # ------------------------------------------------------------------
    # Operations

    async def sign_up(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        request = SignUpRequest(
            email=email,
            password=password,
            given_name=given_name,
            family_name=family_name,
        )
        result = await self._api.sign_up(request)
        logger.info(f"Created account {result.user_id}")
        return result.user_id

    async def sign_in(self, email: str, password: str) -> TokenSet:
        payload = await self._api.sign_in(email, password)
        token_set = self._tokens.save_auth_tokens(payload)
        self.clear_guest_flag()
        logger.info("Signed in")
        return token_set

    async def fetch_profile(self) -> User:
        return await self._authorized(self._api.get_me)

    async def create_guest_account(self) -> TokenSet:
        credentials = self.generate_guest_credentials()
        await self.sign_up(
            credentials.email,
            credentials.password,
            GUEST_GIVEN_NAME,
            GUEST_FAMILY_NAME,
        )
        token_set = await self.sign_in(credentials.email, credentials.password)
        self._set_guest_flag()
        logger.info("Created guest account")
        return token_set

    async def upgrade_guest_account(
        self,
        email: str,
        password: str,
        given_name: str,
        family_name: str,
    ) -> str:
        if not self.is_guest_account:
            raise NotGuestAccountError()

        request = UpgradeGuestRequest(
            email=email,
            password=password,
            given_name=given_name,
            family_name=family_name,
        )
        result = await self._authorized(
            lambda identity_token: self._api.upgrade_guest(identity_token, request)
        )
        self.clear_guest_flag()
        logger.info(f"Upgraded guest account {result.user_id}")

        # Fresh tokens carry the new email claims; the old ones stay usable
        try:
            await self.sign_in(email, password)
        except GuidepostError as e:
            logger.warning(f"Sign-in after upgrade failed, keeping existing tokens: {e.code}")

        return result.user_id

    async def delete_account(self) -> None:
        await self._authorized(self._api.delete_me)
        self._tokens.clear()
        self.clear_guest_flag()
        logger.info("Deleted account")

    async def forgot_password(self, email: str) -> None:
        await self._api.forgot_password(email)

    async def confirm_forgot_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> None:
        await self._api.confirm_forgot_password(email, confirmation_code, new_password)

    def sign_out(self) -> None:
        self._tokens.clear()
        self.clear_guest_flag()
        logger.info("Signed out")

    def resolve_user_id(self) -> Optional[str]:
        return self._tokens.current_user_id()
