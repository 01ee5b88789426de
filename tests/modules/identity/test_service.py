"""Tests for the identity service."""

import pytest

from shared.exceptions import UnauthorizedError, NetworkError
from modules.identity import (
    IIdentityService,
    IdentityService,
    GUEST_FLAG_KEY,
    InvalidCredentialsError,
    UserAlreadyExistsError,
    NotGuestAccountError,
)
from modules.tokens import NotAuthenticatedError


@pytest.fixture
def identity(container) -> IdentityService:
    return container.identity


@pytest.fixture
def tokens(container):
    return container.tokens


class TestSignUpAndSignIn:
    def test_implements_interface(self, identity):
        assert isinstance(identity, IIdentityService)

    @pytest.mark.asyncio
    async def test_sign_up_does_not_sign_in(self, identity, tokens):
        """Sign-up should create the account without any local session."""
        user_id = await identity.sign_up("new@example.com", "Password123", "New", "Person")
        assert user_id.startswith("user-")
        assert tokens.has_tokens is False

    @pytest.mark.asyncio
    async def test_sign_in_persists_tokens(self, identity, tokens, registered_user, test_user_email, test_user_password):
        token_set = await identity.sign_in(test_user_email, test_user_password)
        assert tokens.current_tokens() == token_set
        assert identity.resolve_user_id() == registered_user
        assert identity.is_guest_account is False

    @pytest.mark.asyncio
    async def test_sign_in_failure_leaves_no_session(self, identity, tokens, registered_user, test_user_email):
        with pytest.raises(InvalidCredentialsError):
            await identity.sign_in(test_user_email, "WrongPassword1")
        assert tokens.has_tokens is False

    @pytest.mark.asyncio
    async def test_fetch_profile(self, identity, registered_user, test_user_email, test_user_password):
        await identity.sign_in(test_user_email, test_user_password)
        user = await identity.fetch_profile()
        assert user.user_id == registered_user

    @pytest.mark.asyncio
    async def test_fetch_profile_without_session(self, identity):
        with pytest.raises(NotAuthenticatedError):
            await identity.fetch_profile()

    @pytest.mark.asyncio
    async def test_fetch_profile_rejected_token_clears_tokens(
        self, identity, tokens, backend, registered_user, test_user_email, test_user_password
    ):
        """A 401 on a protected call should clear every token."""
        await identity.sign_in(test_user_email, test_user_password)
        backend.revoke_sessions()

        with pytest.raises(UnauthorizedError):
            await identity.fetch_profile()

        assert tokens.has_tokens is False


class TestGuestAccounts:
    @pytest.mark.asyncio
    async def test_create_guest_account(self, identity, tokens, backend, credential_store, settings):
        """A guest is a real account with synthetic credentials and a local flag."""
        await identity.create_guest_account()

        assert tokens.has_tokens is True
        assert identity.is_guest_account is True
        assert credential_store.load(GUEST_FLAG_KEY, settings.credential_access_group) == b"1"
        emails = list(backend.users)
        assert len(emails) == 1
        assert emails[0].endswith("@guest.guidepost.app")

    def test_guest_credentials_are_unique(self, identity):
        first = identity.generate_guest_credentials()
        second = identity.generate_guest_credentials()
        assert first.email != second.email
        assert first.password != second.password
        assert len(first.password) >= 8

    @pytest.mark.asyncio
    async def test_upgrade_keeps_user_id(self, identity, backend):
        """The upgraded account should be the same account with new credentials."""
        await identity.create_guest_account()
        guest_user_id = identity.resolve_user_id()

        user_id = await identity.upgrade_guest_account("a@b.com", "Abcdef12", "A", "B")

        assert user_id == guest_user_id
        assert identity.is_guest_account is False
        assert backend.users["a@b.com"]["userId"] == guest_user_id
        # Signed in again with the new credentials
        assert backend.count("POST", "/api/auth/signin") == 2

    @pytest.mark.asyncio
    async def test_upgrade_requires_guest(self, identity, registered_user, test_user_email, test_user_password):
        await identity.sign_in(test_user_email, test_user_password)
        with pytest.raises(NotGuestAccountError):
            await identity.upgrade_guest_account("a@b.com", "Abcdef12", "A", "B")

    @pytest.mark.asyncio
    async def test_upgrade_to_taken_email(self, identity, registered_user, test_user_email):
        await identity.create_guest_account()
        with pytest.raises(UserAlreadyExistsError):
            await identity.upgrade_guest_account(test_user_email, "Abcdef12", "A", "B")
        assert identity.is_guest_account is True

    @pytest.mark.asyncio
    async def test_upgrade_survives_failed_follow_up_sign_in(self, identity, tokens, backend):
        """If the sign-in after an upgrade fails, the existing tokens stay in place."""
        await identity.create_guest_account()
        before = tokens.current_tokens()
        backend.fail_signin = True

        await identity.upgrade_guest_account("a@b.com", "Abcdef12", "A", "B")

        assert identity.is_guest_account is False
        assert tokens.current_tokens() == before


class TestAccountLifecycle:
    @pytest.mark.asyncio
    async def test_sign_out_is_local(self, identity, tokens, backend):
        await identity.create_guest_account()
        requests_before = len(backend.requests)

        identity.sign_out()

        assert tokens.has_tokens is False
        assert identity.is_guest_account is False
        assert len(backend.requests) == requests_before

    @pytest.mark.asyncio
    async def test_delete_account(self, identity, tokens, backend, registered_user, test_user_email, test_user_password):
        await identity.sign_in(test_user_email, test_user_password)

        await identity.delete_account()

        assert test_user_email not in backend.users
        assert tokens.has_tokens is False

    @pytest.mark.asyncio
    async def test_delete_account_without_session(self, identity):
        with pytest.raises(NotAuthenticatedError):
            await identity.delete_account()

    @pytest.mark.asyncio
    async def test_delete_account_network_failure_keeps_session(
        self, identity, tokens, backend, registered_user, test_user_email, test_user_password
    ):
        await identity.sign_in(test_user_email, test_user_password)
        backend.network_down = True

        with pytest.raises(NetworkError):
            await identity.delete_account()

        assert tokens.has_tokens is True

    @pytest.mark.asyncio
    async def test_password_reset(self, identity, backend, registered_user, test_user_email):
        await identity.forgot_password(test_user_email)
        await identity.confirm_forgot_password(test_user_email, "123456", "BrandNew12")
        assert backend.users[test_user_email]["password"] == "BrandNew12"
