"""
Remote identity API client.

One method per endpoint. Requests are camelCase JSON, responses are unwrapped
from the shared envelope and server error text is mapped through
map_auth_error().
"""

from typing import Optional

import httpx

from shared.http import APIClient
from modules.tokens.models import AuthTokens

from .models import (
    User,
    SignUpRequest,
    SignInRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    ConfirmForgotPasswordRequest,
    UpgradeGuestRequest,
    SignUpResult,
)
from .exceptions import map_auth_error


class AuthAPIClient:
    """
    Client for /api/auth/*.

    Implements ITokenRefresher so the token manager can refresh through it.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        resource_timeout: Optional[float] = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api = APIClient(
            base_url,
            service="auth",
            timeout=timeout,
            resource_timeout=resource_timeout,
            error_mapper=map_auth_error,
            client=client,
        )

    async def aclose(self) -> None:
        await self._api.aclose()

    async def sign_up(self, request: SignUpRequest) -> SignUpResult:
        """POST /api/auth/signup"""
        return await self._api.call_data(
            "POST",
            "/api/auth/signup",
            SignUpResult,
            json=request.model_dump(by_alias=True),
        )

    async def sign_in(self, email: str, password: str) -> AuthTokens:
        """POST /api/auth/signin"""
        request = SignInRequest(email=email, password=password)
        return await self._api.call_data(
            "POST",
            "/api/auth/signin",
            AuthTokens,
            json=request.model_dump(by_alias=True),
        )

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """POST /api/auth/refresh"""
        request = RefreshTokenRequest(refresh_token=refresh_token)
        return await self._api.call_data(
            "POST",
            "/api/auth/refresh",
            AuthTokens,
            json=request.model_dump(by_alias=True),
        )

    async def forgot_password(self, email: str) -> None:
        """POST /api/auth/forgot-password"""
        request = ForgotPasswordRequest(email=email)
        await self._api.call(
            "POST",
            "/api/auth/forgot-password",
            json=request.model_dump(by_alias=True),
        )

    async def confirm_forgot_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> None:
        """POST /api/auth/confirm-forgot-password"""
        request = ConfirmForgotPasswordRequest(
            email=email,
            confirmation_code=confirmation_code,
            new_password=new_password,
        )
        await self._api.call(
            "POST",
            "/api/auth/confirm-forgot-password",
            json=request.model_dump(by_alias=True),
        )

    async def get_me(self, identity_token: str) -> User:
        """GET /api/auth/me"""
        return await self._api.call_data(
            "GET",
            "/api/auth/me",
            User,
            token=identity_token,
        )

    async def delete_me(self, identity_token: str) -> None:
        """DELETE /api/auth/me"""
        await self._api.call("DELETE", "/api/auth/me", token=identity_token)

    async def upgrade_guest(
        self,
        identity_token: str,
        request: UpgradeGuestRequest,
    ) -> SignUpResult:
        """POST /api/auth/upgrade-guest"""
        return await self._api.call_data(
            "POST",
            "/api/auth/upgrade-guest",
            SignUpResult,
            json=request.model_dump(by_alias=True),
            token=identity_token,
        )
