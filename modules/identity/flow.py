"""
Auth-flow driver.

Holds the state of the sign-in / sign-up / password-reset forms and turns
form submissions into session operations. Form validation happens here so an
incomplete form never reaches the network.

States: SignIn -> {SignUp, ForgotPassword}; ForgotPassword ->
ConfirmForgotPassword(email) -> SignIn. SignIn is both the initial state and
the state every successful operation returns to.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shared.exceptions import GuidepostError

from .interfaces import IAuthActions
from .exceptions import AuthFlowValidationError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

SIGN_UP_SUCCESS_MESSAGE = "Account created successfully! You can now sign in."
RESET_CODE_SENT_MESSAGE = "Password reset code sent to your email."
RESET_SUCCESS_MESSAGE = "Password reset successfully! You can now sign in."


class AuthFlowStep(str, Enum):
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"
    FORGOT_PASSWORD = "forgot_password"
    CONFIRM_FORGOT_PASSWORD = "confirm_forgot_password"


class AuthFlowState(BaseModel):
    """Snapshot of the auth forms."""

    step: AuthFlowStep = Field(default=AuthFlowStep.SIGN_IN)
    email: Optional[str] = Field(None, description="Set only in CONFIRM_FORGOT_PASSWORD")
    error_message: Optional[str] = None
    success_message: Optional[str] = None
    is_loading: bool = False

    model_config = {"frozen": True}


# Validation

def validate_sign_in(email: str, password: str) -> None:
    if not email or not password:
        raise AuthFlowValidationError("Please enter email and password")


def validate_sign_up(
    email: str,
    password: str,
    confirm_password: str,
    given_name: str,
    family_name: str,
) -> None:
    if not email:
        raise AuthFlowValidationError("Please enter your email", field="email")
    if not password:
        raise AuthFlowValidationError("Please enter a password", field="password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthFlowValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
        )
    if password != confirm_password:
        raise AuthFlowValidationError("Passwords do not match", field="confirm_password")
    if not given_name:
        raise AuthFlowValidationError("Please enter your first name", field="given_name")
    if not family_name:
        raise AuthFlowValidationError("Please enter your last name", field="family_name")


def validate_confirm_forgot_password(confirmation_code: str, new_password: str) -> None:
    if not confirmation_code:
        raise AuthFlowValidationError(
            "Please enter the confirmation code",
            field="confirmation_code",
        )
    if not new_password:
        raise AuthFlowValidationError("Please enter a new password", field="new_password")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise AuthFlowValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="new_password",
        )


class AuthFlow:
    """
    Drives the auth forms against IAuthActions.

    Submissions never raise: failures become ``state.error_message`` and the
    method returns False.
    """

    def __init__(self, actions: IAuthActions):
        self._actions = actions
        self._state = AuthFlowState()
        self._was_authenticated = False

    @property
    def state(self) -> AuthFlowState:
        return self._state

    def session_changed(self, is_authenticated: bool) -> None:
        """Reset the forms when the session ends."""
        if self._was_authenticated and not is_authenticated:
            self.reset()
        self._was_authenticated = is_authenticated

    def _update(self, **changes) -> None:
        self._state = self._state.model_copy(update=changes)

    # Navigation

    def reset(self) -> None:
        """Back to the initial state with no messages."""
        self._state = AuthFlowState()

    def show_sign_in(self) -> None:
        self._state = AuthFlowState(step=AuthFlowStep.SIGN_IN)

    def show_sign_up(self) -> None:
        self._state = AuthFlowState(step=AuthFlowStep.SIGN_UP)

    def show_forgot_password(self) -> None:
        self._state = AuthFlowState(step=AuthFlowStep.FORGOT_PASSWORD)

    # Submissions

    async def _run(self, operation) -> bool:
        self._update(is_loading=True, error_message=None, success_message=None)
        try:
            await operation()
            return True
        except GuidepostError as e:
            logger.info(f"Auth flow step {self._state.step.value} failed: {e.code}")
            self._update(error_message=e.message)
            return False
        finally:
            self._update(is_loading=False)

    async def sign_in(self, email: str, password: str) -> bool:
        async def operation():
            validate_sign_in(email, password)
            await self._actions.sign_in(email, password)
            self.reset()

        return await self._run(operation)

    async def sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        given_name: str,
        family_name: str,
    ) -> bool:
        async def operation():
            validate_sign_up(email, password, confirm_password, given_name, family_name)
            await self._actions.sign_up(email, password, given_name, family_name)
            self._state = AuthFlowState(
                step=AuthFlowStep.SIGN_IN,
                success_message=SIGN_UP_SUCCESS_MESSAGE,
            )

        return await self._run(operation)

    async def try_as_guest(self) -> bool:
        async def operation():
            await self._actions.try_as_guest()
            self.reset()

        return await self._run(operation)

    async def forgot_password(self, email: str) -> bool:
        async def operation():
            if not email:
                raise AuthFlowValidationError("Please enter your email", field="email")
            await self._actions.forgot_password(email)
            self._state = AuthFlowState(
                step=AuthFlowStep.CONFIRM_FORGOT_PASSWORD,
                email=email,
                success_message=RESET_CODE_SENT_MESSAGE,
            )

        return await self._run(operation)

    async def confirm_forgot_password(self, confirmation_code: str, new_password: str) -> bool:
        async def operation():
            if self._state.step != AuthFlowStep.CONFIRM_FORGOT_PASSWORD or not self._state.email:
                raise AuthFlowValidationError("Invalid state")
            validate_confirm_forgot_password(confirmation_code, new_password)
            await self._actions.confirm_forgot_password(
                self._state.email,
                confirmation_code,
                new_password,
            )
            self._state = AuthFlowState(
                step=AuthFlowStep.SIGN_IN,
                success_message=RESET_SUCCESS_MESSAGE,
            )

        return await self._run(operation)
