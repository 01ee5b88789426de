"""
Identity module data models.

Wire models use camelCase aliases to match the remote identity API.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    """Roles assigned by the identity API."""

    USER = "user"
    ADMIN = "admin"


class IdentityKind(str, Enum):
    """Whether the current identity was claimed with a real email/password."""

    GUEST = "guest"
    REGISTERED = "registered"


class CamelModel(BaseModel):
    """Base for models exchanged with the identity API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    """Profile returned by GET /api/auth/me."""

    user_id: str = Field(..., description="Stable user ID")
    email: str = Field(..., description="Email address")
    given_name: str = Field(..., description="First name")
    family_name: str = Field(..., description="Last name")
    role: UserRole = Field(default=UserRole.USER, description="User role")

    @property
    def full_name(self) -> str:
        return f"{self.given_name} {self.family_name}"


class Identity(BaseModel):
    """Who is using the app right now."""

    kind: IdentityKind
    user_id: Optional[str] = Field(None, description="Unknown until resolvable")
    user: Optional[User] = Field(None, description="Profile, if fetched")

    model_config = {"frozen": True}

    @property
    def is_guest(self) -> bool:
        return self.kind == IdentityKind.GUEST


# Request models

class SignUpRequest(CamelModel):
    email: str
    password: str
    given_name: str
    family_name: str


class SignInRequest(CamelModel):
    email: str
    password: str


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class ForgotPasswordRequest(CamelModel):
    email: str


class ConfirmForgotPasswordRequest(CamelModel):
    email: str
    confirmation_code: str
    new_password: str


class UpgradeGuestRequest(CamelModel):
    email: str
    password: str
    given_name: str
    family_name: str


# Response models

class SignUpResult(CamelModel):
    """Payload of sign-up and guest upgrade."""

    user_id: str
    message: Optional[str] = None


class GuestCredentials(BaseModel):
    """Synthetic credentials backing a guest account. Never shown or logged."""

    email: str
    password: str

    model_config = {"frozen": True}
