"""
Token module data models.
"""

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AuthTokens(BaseModel):
    """
    Token payload returned by sign-in and refresh.

    ``expires_in`` is relative; TokenSet turns it into an absolute time at
    the moment of receipt.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str = Field(..., description="General purpose access token")
    id_token: str = Field(..., description="Token presented to the protected API")
    refresh_token: Optional[str] = Field(None, description="Absent on some refreshes")
    expires_in: int = Field(..., description="Validity in seconds from receipt")


class TokenSet(BaseModel):
    """The credential bundle for the current identity."""

    access_token: str
    identity_token: str
    refresh_token: Optional[str] = None
    expires_at: datetime

    model_config = {"frozen": True}

    @classmethod
    def from_auth_tokens(
        cls,
        tokens: AuthTokens,
        received_at: datetime,
        previous_refresh_token: Optional[str] = None,
    ) -> "TokenSet":
        """Build a TokenSet, keeping the previous refresh token if none was sent."""
        return cls(
            access_token=tokens.access_token,
            identity_token=tokens.id_token,
            refresh_token=tokens.refresh_token or previous_refresh_token,
            expires_at=received_at + timedelta(seconds=tokens.expires_in),
        )

    def is_expired(self, now: datetime, leeway: timedelta = timedelta(minutes=5)) -> bool:
        """Expired once less than ``leeway`` of validity remains."""
        return now + leeway >= self.expires_at
